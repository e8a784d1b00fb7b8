"""
Pytest configuration and fixtures
"""
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from hrportal.main import app
from hrportal.db.base import Base
from hrportal.core.deps import get_db
from hrportal.core.security import create_access_token

# Import all models to ensure they're registered with Base.metadata
from hrportal.models import (
    Category,
    ChainStep,
    Notification,
    RequestKind,
    RequestStatus,
    SubjectLevel,
    WorkflowRequest,
)  # noqa
from hrportal.services.decision_engine import seed_chain


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(role: str, name: str = None, employee_id: str = None) -> dict:
    """Bearer header for a caller acting as `role`"""
    claims = {"sub": name or f"{role} user", "role": role}
    if employee_id:
        claims["employee_id"] = employee_id
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def make_request(db):
    """Factory persisting a Pending request with its first approver scheduled"""
    def _make(
        category=Category.STANDARD,
        subject_level=SubjectLevel.DEPARTMENT,
        total_units=5,
        subject_id="e1",
        attachments=None,
    ):
        kind = RequestKind.LEAVE if category in (Category.STANDARD, Category.MEDICAL) else RequestKind.REVIEW
        record = WorkflowRequest(
            kind=kind,
            category=category,
            subject_id=subject_id,
            subject_name="Test Employee",
            subject_level=subject_level,
            department="CS",
            start_date=date(2025, 3, 10) if kind == RequestKind.LEAVE else None,
            end_date=date(2025, 3, 10) + timedelta(days=max(total_units, 1) - 1) if kind == RequestKind.LEAVE else None,
            total_units=total_units if kind == RequestKind.LEAVE else 0,
            period="2025-Q2" if kind == RequestKind.REVIEW else None,
            status=RequestStatus.PENDING,
            attachments=attachments,
        )
        seed_chain(record)
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make
