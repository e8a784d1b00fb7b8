"""
Database initialization script
Helper function to seed demo requests for a local portal
"""
import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from hrportal.models.workflow import Category, SubjectLevel, WorkflowRequest
from hrportal.schemas.workflow import LeaveCreateRequest, ReviewCreateRequest
from hrportal.services import request_service

logger = logging.getLogger(__name__)


def init_db(db: Session) -> None:
    """
    Seed one request per route if the database is empty

    This is a helper function and should NOT be auto-run on startup.
    Call manually when needed for a demo setup.
    """
    if db.query(WorkflowRequest).first() is not None:
        logger.info("Requests already exist, skipping demo seed")
        return

    today = date.today()
    request_service.create_leave_request(db, LeaveCreateRequest(
        category=Category.STANDARD,
        subject_id="e1",
        subject_name="Alice Smith",
        department="CS",
        start_date=today + timedelta(days=3),
        end_date=today + timedelta(days=5),
        reason="Family vacation",
    ))
    request_service.create_leave_request(db, LeaveCreateRequest(
        category=Category.STANDARD,
        subject_id="e2",
        subject_name="Dr. Bob Khan",
        subject_level=SubjectLevel.FACULTY,
        department="EE",
        start_date=today + timedelta(days=7),
        end_date=today + timedelta(days=7),
        reason="Conference travel",
    ))
    request_service.create_leave_request(db, LeaveCreateRequest(
        category=Category.MEDICAL,
        subject_id="e3",
        subject_name="Dr. Diana Prince",
        department="BBA",
        start_date=today - timedelta(days=12),
        end_date=today - timedelta(days=8),
        reason="Medical procedure",
        attachments=[{"id": "doc1", "name": "Medical Certificate.pdf", "size": 125000}],
    ))
    request_service.create_review_request(db, ReviewCreateRequest(
        category=Category.FACULTY,
        subject_id="e4",
        subject_name="Prof. Rashid Ali",
        department="CS",
        period=f"{today.year}-Q2",
        agenda="Annual appraisal",
    ))
    request_service.create_review_request(db, ReviewCreateRequest(
        category=Category.HOD,
        subject_id="e5",
        subject_name="Dr. Sara Malik",
        department="BBA",
        period=f"{today.year}-Q2",
    ))
    logger.info("Seeded demo requests")
