"""
Tests for concurrent decisions on the same request
"""
import threading
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hrportal.core.errors import ConcurrentUpdateError, TerminalRequestError
from hrportal.db.base import Base
from hrportal.models.workflow import (
    Category,
    Decision,
    RequestKind,
    RequestStatus,
    Role,
    StepStatus,
    WorkflowRequest,
)
from hrportal.services.decision_engine import DecisionCommand, DecisionEngine, seed_chain
from hrportal.services.record_store import KeyedLocks, SqlAlchemyRecordStore


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so every thread gets its own connection"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def request_id(session_factory):
    db = session_factory()
    try:
        record = WorkflowRequest(
            kind=RequestKind.LEAVE,
            category=Category.STANDARD,
            subject_id="e1",
            start_date=date(2025, 5, 5),
            end_date=date(2025, 5, 7),
            total_units=3,
            status=RequestStatus.PENDING,
        )
        seed_chain(record)
        db.add(record)
        db.commit()
        return record.id
    finally:
        db.close()


def _decide_concurrently(session_factory, request_id, decisions):
    barrier = threading.Barrier(len(decisions))
    results = [None] * len(decisions)

    def worker(index, decision):
        db = session_factory()
        try:
            engine = DecisionEngine(SqlAlchemyRecordStore(db))
            command = DecisionCommand(acting_role=Role.HOD, actor_name=f"hod-{index}", decision=decision)
            barrier.wait()
            try:
                results[index] = engine.apply(request_id, command).record.status
            except (TerminalRequestError, ConcurrentUpdateError) as e:
                results[index] = e
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(i, d)) for i, d in enumerate(decisions)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


def test_simultaneous_decisions_commit_exactly_once(session_factory, request_id):
    results = _decide_concurrently(session_factory, request_id, [Decision.APPROVE, Decision.REJECT])

    successes = [r for r in results if isinstance(r, RequestStatus)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], TerminalRequestError)

    db = session_factory()
    try:
        record = db.get(WorkflowRequest, request_id)
        assert record.status == successes[0]
        assert len(record.steps) == 1
        assert record.steps[0].status in (StepStatus.APPROVED, StepStatus.REJECTED)
    finally:
        db.close()


def test_many_simultaneous_approvals(session_factory, request_id):
    results = _decide_concurrently(session_factory, request_id, [Decision.APPROVE] * 6)

    assert sum(1 for r in results if r == RequestStatus.APPROVED) == 1
    assert sum(1 for r in results if isinstance(r, TerminalRequestError)) == 5


def test_stale_write_from_another_process_is_refused(session_factory, request_id):
    """A writer holding an old version cannot commit over a newer decision"""
    stale_db = session_factory()
    fresh_db = session_factory()
    try:
        # Separate lock tables stand in for separate processes
        stale_store = SqlAlchemyRecordStore(stale_db, locks=KeyedLocks())
        stale = stale_store.load(request_id)
        assert stale.version_id == 1

        DecisionEngine(SqlAlchemyRecordStore(fresh_db, locks=KeyedLocks())).apply(
            request_id,
            DecisionCommand(acting_role=Role.HOD, actor_name="hod", decision=Decision.APPROVE),
        )

        stale.reason = "edited from a stale read"
        with pytest.raises(ConcurrentUpdateError):
            stale_store.save(stale)

        fresh_db.expire_all()
        record = fresh_db.get(WorkflowRequest, request_id)
        assert record.status == RequestStatus.APPROVED
        assert record.reason is None
    finally:
        stale_db.close()
        fresh_db.close()


def test_keyed_locks_serialize_same_key_and_release_entries():
    locks = KeyedLocks()
    inside = []
    overlap = []
    started = threading.Barrier(4)

    def worker():
        started.wait()
        with locks.hold(7):
            if inside:
                overlap.append(True)
            inside.append(True)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert overlap == []
    assert len(locks) == 0


def test_keyed_locks_independent_keys():
    locks = KeyedLocks()
    with locks.hold(1):
        with locks.hold(2):
            assert len(locks) == 2
        assert len(locks) == 1
    assert len(locks) == 0


def test_keyed_locks_release_on_error():
    locks = KeyedLocks()
    with pytest.raises(RuntimeError):
        with locks.hold("r1"):
            raise RuntimeError("boom")
    assert len(locks) == 0
    with locks.hold("r1"):
        assert len(locks) == 1
