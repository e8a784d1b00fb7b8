"""
Request service - filing, querying and deciding workflow requests for the API layer
"""
import logging
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from hrportal.core.errors import NotFoundError, OutOfOrderActorError, RecordFrozenError, TerminalRequestError
from hrportal.models.workflow import (
    CATEGORY_KIND,
    Category,
    ChainStep,
    RequestKind,
    RequestStatus,
    Role,
    StepStatus,
    SubjectLevel,
    TERMINAL_STATUSES,
    WorkflowRequest,
)
from hrportal.schemas.workflow import (
    ChainStepOut,
    DecisionIn,
    LeaveCreateRequest,
    RecordSnapshot,
    ReconciliationOut,
    RequestUpdate,
    ReviewCreateRequest,
    SpanOut,
)
from hrportal.services import chain_router
from hrportal.services.decision_engine import DecisionCommand, DecisionEngine, seed_chain
from hrportal.services.notification_service import get_notification_sink
from hrportal.services.reconciliation import Reconciliation
from hrportal.services.record_store import SqlAlchemyRecordStore
from hrportal.utils.datetime_utils import inclusive_days
from hrportal.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)


def create_leave_request(db: Session, data: LeaveCreateRequest) -> WorkflowRequest:
    """
    File a leave application in Pending status with its first approver scheduled.

    total_units defaults to the inclusive calendar days of the span.
    """
    total_units = data.total_units
    if total_units is None:
        total_units = inclusive_days(data.start_date, data.end_date)

    record = WorkflowRequest(
        kind=RequestKind.LEAVE,
        category=data.category,
        subject_id=data.subject_id,
        subject_name=data.subject_name,
        subject_level=data.subject_level,
        department=data.department,
        start_date=data.start_date,
        end_date=data.end_date,
        total_units=total_units,
        status=RequestStatus.PENDING,
        reason=data.reason,
        attachments=sanitize_for_json(data.attachments),
    )
    seed_chain(record)
    record = SqlAlchemyRecordStore(db).save(record)
    logger.info(
        "request created: request_id=%s kind=leave category=%s subject_id=%s total_units=%s next_role=%s",
        record.id, record.category.value, record.subject_id, record.total_units,
        chain_router.next_role(record).value,
    )
    return record


def create_review_request(db: Session, data: ReviewCreateRequest) -> WorkflowRequest:
    """Submit a performance review in Pending status; the confirming HOD/Dean acts first"""
    payload = {}
    if data.agenda is not None:
        payload["agenda"] = data.agenda
    if data.form is not None:
        payload["form"] = data.form

    # Review routes key on category alone; the level only describes the reviewee
    record = WorkflowRequest(
        kind=RequestKind.REVIEW,
        category=data.category,
        subject_id=data.subject_id,
        subject_name=data.subject_name,
        subject_level=SubjectLevel.FACULTY if data.category == Category.HOD else SubjectLevel.DEPARTMENT,
        department=data.department,
        period=data.period,
        total_units=0,
        status=RequestStatus.PENDING,
        payload_json=sanitize_for_json(payload) or None,
        attachments=sanitize_for_json(data.attachments),
    )
    seed_chain(record)
    record = SqlAlchemyRecordStore(db).save(record)
    logger.info(
        "request created: request_id=%s kind=review category=%s subject_id=%s period=%s",
        record.id, record.category.value, record.subject_id, record.period,
    )
    return record


def get_request(db: Session, request_id: int) -> WorkflowRequest:
    record = SqlAlchemyRecordStore(db).load(request_id)
    if record is None:
        raise NotFoundError(f"Request with id {request_id} not found", record_id=request_id)
    return record


def list_requests(
    db: Session,
    status: Optional[RequestStatus] = None,
    kind: Optional[RequestKind] = None,
    category: Optional[Category] = None,
    subject_id: Optional[str] = None,
    awaiting_role: Optional[Role] = None,
) -> List[WorkflowRequest]:
    """
    List requests, newest first.

    awaiting_role keeps only open requests whose pending step belongs to that
    role, i.e. the role's approval queue.
    """
    query = db.query(WorkflowRequest)
    if status is not None:
        query = query.filter(WorkflowRequest.status == status)
    if kind is not None:
        query = query.filter(WorkflowRequest.kind == kind)
    if category is not None:
        query = query.filter(WorkflowRequest.category == category)
    if subject_id is not None:
        query = query.filter(WorkflowRequest.subject_id == subject_id)
    if awaiting_role is not None:
        query = query.join(ChainStep).filter(
            ChainStep.status == StepStatus.PENDING,
            ChainStep.role == awaiting_role,
            WorkflowRequest.status.notin_(list(TERMINAL_STATUSES)),
        )
    return query.order_by(WorkflowRequest.created_at.desc(), WorkflowRequest.id.desc()).all()


def update_request(
    db: Session,
    request_id: int,
    changes: RequestUpdate,
    editor_subject_id: Optional[str] = None,
) -> WorkflowRequest:
    """
    Edit an open request; span and category only while no decision is recorded.

    Only the subject may move the span or change the category, and total_units
    always follows the span.

    Raises:
        RecordFrozenError: when the request is terminal, or when span or
            category change after a decision was recorded
        HTTPException: 403 when someone other than the subject edits span or category
    """
    store = SqlAlchemyRecordStore(db)
    fields = changes.model_dump(exclude_unset=True)
    # null clears free-text fields only
    fields = {k: v for k, v in fields.items() if v is not None or k in ("reason", "payload", "attachments")}
    frozen_fields = {"category", "start_date", "end_date"} & set(fields)

    with store.atomic_update(request_id) as record:
        if record.status in TERMINAL_STATUSES:
            raise RecordFrozenError(
                f"Request {request_id} is {record.status.value} and can no longer be edited"
            )
        if frozen_fields and editor_subject_id != record.subject_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the requester can change the span or category of a request",
            )
        if frozen_fields and record.decided_steps:
            raise RecordFrozenError(
                f"Span and category of request {request_id} are frozen once a decision is recorded",
                fields=sorted(frozen_fields),
            )
        if "category" in fields and CATEGORY_KIND[fields["category"]] != record.kind:
            raise RecordFrozenError(
                f"Category {fields['category'].value} does not belong to a {record.kind.value} request"
            )

        start = fields.get("start_date", record.start_date)
        end = fields.get("end_date", record.end_date)
        if start is not None and end is not None and start > end:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_date must be on or before end_date",
            )

        for name in ("reason", "category", "start_date", "end_date"):
            if name in fields:
                setattr(record, name, fields[name])
        if frozen_fields and start is not None and end is not None:
            record.total_units = inclusive_days(start, end)
        if "payload" in fields:
            record.payload_json = sanitize_for_json(fields["payload"])
        if "attachments" in fields:
            record.attachments = sanitize_for_json(fields["attachments"])
        if "category" in fields:
            # Rebase the pending step on the new route's first role
            record.active_step.role = chain_router.route_for(record).originating_role
    return record


def decide(db: Session, request_id: int, actor_role: str, actor_name: str, data: DecisionIn) -> WorkflowRequest:
    """
    Apply a decision from the API and report it.

    The engine commits the transition; only then is it logged and published.
    """
    try:
        acting_role = Role(actor_role)
    except ValueError:
        record = get_request(db, request_id)
        if record.status in TERMINAL_STATUSES:
            raise TerminalRequestError(
                f"Request {record.id} is already {record.status.value}",
                status=record.status.value,
            )
        expected = chain_router.next_role(record)
        raise OutOfOrderActorError(
            f"Role '{actor_role}' cannot act on approval chains",
            expected_role=expected.value if expected else None,
        )

    command = DecisionCommand(
        acting_role=acting_role,
        actor_name=actor_name,
        decision=data.decision,
        comment=data.comment,
        reconciliation=_to_reconciliation(data),
        meeting_date=data.meeting_date,
        follow_up_date=data.follow_up_date,
    )
    engine = DecisionEngine(SqlAlchemyRecordStore(db), sink=get_notification_sink(db))
    outcome = engine.apply(request_id, command)
    logger.info(
        "request status transition: request_id=%s before=%s after=%s action=%s role=%s next_role=%s",
        request_id,
        outcome.previous_status.value,
        outcome.event.new_status.value,
        command.decision.value,
        acting_role.value,
        outcome.event.next_role.value if outcome.event.next_role else None,
    )
    return outcome.record


def _to_reconciliation(data: DecisionIn) -> Optional[Reconciliation]:
    if data.reconciliation is None:
        return None
    return Reconciliation(
        paid_units=data.reconciliation.paid_units,
        unpaid_units=data.reconciliation.unpaid_units,
        leave_category=data.reconciliation.leave_category,
    )


def pending_summary(db: Session) -> Dict:
    """Counts of open requests per awaiting role, for dashboard cards"""
    rows = (
        db.query(ChainStep.role, WorkflowRequest.kind)
        .join(WorkflowRequest, ChainStep.request_id == WorkflowRequest.id)
        .filter(
            ChainStep.status == StepStatus.PENDING,
            WorkflowRequest.status.notin_(list(TERMINAL_STATUSES)),
        )
        .all()
    )
    by_role = {role.value: 0 for role in Role}
    leaves = reviews = 0
    for role, kind in rows:
        by_role[role.value] += 1
        if kind == RequestKind.LEAVE:
            leaves += 1
        else:
            reviews += 1
    return {"by_role": by_role, "leaves": leaves, "reviews": reviews, "total": leaves + reviews}


def to_snapshot(record: WorkflowRequest) -> RecordSnapshot:
    route = chain_router.route_for(record)
    reconciliation = None
    if record.has_reconciliation:
        reconciliation = ReconciliationOut(
            paid_units=record.paid_units,
            unpaid_units=record.unpaid_units,
            leave_category=record.leave_category,
        )
    attachments = record.attachments or []
    return RecordSnapshot(
        id=record.id,
        kind=record.kind,
        category=record.category,
        subject_id=record.subject_id,
        subject_name=record.subject_name,
        subject_level=record.subject_level,
        department=record.department,
        period=record.period,
        span=SpanOut(start_date=record.start_date, end_date=record.end_date, total_units=record.total_units),
        status=record.status,
        reason=record.reason,
        payload=record.payload_json,
        attachments=attachments,
        approval_chain=[ChainStepOut.model_validate(step) for step in record.steps],
        reconciliation=reconciliation,
        route=list(route.roles),
        next_role=chain_router.next_role(record),
        allowed_decisions=sorted(chain_router.allowed_decisions(record), key=lambda d: d.value),
        missing_documents=route.documents_expected and not attachments,
        return_count=sum(1 for s in record.steps if s.status == StepStatus.RETURNED),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
