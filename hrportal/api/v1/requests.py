"""
Workflow request endpoints
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrportal.core.deps import ActorContext, get_actor, get_db, require_approver
from hrportal.models.workflow import Category, RequestKind, RequestStatus, Role
from hrportal.schemas.workflow import (
    DecisionIn,
    HistoryResponse,
    LeaveCreateRequest,
    NextRoleOut,
    PendingSummaryOut,
    RecordSnapshot,
    RequestListResponse,
    RequestUpdate,
    ReviewCreateRequest,
    ChainStepOut,
)
from hrportal.services import chain_router
from hrportal.services import request_service
from hrportal.services.audit_trail import AuditTrail
from hrportal.services.record_store import SqlAlchemyRecordStore

router = APIRouter()


@router.post("/leave", response_model=RecordSnapshot, status_code=201)
async def create_leave_endpoint(
    data: LeaveCreateRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    File a leave application (creates a Pending request)

    Standard leave goes to the requester's HOD (department staff) or Dean
    (faculty-level staff); medical leave goes HOD -> VC -> President.
    """
    record = request_service.create_leave_request(db, data)
    return request_service.to_snapshot(record)


@router.post("/review", response_model=RecordSnapshot, status_code=201)
async def create_review_endpoint(
    data: ReviewCreateRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Submit a performance review (PAMS)

    Faculty reviews go HOD -> VC -> HR, HOD reviews go Dean -> VC -> HR.
    """
    record = request_service.create_review_request(db, data)
    return request_service.to_snapshot(record)


@router.get("", response_model=RequestListResponse)
async def list_requests_endpoint(
    status: Optional[RequestStatus] = Query(None, description="Filter by request status"),
    kind: Optional[RequestKind] = Query(None, description="leave or review"),
    category: Optional[Category] = Query(None),
    subject_id: Optional[str] = Query(None),
    awaiting_role: Optional[Role] = Query(None, description="Only requests waiting on this role"),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """List requests with optional filters"""
    records = request_service.list_requests(
        db,
        status=status,
        kind=kind,
        category=category,
        subject_id=subject_id,
        awaiting_role=awaiting_role,
    )
    return RequestListResponse(
        items=[request_service.to_snapshot(r) for r in records],
        total=len(records),
    )


@router.get("/pending", response_model=RequestListResponse)
async def list_my_queue_endpoint(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_approver),
):
    """Requests currently awaiting the calling role"""
    records = request_service.list_requests(db, awaiting_role=actor.approver_role)
    return RequestListResponse(
        items=[request_service.to_snapshot(r) for r in records],
        total=len(records),
    )


@router.get("/summary", response_model=PendingSummaryOut)
async def pending_summary_endpoint(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_approver),
):
    """Open request counts per awaiting role"""
    return PendingSummaryOut(**request_service.pending_summary(db))


@router.get("/{request_id}", response_model=RecordSnapshot)
async def get_request_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    record = request_service.get_request(db, request_id)
    return request_service.to_snapshot(record)


@router.patch("/{request_id}", response_model=RecordSnapshot)
async def update_request_endpoint(
    request_id: int,
    changes: RequestUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Edit an open request

    Reason, payload and attachments can change until the request is terminal.
    Span and category belong to the requester and are frozen once any
    decision is recorded; total_units is recomputed from the new span.
    """
    record = request_service.update_request(db, request_id, changes, editor_subject_id=actor.subject_id)
    return request_service.to_snapshot(record)


@router.get("/{request_id}/next-role", response_model=NextRoleOut)
async def next_role_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Which role acts next, and whether the caller may act (drives action buttons)"""
    record = request_service.get_request(db, request_id)
    can_act = chain_router.is_valid_actor(record, actor.role)
    return NextRoleOut(
        request_id=record.id,
        next_role=chain_router.next_role(record),
        can_act=can_act,
        allowed_decisions=sorted(chain_router.allowed_decisions(record), key=lambda d: d.value) if can_act else [],
    )


@router.post("/{request_id}/decisions", response_model=RecordSnapshot)
async def decide_endpoint(
    request_id: int,
    data: DecisionIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Approve, reject, return or finalize a request as the calling role

    Fails with 409 when the caller is not the expected approver or the request
    is already decided, and with 422 when the decision or day split is invalid.
    """
    record = request_service.decide(db, request_id, actor.role, actor.display_name, data)
    return request_service.to_snapshot(record)


@router.get("/{request_id}/history", response_model=HistoryResponse)
async def history_endpoint(
    request_id: int,
    include_pending: bool = Query(True),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Ordered approval chain of a request"""
    trail = AuditTrail(SqlAlchemyRecordStore(db))
    steps = trail.history(request_id, include_pending=include_pending)
    record = request_service.get_request(db, request_id)
    return HistoryResponse(
        request_id=request_id,
        status=record.status,
        steps=[ChainStepOut.model_validate(s) for s in steps],
    )
