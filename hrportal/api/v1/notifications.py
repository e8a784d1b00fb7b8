"""
Notification inbox endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrportal.core.deps import ActorContext, get_actor, get_db
from hrportal.schemas.workflow import NotificationOut
from hrportal.services import notification_service

router = APIRouter()


@router.get("/me", response_model=list[NotificationOut])
async def my_notifications_endpoint(
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Inbox of the caller: decisions awaiting their role, or outcomes of their
    own requests when the token carries an employee_id
    """
    if actor.approver_role is not None:
        items = notification_service.list_notifications(db, role=actor.approver_role, unread_only=unread_only)
    elif actor.subject_id:
        items = notification_service.list_notifications(db, subject_id=actor.subject_id, unread_only=unread_only)
    else:
        items = []
    return items


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    notification = notification_service.mark_read(
        db, notification_id, role=actor.approver_role, subject_id=actor.subject_id
    )
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification with id {notification_id} not found",
        )
    return notification
