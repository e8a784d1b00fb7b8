"""
Notification sinks for RequestDecided events.

A sink must never raise: the decision it reports is already committed, and a
delivery problem must not look like a failed decision to the caller.
"""
import logging
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hrportal.core.config import settings
from hrportal.models.notification import Notification
from hrportal.models.workflow import RequestStatus, Role

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def publish(self, event) -> None:
        ...


def build_message(event) -> str:
    if event.next_role is not None:
        if event.new_status == RequestStatus.PENDING:
            return f"Request #{event.record_id} was returned by {event.acting_role.value} for rework"
        return f"Request #{event.record_id} is awaiting your decision ({event.acting_role.value} {event.decision.value}d)"
    return f"Request #{event.record_id} was {event.new_status.value.lower()} by {event.acting_role.value}"


class LoggingNotificationSink:
    """Reports events to the log only"""

    def publish(self, event) -> None:
        logger.info(
            "RequestDecided: request_id=%s status=%s acting_role=%s next_role=%s",
            event.record_id,
            event.new_status.value,
            event.acting_role.value,
            event.next_role.value if event.next_role else None,
        )


class OutboxNotificationSink:
    """Writes each event to the notifications table in its own transaction"""

    def __init__(self, db: Session):
        self.db = db

    def publish(self, event) -> None:
        notification = Notification(
            request_id=event.record_id,
            new_status=event.new_status,
            acting_role=event.acting_role,
            recipient_role=event.next_role,
            recipient_subject_id=None if event.next_role else event.subject_id,
            message=build_message(event),
            created_at=event.occurred_at,
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Could not record notification for request_id=%s: %s", event.record_id, e)


def get_notification_sink(db: Session) -> NotificationSink:
    if settings.NOTIFICATIONS_ENABLED:
        return OutboxNotificationSink(db)
    return LoggingNotificationSink()


def list_notifications(
    db: Session,
    role: Optional[Role] = None,
    subject_id: Optional[str] = None,
    unread_only: bool = False,
) -> List[Notification]:
    """Inbox for an approver role or for a request's subject, newest first"""
    query = db.query(Notification)
    if role is not None:
        query = query.filter(Notification.recipient_role == role)
    if subject_id is not None:
        query = query.filter(Notification.recipient_subject_id == subject_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_read(
    db: Session,
    notification_id: int,
    role: Optional[Role] = None,
    subject_id: Optional[str] = None,
) -> Optional[Notification]:
    """Mark a notification read for its recipient; None when missing or addressed to someone else"""
    notification = db.get(Notification, notification_id)
    if notification is None:
        return None
    addressed = (
        (role is not None and notification.recipient_role == role)
        or (subject_id is not None and notification.recipient_subject_id == subject_id)
    )
    if not addressed:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
