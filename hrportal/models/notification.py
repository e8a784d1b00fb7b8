"""
Notification outbox model
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from hrportal.db.base import Base
from hrportal.models.workflow import RequestStatus, Role, enum_column
from hrportal.utils.datetime_utils import now_utc


class Notification(Base):
    """A RequestDecided event waiting to be shown in a portal inbox"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("workflow_requests.id"), nullable=False, index=True)
    new_status = enum_column(RequestStatus, nullable=False)
    acting_role = enum_column(Role, nullable=False)
    # Next approver role, or NULL when the subject is the recipient
    recipient_role = enum_column(Role, nullable=True)
    recipient_subject_id = Column(String(64), nullable=True)
    message = Column(String(255), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_role", "is_read"),
    )
