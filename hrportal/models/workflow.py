"""
Workflow request models: the request record and its approval chain
"""
import enum

from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from hrportal.db.base import Base
from hrportal.utils.datetime_utils import now_utc


class Role(str, enum.Enum):
    HOD = "hod"
    DEAN = "dean"
    VC = "vc"
    PRESIDENT = "president"
    HR = "hr"


class RequestKind(str, enum.Enum):
    LEAVE = "leave"
    REVIEW = "review"


class Category(str, enum.Enum):
    # leave requests
    STANDARD = "standard"
    MEDICAL = "medical"
    # performance (PAMS) reviews
    FACULTY = "faculty"
    HOD = "hod"


CATEGORY_KIND = {
    Category.STANDARD: RequestKind.LEAVE,
    Category.MEDICAL: RequestKind.LEAVE,
    Category.FACULTY: RequestKind.REVIEW,
    Category.HOD: RequestKind.REVIEW,
}


class SubjectLevel(str, enum.Enum):
    DEPARTMENT = "department"  # department staff, managed by an HOD
    FACULTY = "faculty"        # faculty-level staff, managed by a Dean


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    FORWARDED = "Forwarded"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    # Kept for clients that filter on it; a returned review goes back to
    # Pending and only its chain step is marked returned
    RETURNED = "Returned"


TERMINAL_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED})


class StepStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


class Decision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    FINALIZE = "finalize"


class LeaveCategory(str, enum.Enum):
    MEDICAL = "medical"
    UNPAID = "unpaid"


def _values(enum_cls):
    return [member.value for member in enum_cls]


def enum_column(enum_cls, **kwargs) -> Column:
    """Enum column persisted by value, portable across SQLite and PostgreSQL"""
    return Column(
        SQLEnum(enum_cls, values_callable=_values, native_enum=False, length=20),
        **kwargs,
    )


class WorkflowRequest(Base):
    """
    One leave application or one performance-review submission.

    Status, chain and reconciliation are only ever changed by the decision
    engine; span and category are frozen once a decision is recorded.
    """
    __tablename__ = "workflow_requests"

    id = Column(Integer, primary_key=True, index=True)
    kind = enum_column(RequestKind, nullable=False, index=True)
    category = enum_column(Category, nullable=False, index=True)
    subject_id = Column(String(64), nullable=False, index=True)
    subject_name = Column(String(200), nullable=True)
    subject_level = enum_column(SubjectLevel, nullable=False, default=SubjectLevel.DEPARTMENT)
    department = Column(String(100), nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    total_units = Column(Integer, nullable=False, default=0)
    period = Column(String(20), nullable=True)  # review period, e.g. "2025-Q2"

    status = enum_column(RequestStatus, nullable=False, default=RequestStatus.PENDING, index=True)

    # Opaque to the engine
    reason = Column(Text, nullable=True)
    payload_json = Column(JSON, nullable=True)
    attachments = Column(JSON, nullable=True)

    # Present only once a terminal classify decision has been recorded
    paid_units = Column(Integer, nullable=True)
    unpaid_units = Column(Integer, nullable=True)
    leave_category = enum_column(LeaveCategory, nullable=True)

    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    steps = relationship(
        "ChainStep",
        back_populates="request",
        order_by="ChainStep.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("ix_workflow_requests_subject_status", "subject_id", "status"),
        CheckConstraint("total_units >= 0", name="check_total_units_non_negative"),
        CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="check_start_date_le_end_date",
        ),
    )

    @property
    def has_reconciliation(self) -> bool:
        return self.paid_units is not None and self.unpaid_units is not None

    @property
    def decided_steps(self):
        return [s for s in self.steps if s.status != StepStatus.PENDING]

    @property
    def active_step(self):
        pending = [s for s in self.steps if s.status == StepStatus.PENDING]
        return pending[0] if pending else None


class ChainStep(Base):
    """One role's recorded or pending decision within a request's approval chain"""
    __tablename__ = "chain_steps"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("workflow_requests.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    role = enum_column(Role, nullable=False)
    status = enum_column(StepStatus, nullable=False, default=StepStatus.PENDING)
    actor_name = Column(String(200), nullable=True)
    acted_at = Column(DateTime(timezone=True), nullable=True)
    comment = Column(Text, nullable=True)
    meta_json = Column(JSON, nullable=True)  # meeting dates, day split, leave category

    request = relationship("WorkflowRequest", back_populates="steps")

    __table_args__ = (
        UniqueConstraint("request_id", "seq", name="uq_chain_steps_request_seq"),
    )
