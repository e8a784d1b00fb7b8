"""
Workflow request schemas
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, model_validator

from hrportal.models.workflow import (
    Category,
    Decision,
    LeaveCategory,
    RequestKind,
    RequestStatus,
    Role,
    StepStatus,
    SubjectLevel,
)
from hrportal.utils.datetime_utils import iso_local

LEAVE_CATEGORIES = (Category.STANDARD, Category.MEDICAL)
REVIEW_CATEGORIES = (Category.FACULTY, Category.HOD)


class AttachmentRef(BaseModel):
    """Opaque document reference; content is never opened"""
    id: Optional[str] = None
    name: str
    url: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None


class LeaveCreateRequest(BaseModel):
    """Schema for filing a leave application"""
    category: Category = Field(..., description="standard or medical")
    subject_id: str = Field(..., min_length=1, description="Requesting employee")
    subject_name: Optional[str] = None
    subject_level: SubjectLevel = Field(
        SubjectLevel.DEPARTMENT,
        description="department staff go to their HOD, faculty-level staff to their Dean",
    )
    department: Optional[str] = None
    start_date: date
    end_date: date
    total_units: Optional[int] = Field(None, ge=0, description="Leave days; defaults to inclusive calendar days")
    reason: Optional[str] = None
    attachments: List[AttachmentRef] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_leave(self) -> "LeaveCreateRequest":
        if self.category not in LEAVE_CATEGORIES:
            raise ValueError(f"category must be one of {[c.value for c in LEAVE_CATEGORIES]} for leave requests")
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class ReviewCreateRequest(BaseModel):
    """Schema for submitting a performance review (PAMS)"""
    category: Category = Field(..., description="faculty or hod")
    subject_id: str = Field(..., min_length=1, description="Reviewee")
    subject_name: Optional[str] = None
    department: Optional[str] = None
    period: str = Field(..., min_length=1, description="Review period, e.g. 2025-Q2")
    agenda: Optional[str] = None
    form: Optional[Dict[str, Any]] = Field(None, description="Appraisal form contents, carried untouched")
    attachments: List[AttachmentRef] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_review(self) -> "ReviewCreateRequest":
        if self.category not in REVIEW_CATEGORIES:
            raise ValueError(f"category must be one of {[c.value for c in REVIEW_CATEGORIES]} for reviews")
        return self


class RequestUpdate(BaseModel):
    """Partial edit; span and category only while no decision has been recorded"""
    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    attachments: Optional[List[AttachmentRef]] = None
    category: Optional[Category] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ReconciliationIn(BaseModel):
    paid_units: int
    unpaid_units: int
    leave_category: Optional[LeaveCategory] = None


class DecisionIn(BaseModel):
    """Schema for a decision submitted by the acting role"""
    decision: Decision
    comment: Optional[str] = None
    reconciliation: Optional[ReconciliationIn] = None
    meeting_date: Optional[date] = None
    follow_up_date: Optional[date] = None


class ChainStepOut(BaseModel):
    seq: int
    role: Role
    status: StepStatus
    by: Optional[str] = Field(None, validation_alias=AliasChoices("by", "actor_name"))
    date: Optional[datetime] = Field(None, validation_alias=AliasChoices("date", "acted_at"))
    comment: Optional[str] = None
    meta: Optional[Dict[str, Any]] = Field(None, validation_alias=AliasChoices("meta", "meta_json"))

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("date", when_used="always")
    @classmethod
    def _ser_date(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class SpanOut(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_units: int


class ReconciliationOut(BaseModel):
    paid_units: int
    unpaid_units: int
    leave_category: Optional[LeaveCategory] = None


class RecordSnapshot(BaseModel):
    """A request as seen after the latest committed transition"""
    id: int
    kind: RequestKind
    category: Category
    subject_id: str
    subject_name: Optional[str] = None
    subject_level: SubjectLevel
    department: Optional[str] = None
    period: Optional[str] = None
    span: SpanOut
    status: RequestStatus
    reason: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    approval_chain: List[ChainStepOut]
    reconciliation: Optional[ReconciliationOut] = None
    route: List[Role]
    next_role: Optional[Role] = None
    allowed_decisions: List[Decision] = Field(default_factory=list)
    missing_documents: bool = False
    return_count: int = 0
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> Optional[str]:
        return iso_local(dt)


class RequestListResponse(BaseModel):
    items: List[RecordSnapshot]
    total: int


class NextRoleOut(BaseModel):
    request_id: int
    next_role: Optional[Role] = None
    can_act: bool
    allowed_decisions: List[Decision] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    request_id: int
    status: RequestStatus
    steps: List[ChainStepOut]


class PendingSummaryOut(BaseModel):
    """Open requests awaiting each approver role"""
    by_role: Dict[str, int]
    leaves: int
    reviews: int
    total: int


class NotificationOut(BaseModel):
    id: int
    request_id: int
    new_status: RequestStatus
    acting_role: Role
    recipient_role: Optional[Role] = None
    recipient_subject_id: Optional[str] = None
    message: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_created_at(cls, dt: datetime) -> Optional[str]:
        return iso_local(dt)
