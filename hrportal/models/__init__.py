"""
Database models
"""
from hrportal.models.workflow import (
    WorkflowRequest,
    ChainStep,
    Role,
    RequestKind,
    Category,
    CATEGORY_KIND,
    SubjectLevel,
    RequestStatus,
    TERMINAL_STATUSES,
    StepStatus,
    Decision,
    LeaveCategory,
)
from hrportal.models.notification import Notification

__all__ = [
    "WorkflowRequest",
    "ChainStep",
    "Role",
    "RequestKind",
    "Category",
    "CATEGORY_KIND",
    "SubjectLevel",
    "RequestStatus",
    "TERMINAL_STATUSES",
    "StepStatus",
    "Decision",
    "LeaveCategory",
    "Notification",
]
