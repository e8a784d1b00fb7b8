"""
Audit trail - read-only projection of approval chains for display and export
"""
from typing import Dict, List, Optional

from hrportal.core.errors import NotFoundError
from hrportal.models.workflow import ChainStep, StepStatus, WorkflowRequest
from hrportal.services.record_store import RecordStore
from hrportal.utils.datetime_utils import iso_local
from hrportal.utils.enums import enum_to_str

EXPORT_HEADERS = [
    "request_id",
    "kind",
    "category",
    "subject_id",
    "subject_name",
    "department",
    "period",
    "start_date",
    "end_date",
    "total_units",
    "request_status",
    "step",
    "role",
    "step_status",
    "by",
    "date",
    "comment",
    "meeting_date",
    "follow_up_date",
    "paid_units",
    "unpaid_units",
    "leave_category",
]


class AuditTrail:
    def __init__(self, store: RecordStore):
        self.store = store

    def history(self, record_id: int, include_pending: bool = True) -> List[ChainStep]:
        """Ordered chain steps of one request (the pending step last, if any)"""
        record = self.store.load(record_id)
        if record is None:
            raise NotFoundError(f"Request with id {record_id} not found", record_id=record_id)
        if include_pending:
            return list(record.steps)
        return [s for s in record.steps if s.status != StepStatus.PENDING]

    def export(self, record_ids: List[int], include_pending: bool = False) -> List[Dict[str, Optional[str]]]:
        """
        One row per chain step, in request order then chain order.

        Rows are handed to the CSV collaborator as-is; nothing is written here.
        """
        rows = []
        for record in self.store.load_many(record_ids):
            for step in record.steps:
                if step.status == StepStatus.PENDING and not include_pending:
                    continue
                rows.append(export_row(record, step))
        return rows


def export_row(record: WorkflowRequest, step: ChainStep) -> Dict[str, Optional[str]]:
    meta = step.meta_json or {}
    return {
        "request_id": record.id,
        "kind": enum_to_str(record.kind),
        "category": enum_to_str(record.category),
        "subject_id": record.subject_id,
        "subject_name": record.subject_name,
        "department": record.department,
        "period": record.period,
        "start_date": record.start_date.isoformat() if record.start_date else None,
        "end_date": record.end_date.isoformat() if record.end_date else None,
        "total_units": record.total_units,
        "request_status": enum_to_str(record.status),
        "step": step.seq,
        "role": enum_to_str(step.role),
        "step_status": enum_to_str(step.status),
        "by": step.actor_name,
        "date": iso_local(step.acted_at),
        "comment": step.comment,
        "meeting_date": meta.get("meeting_date"),
        "follow_up_date": meta.get("follow_up_date"),
        "paid_units": meta.get("paid_units"),
        "unpaid_units": meta.get("unpaid_units"),
        "leave_category": meta.get("leave_category"),
    }
