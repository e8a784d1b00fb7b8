"""
Audit export endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrportal.core.config import settings
from hrportal.core.deps import ActorContext, get_db, require_approver
from hrportal.services.audit_trail import EXPORT_HEADERS, AuditTrail
from hrportal.services.record_store import SqlAlchemyRecordStore
from hrportal.utils.csv_export import stream_csv
from hrportal.utils.json_serializer import sanitize_for_json

router = APIRouter()


def _parse_ids(ids: str) -> List[int]:
    try:
        parsed = [int(part) for part in ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ids must be a comma-separated list of request ids",
        )
    if not parsed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ids is required")
    if len(parsed) > settings.AUDIT_EXPORT_MAX_IDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.AUDIT_EXPORT_MAX_IDS} requests can be exported at once",
        )
    return parsed


@router.get("/export")
async def export_csv_endpoint(
    ids: str = Query(..., description="Comma-separated request ids"),
    include_pending: bool = Query(False),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_approver),
):
    """Decision history of the given requests as CSV (one row per chain step)"""
    rows = AuditTrail(SqlAlchemyRecordStore(db)).export(_parse_ids(ids), include_pending=include_pending)
    return stream_csv(EXPORT_HEADERS, rows, filename="approval-history.csv")


@router.get("/export.json")
async def export_json_endpoint(
    ids: str = Query(..., description="Comma-separated request ids"),
    include_pending: bool = Query(False),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_approver),
):
    """Same rows as the CSV export, as JSON"""
    rows = AuditTrail(SqlAlchemyRecordStore(db)).export(_parse_ids(ids), include_pending=include_pending)
    return {"headers": EXPORT_HEADERS, "rows": sanitize_for_json(rows), "total": len(rows)}
