"""
Tests for approval history and the audit export
"""
import csv
import io
from datetime import datetime, timezone

import pytest
from fastapi import status
from sqlalchemy.orm import Session

from hrportal.core.config import settings
from hrportal.core.errors import NotFoundError
from hrportal.models.workflow import Category, Decision, Role, StepStatus
from hrportal.services.audit_trail import EXPORT_HEADERS, AuditTrail
from hrportal.services.decision_engine import DecisionCommand, DecisionEngine
from hrportal.services.reconciliation import Reconciliation
from hrportal.services.record_store import SqlAlchemyRecordStore
from hrportal.utils.datetime_utils import iso_local

ACTED_AT = datetime(2025, 3, 20, 4, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(db: Session):
    return SqlAlchemyRecordStore(db)


@pytest.fixture
def decide(store):
    engine = DecisionEngine(store, clock=lambda: ACTED_AT)

    def _decide(record_id, role, decision=Decision.APPROVE, **kwargs):
        command = DecisionCommand(acting_role=role, actor_name=f"{role.value} user", decision=decision, **kwargs)
        return engine.apply(record_id, command).record

    return _decide


@pytest.fixture
def approved_medical(make_request, decide):
    record = make_request(category=Category.MEDICAL, total_units=5)
    decide(record.id, Role.HOD, comment="Certificate attached")
    decide(record.id, Role.VC)
    return decide(record.id, Role.PRESIDENT, reconciliation=Reconciliation(3, 2))


def test_history_is_in_chain_order(store, make_request, decide):
    record = make_request(category=Category.MEDICAL)
    decide(record.id, Role.HOD)

    steps = AuditTrail(store).history(record.id)

    assert [(s.seq, s.role, s.status) for s in steps] == [
        (1, Role.HOD, StepStatus.APPROVED),
        (2, Role.VC, StepStatus.PENDING),
    ]
    decided = AuditTrail(store).history(record.id, include_pending=False)
    assert [s.role for s in decided] == [Role.HOD]


def test_history_of_unknown_request(store):
    with pytest.raises(NotFoundError):
        AuditTrail(store).history(404)


def test_export_has_one_row_per_decided_step(store, approved_medical, make_request, decide):
    other = make_request(category=Category.STANDARD, total_units=2, subject_id="e2")
    decide(other.id, Role.HOD, Decision.REJECT, comment="Exam week")

    rows = AuditTrail(store).export([approved_medical.id, other.id])

    assert [(r["request_id"], r["role"]) for r in rows] == [
        (approved_medical.id, "hod"),
        (approved_medical.id, "vc"),
        (approved_medical.id, "president"),
        (other.id, "hod"),
    ]
    assert all(set(r) == set(EXPORT_HEADERS) for r in rows)
    assert rows[0]["comment"] == "Certificate attached"
    assert rows[0]["by"] == "hod user"
    assert rows[0]["date"] == iso_local(ACTED_AT)
    assert rows[2]["paid_units"] == 3
    assert rows[2]["unpaid_units"] == 2
    assert rows[2]["request_status"] == "Approved"
    assert rows[3]["step_status"] == "rejected"
    assert rows[3]["request_status"] == "Rejected"


def test_export_can_include_pending_step(store, make_request):
    record = make_request(category=Category.FACULTY)

    assert AuditTrail(store).export([record.id]) == []
    rows = AuditTrail(store).export([record.id], include_pending=True)
    assert [(r["role"], r["step_status"], r["by"]) for r in rows] == [("hod", "pending", None)]


def test_export_unknown_id_raises(store, approved_medical):
    with pytest.raises(NotFoundError):
        AuditTrail(store).export([approved_medical.id, 999])


def test_export_csv_endpoint(client, headers, approved_medical):
    response = client.get(
        f"/api/v1/audit/export?ids={approved_medical.id}",
        headers=headers("hr"),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/csv")
    assert "approval-history.csv" in response.headers["content-disposition"]
    reader = csv.DictReader(io.StringIO(response.text))
    assert reader.fieldnames == EXPORT_HEADERS
    rows = list(reader)
    assert [r["role"] for r in rows] == ["hod", "vc", "president"]
    assert rows[1]["comment"] == ""
    assert rows[2]["paid_units"] == "3"


def test_export_json_endpoint(client, headers, approved_medical):
    response = client.get(
        f"/api/v1/audit/export.json?ids={approved_medical.id}",
        headers=headers("president"),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["headers"] == EXPORT_HEADERS
    assert data["total"] == 3


def test_export_requires_approver_role(client, headers, approved_medical):
    response = client.get(
        f"/api/v1/audit/export?ids={approved_medical.id}",
        headers=headers("employee", employee_id="e1"),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.parametrize("ids", ["abc", ",", "1;2"])
def test_export_rejects_malformed_ids(client, headers, ids):
    response = client.get(f"/api/v1/audit/export?ids={ids}", headers=headers("hr"))
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_export_unknown_id_is_404(client, headers):
    response = client.get("/api/v1/audit/export?ids=12345", headers=headers("hr"))

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "not_found"


def test_export_caps_number_of_ids(client, headers, monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_EXPORT_MAX_IDS", 2)

    response = client.get("/api/v1/audit/export?ids=1,2,3", headers=headers("hr"))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "At most 2" in response.json()["detail"]
