"""
Tests for approval routing: which role acts next and what each decision does
"""
import pytest

from hrportal.core.errors import InvalidDecisionError
from hrportal.models.workflow import (
    Category,
    ChainStep,
    Decision,
    RequestKind,
    RequestStatus,
    Role,
    StepStatus,
    SubjectLevel,
    WorkflowRequest,
)
from hrportal.services import chain_router
from hrportal.services.chain_router import ROUTING_TABLE, resolve_route


def _record(category, subject_level=SubjectLevel.DEPARTMENT, decided=(), status=RequestStatus.PENDING):
    """Unsaved request whose chain holds the given (role, step status) pairs"""
    kind = RequestKind.LEAVE if category in (Category.STANDARD, Category.MEDICAL) else RequestKind.REVIEW
    record = WorkflowRequest(
        kind=kind,
        category=category,
        subject_id="e1",
        subject_level=subject_level,
        total_units=5,
        status=status,
    )
    for seq, (role, step_status) in enumerate(decided, start=1):
        record.steps.append(ChainStep(seq=seq, role=role, status=step_status))
    return record


@pytest.mark.parametrize(
    "category,level,roles",
    [
        (Category.STANDARD, SubjectLevel.DEPARTMENT, (Role.HOD,)),
        (Category.STANDARD, SubjectLevel.FACULTY, (Role.DEAN,)),
        (Category.MEDICAL, SubjectLevel.DEPARTMENT, (Role.HOD, Role.VC, Role.PRESIDENT)),
        (Category.MEDICAL, SubjectLevel.FACULTY, (Role.HOD, Role.VC, Role.PRESIDENT)),
        (Category.FACULTY, SubjectLevel.DEPARTMENT, (Role.HOD, Role.VC, Role.HR)),
        (Category.HOD, SubjectLevel.FACULTY, (Role.DEAN, Role.VC, Role.HR)),
    ],
)
def test_resolve_route_roles(category, level, roles):
    assert resolve_route(category, level).roles == roles


def test_only_medical_route_reconciles():
    reconciling = [route.name for route in ROUTING_TABLE if route.reconciliation_role is not None]
    assert reconciling == ["leave-medical"]
    assert resolve_route(Category.MEDICAL).reconciliation_role == Role.PRESIDENT


def test_review_back_edges_point_at_originating_role():
    for category, level in ((Category.FACULTY, SubjectLevel.DEPARTMENT), (Category.HOD, SubjectLevel.FACULTY)):
        route = resolve_route(category, level)
        vc_step = route.steps[route.index_of(Role.VC)]
        assert vc_step.return_to == route.originating_role


def test_fresh_record_awaits_originating_role():
    assert chain_router.next_role(_record(Category.MEDICAL)) == Role.HOD
    assert chain_router.next_role(_record(Category.STANDARD, SubjectLevel.FACULTY)) == Role.DEAN
    assert chain_router.next_role(_record(Category.HOD, SubjectLevel.FACULTY)) == Role.DEAN


def test_next_role_advances_past_approved_steps():
    record = _record(
        Category.MEDICAL,
        decided=[(Role.HOD, StepStatus.APPROVED), (Role.VC, StepStatus.APPROVED)],
        status=RequestStatus.FORWARDED,
    )
    assert chain_router.next_role(record) == Role.PRESIDENT
    assert chain_router.requires_reconciliation(record, Role.PRESIDENT)
    assert not chain_router.requires_reconciliation(record, Role.VC)


def test_return_reverts_to_originating_role():
    record = _record(
        Category.FACULTY,
        decided=[(Role.HOD, StepStatus.APPROVED), (Role.VC, StepStatus.RETURNED)],
    )
    assert chain_router.next_role(record) == Role.HOD
    assert chain_router.allowed_decisions(record) == frozenset({Decision.APPROVE})


def test_terminal_record_has_no_next_role():
    approved = _record(Category.STANDARD, decided=[(Role.HOD, StepStatus.APPROVED)], status=RequestStatus.APPROVED)
    rejected = _record(Category.MEDICAL, decided=[(Role.HOD, StepStatus.REJECTED)], status=RequestStatus.REJECTED)
    for record in (approved, rejected):
        assert chain_router.next_role(record) is None
        assert chain_router.allowed_decisions(record) == frozenset()
        assert not chain_router.is_valid_actor(record, Role.HOD)


@pytest.mark.parametrize("route", ROUTING_TABLE, ids=lambda r: r.name)
def test_only_expected_role_is_valid_at_each_step(route):
    """Walking a route in order, exactly one role may act at every step"""
    level = route.subject_level or SubjectLevel.DEPARTMENT
    decided = []
    for position, step in enumerate(route.steps):
        status = RequestStatus.PENDING if position == 0 else RequestStatus.FORWARDED
        record = _record(route.category, level, decided=decided, status=status)
        for role in Role:
            assert chain_router.is_valid_actor(record, role) == (role == step.role)
            assert chain_router.is_valid_actor(record, role.value) == (role == step.role)
        decided.append((step.role, StepStatus.APPROVED))


def test_transition_forward_and_final():
    record = _record(Category.MEDICAL)
    move = chain_router.transition(record, Decision.APPROVE)
    assert move.new_status == RequestStatus.FORWARDED
    assert move.next_role == Role.VC
    assert not move.is_final_approval

    single = _record(Category.STANDARD)
    move = chain_router.transition(single, Decision.APPROVE)
    assert move.new_status == RequestStatus.APPROVED
    assert move.next_role is None
    assert move.is_final_approval


def test_transition_reject_ends_chain():
    record = _record(Category.MEDICAL, decided=[(Role.HOD, StepStatus.APPROVED)], status=RequestStatus.FORWARDED)
    move = chain_router.transition(record, Decision.REJECT)
    assert move.step_status == StepStatus.REJECTED
    assert move.new_status == RequestStatus.REJECTED
    assert move.next_role is None


def test_transition_return_takes_back_edge():
    record = _record(Category.HOD, SubjectLevel.FACULTY, decided=[(Role.DEAN, StepStatus.APPROVED)])
    move = chain_router.transition(record, Decision.RETURN)
    assert move.step_status == StepStatus.RETURNED
    assert move.new_status == RequestStatus.PENDING
    assert move.next_role == Role.DEAN


@pytest.mark.parametrize(
    "category,decided,decision",
    [
        (Category.STANDARD, [], Decision.RETURN),
        (Category.STANDARD, [], Decision.FINALIZE),
        (Category.MEDICAL, [(Role.HOD, StepStatus.APPROVED)], Decision.RETURN),
        (Category.FACULTY, [], Decision.REJECT),
        (Category.FACULTY, [], Decision.RETURN),
        (Category.FACULTY, [(Role.HOD, StepStatus.APPROVED)], Decision.FINALIZE),
        (Category.FACULTY, [(Role.HOD, StepStatus.APPROVED), (Role.VC, StepStatus.APPROVED)], Decision.RETURN),
    ],
)
def test_transition_rejects_decisions_not_offered_at_step(category, decided, decision):
    record = _record(category, decided=decided)
    with pytest.raises(InvalidDecisionError) as exc_info:
        chain_router.transition(record, decision)
    assert exc_info.value.context["allowed_decisions"]


def test_hr_may_finalize_or_approve():
    record = _record(
        Category.FACULTY,
        decided=[(Role.HOD, StepStatus.APPROVED), (Role.VC, StepStatus.APPROVED)],
        status=RequestStatus.FORWARDED,
    )
    assert chain_router.allowed_decisions(record) == frozenset({Decision.FINALIZE, Decision.APPROVE})
    for decision in (Decision.FINALIZE, Decision.APPROVE):
        move = chain_router.transition(record, decision)
        assert move.new_status == RequestStatus.APPROVED
        assert move.is_final_approval


@pytest.mark.parametrize("category", list(Category))
@pytest.mark.parametrize("level", list(SubjectLevel))
def test_every_category_and_level_has_a_route(category, level):
    route = resolve_route(category, level)
    assert route.category == category
    assert route.terminal_role in route.roles


@pytest.mark.parametrize("category", [Category.FACULTY, Category.HOD])
def test_review_route_ignores_subject_level(category):
    assert resolve_route(category, SubjectLevel.DEPARTMENT) is resolve_route(category, SubjectLevel.FACULTY)
