"""
Chain routing - which role acts next on a request, and what each decision does.

All category-specific policy lives in ROUTING_TABLE: adding a route is a table
edit. Every function here is pure; the chain position is derived from the
decided steps of the record, never stored separately.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from hrportal.core.errors import InvalidDecisionError
from hrportal.models.workflow import (
    Category,
    Decision,
    RequestStatus,
    Role,
    StepStatus,
    SubjectLevel,
    TERMINAL_STATUSES,
    WorkflowRequest,
)


@dataclass(frozen=True)
class RouteStep:
    role: Role
    decisions: FrozenSet[Decision]
    # Explicit back-edge taken by a `return` decision
    return_to: Optional[Role] = None
    # Approval at this step must carry a paid/unpaid split
    reconciles: bool = False


@dataclass(frozen=True)
class Route:
    name: str
    category: Category
    steps: Tuple[RouteStep, ...]
    # None matches any subject level
    subject_level: Optional[SubjectLevel] = None
    # Supporting documents are expected but never enforced
    documents_expected: bool = False

    @property
    def roles(self) -> Tuple[Role, ...]:
        return tuple(step.role for step in self.steps)

    @property
    def originating_role(self) -> Role:
        return self.steps[0].role

    @property
    def terminal_role(self) -> Role:
        return self.steps[-1].role

    @property
    def reconciliation_role(self) -> Optional[Role]:
        for step in self.steps:
            if step.reconciles:
                return step.role
        return None

    def index_of(self, role: Role) -> int:
        return self.roles.index(role)

    def matches(self, category: Category, subject_level: SubjectLevel) -> bool:
        return self.category == category and self.subject_level in (None, subject_level)


@dataclass(frozen=True)
class Transition:
    """Outcome of a decision at the current step"""
    step_status: StepStatus
    new_status: RequestStatus
    next_role: Optional[Role]
    is_final_approval: bool = False


LEAVE_DECISIONS = frozenset({Decision.APPROVE, Decision.REJECT})
REVIEW_CONFIRM = frozenset({Decision.APPROVE})
REVIEW_VC = frozenset({Decision.APPROVE, Decision.RETURN})
REVIEW_FINALIZE = frozenset({Decision.FINALIZE, Decision.APPROVE})

ROUTING_TABLE: Tuple[Route, ...] = (
    Route(
        name="leave-standard-department",
        category=Category.STANDARD,
        subject_level=SubjectLevel.DEPARTMENT,
        steps=(RouteStep(Role.HOD, LEAVE_DECISIONS),),
    ),
    Route(
        name="leave-standard-faculty",
        category=Category.STANDARD,
        subject_level=SubjectLevel.FACULTY,
        steps=(RouteStep(Role.DEAN, LEAVE_DECISIONS),),
    ),
    Route(
        name="leave-medical",
        category=Category.MEDICAL,
        steps=(
            RouteStep(Role.HOD, LEAVE_DECISIONS),
            RouteStep(Role.VC, LEAVE_DECISIONS),
            RouteStep(Role.PRESIDENT, LEAVE_DECISIONS, reconciles=True),
        ),
        documents_expected=True,
    ),
    Route(
        name="review-faculty",
        category=Category.FACULTY,
        steps=(
            RouteStep(Role.HOD, REVIEW_CONFIRM),
            RouteStep(Role.VC, REVIEW_VC, return_to=Role.HOD),
            RouteStep(Role.HR, REVIEW_FINALIZE),
        ),
    ),
    Route(
        name="review-hod",
        category=Category.HOD,
        steps=(
            RouteStep(Role.DEAN, REVIEW_CONFIRM),
            RouteStep(Role.VC, REVIEW_VC, return_to=Role.DEAN),
            RouteStep(Role.HR, REVIEW_FINALIZE),
        ),
    ),
)


def resolve_route(category: Category, subject_level: SubjectLevel = SubjectLevel.DEPARTMENT) -> Route:
    """Look up the route for a category (and subject level, for standard leave)"""
    for route in ROUTING_TABLE:
        if route.matches(category, subject_level):
            return route
    raise LookupError(f"No approval route for category={category.value} level={subject_level.value}")


def route_for(record: WorkflowRequest) -> Route:
    return resolve_route(record.category, record.subject_level or SubjectLevel.DEPARTMENT)


def chain_position(record: WorkflowRequest) -> Optional[int]:
    """
    Index into the route of the step expected to act, or None when the chain is terminal.

    Replays the decided steps: an approval moves past the acting role, a return
    jumps to the step's back-edge, a rejection ends the chain.
    """
    if record.status in TERMINAL_STATUSES:
        return None
    route = route_for(record)
    position = 0
    for step in record.decided_steps:
        if step.status == StepStatus.REJECTED:
            return None
        if step.status == StepStatus.APPROVED:
            position = route.index_of(step.role) + 1
        elif step.status == StepStatus.RETURNED:
            back_edge = route.steps[route.index_of(step.role)].return_to
            position = route.index_of(back_edge)
    if position >= len(route.steps):
        return None
    return position


def expected_step(record: WorkflowRequest) -> Optional[RouteStep]:
    position = chain_position(record)
    if position is None:
        return None
    return route_for(record).steps[position]


def next_role(record: WorkflowRequest) -> Optional[Role]:
    """Role expected to act next, or None if the chain is terminal"""
    step = expected_step(record)
    return step.role if step else None


def is_valid_actor(record: WorkflowRequest, role) -> bool:
    expected = next_role(record)
    return expected is not None and expected.value == getattr(role, "value", role)


def allowed_decisions(record: WorkflowRequest) -> FrozenSet[Decision]:
    step = expected_step(record)
    return step.decisions if step else frozenset()


def transition(record: WorkflowRequest, decision: Decision) -> Transition:
    """
    Compute what `decision` by the expected role does to the chain.

    Raises:
        InvalidDecisionError: if the decision is not permitted at the current step
    """
    route = route_for(record)
    position = chain_position(record)
    step = route.steps[position]
    if decision not in step.decisions:
        allowed = sorted(d.value for d in step.decisions)
        raise InvalidDecisionError(
            f"Decision '{decision.value}' is not permitted for role '{step.role.value}' "
            f"on a {record.category.value} request",
            allowed_decisions=allowed,
        )

    if decision == Decision.REJECT:
        return Transition(StepStatus.REJECTED, RequestStatus.REJECTED, None)

    if decision == Decision.RETURN:
        return Transition(StepStatus.RETURNED, RequestStatus.PENDING, step.return_to)

    if position == len(route.steps) - 1:
        return Transition(StepStatus.APPROVED, RequestStatus.APPROVED, None, is_final_approval=True)

    return Transition(StepStatus.APPROVED, RequestStatus.FORWARDED, route.steps[position + 1].role)


def requires_reconciliation(record: WorkflowRequest, role: Role) -> bool:
    """True when `role` is the route's designated reconciliation role"""
    return route_for(record).reconciliation_role == role
