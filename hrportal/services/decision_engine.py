"""
Decision engine - the single mutation entry point for workflow requests.

apply() checks, in order: the record exists, it is not terminal, the acting
role is the one the router expects, the decision is allowed at that step and
any day split balances. Only then is the chain changed, inside the store's
atomic update, so a failed call leaves no trace. The RequestDecided event is
handed to the sink after the commit.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from hrportal.core.errors import (
    InvalidDecisionError,
    OutOfOrderActorError,
    ReconciliationMismatchError,
    TerminalRequestError,
)
from hrportal.models.workflow import (
    ChainStep,
    Decision,
    RequestKind,
    RequestStatus,
    Role,
    StepStatus,
    TERMINAL_STATUSES,
    WorkflowRequest,
)
from hrportal.services import chain_router
from hrportal.services.reconciliation import Reconciliation, validate_reconciliation
from hrportal.services.record_store import RecordStore
from hrportal.utils.datetime_utils import now_utc
from hrportal.utils.json_serializer import sanitize_for_json


@dataclass(frozen=True)
class DecisionCommand:
    """A decision assembled by the caller (role, action, comment) and submitted whole"""
    acting_role: Role
    actor_name: str
    decision: Decision
    comment: Optional[str] = None
    reconciliation: Optional[Reconciliation] = None
    meeting_date: Optional[date] = None
    follow_up_date: Optional[date] = None


@dataclass(frozen=True)
class RequestDecided:
    record_id: int
    new_status: RequestStatus
    acting_role: Role
    decision: Decision
    next_role: Optional[Role]
    subject_id: str
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass
class DecisionOutcome:
    record: WorkflowRequest
    previous_status: RequestStatus
    event: RequestDecided


class DecisionEngine:
    def __init__(
        self,
        store: RecordStore,
        sink=None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.store = store
        self.sink = sink
        self.clock = clock

    def apply(self, record_id: int, command: DecisionCommand) -> DecisionOutcome:
        """
        Apply one role's decision to a request.

        Raises:
            NotFoundError: no record with this id
            TerminalRequestError: record is already Approved or Rejected
            OutOfOrderActorError: acting role is not the expected next approver
            InvalidDecisionError: decision not permitted at the current step
            NegativeUnitsError / ReconciliationMismatchError: day split invalid
        """
        with self.store.atomic_update(record_id) as record:
            previous_status = record.status
            step, move = self._check(record, command)
            self._record(record, step, move, command)
            event = RequestDecided(
                record_id=record.id,
                new_status=record.status,
                acting_role=command.acting_role,
                decision=command.decision,
                next_role=move.next_role,
                subject_id=record.subject_id,
                occurred_at=self.clock(),
            )

        if self.sink is not None:
            self.sink.publish(event)
        return DecisionOutcome(record=record, previous_status=previous_status, event=event)

    def _check(self, record: WorkflowRequest, command: DecisionCommand):
        if record.status in TERMINAL_STATUSES:
            raise TerminalRequestError(
                f"Request {record.id} is already {record.status.value}",
                status=record.status.value,
            )

        step = chain_router.expected_step(record)
        if step is None or command.acting_role != step.role:
            expected = step.role.value if step else None
            raise OutOfOrderActorError(
                f"Request {record.id} is awaiting '{expected}', not '{_role_value(command.acting_role)}'",
                expected_role=expected,
            )

        move = chain_router.transition(record, command.decision)

        split = command.reconciliation
        if step.reconciles and move.is_final_approval:
            if split is None:
                raise ReconciliationMismatchError(
                    f"Approval by '{step.role.value}' must classify all {record.total_units} days as paid or unpaid",
                    total_units=record.total_units,
                )
            validate_reconciliation(record.total_units, split)
        elif split is not None:
            if record.kind != RequestKind.LEAVE or not move.is_final_approval:
                raise InvalidDecisionError(
                    "A paid/unpaid split can only accompany the final approval of a leave request"
                )
            validate_reconciliation(record.total_units, split)

        return step, move

    def _record(self, record: WorkflowRequest, step, move, command: DecisionCommand) -> None:
        now = self.clock()
        active = record.active_step
        if active is None or active.role != step.role:
            active = _schedule(record, step.role)

        meta = {}
        if command.meeting_date is not None:
            meta["meeting_date"] = command.meeting_date
        if command.follow_up_date is not None:
            meta["follow_up_date"] = command.follow_up_date
        if command.reconciliation is not None:
            meta["paid_units"] = command.reconciliation.paid_units
            meta["unpaid_units"] = command.reconciliation.unpaid_units
            meta["leave_category"] = command.reconciliation.leave_category

        active.status = move.step_status
        active.actor_name = command.actor_name
        active.acted_at = now
        active.comment = command.comment or None
        active.meta_json = sanitize_for_json(meta) or None

        if move.next_role is not None:
            _schedule(record, move.next_role)

        record.status = move.new_status
        if command.reconciliation is not None:
            record.paid_units = command.reconciliation.paid_units
            record.unpaid_units = command.reconciliation.unpaid_units
            record.leave_category = command.reconciliation.leave_category
        # Always touch the row so the version check covers step-only changes
        record.updated_at = now


def _schedule(record: WorkflowRequest, role: Role) -> ChainStep:
    """Append the pending step for the role expected to act next"""
    seq = max((s.seq for s in record.steps), default=0) + 1
    step = ChainStep(seq=seq, role=role, status=StepStatus.PENDING)
    record.steps.append(step)
    return step


def seed_chain(record: WorkflowRequest) -> ChainStep:
    """Open the chain of a new request with the route's first role pending"""
    return _schedule(record, chain_router.route_for(record).originating_role)


def _role_value(role) -> str:
    return getattr(role, "value", str(role))
