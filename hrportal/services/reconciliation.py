"""
Paid/unpaid day split validation
"""
from dataclasses import dataclass
from typing import Optional

from hrportal.core.errors import NegativeUnitsError, ReconciliationMismatchError
from hrportal.models.workflow import LeaveCategory


@dataclass(frozen=True)
class Reconciliation:
    paid_units: int
    unpaid_units: int
    leave_category: Optional[LeaveCategory] = None


def _is_whole(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate(total_units: int, paid_units: int, unpaid_units: int) -> None:
    """
    Check that a split exactly partitions the request's total duration.

    Raises:
        NegativeUnitsError: if either value is negative
        ReconciliationMismatchError: if the values are not whole days or
            paid_units + unpaid_units != total_units (no tolerance, no rounding)
    """
    if not (_is_whole(paid_units) and _is_whole(unpaid_units)):
        raise ReconciliationMismatchError(
            f"Day split must be whole days, got paid={paid_units!r} unpaid={unpaid_units!r}",
            total_units=total_units,
        )
    if paid_units < 0 or unpaid_units < 0:
        raise NegativeUnitsError(
            f"Day split cannot be negative (paid={paid_units}, unpaid={unpaid_units})",
        )
    if paid_units + unpaid_units != total_units:
        raise ReconciliationMismatchError(
            f"Paid ({paid_units}) + unpaid ({unpaid_units}) days must equal total days ({total_units})",
            total_units=total_units,
        )


def validate_reconciliation(total_units: int, reconciliation: Reconciliation) -> None:
    validate(total_units, reconciliation.paid_units, reconciliation.unpaid_units)
