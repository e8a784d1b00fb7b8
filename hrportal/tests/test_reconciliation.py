"""
Tests for paid/unpaid day split validation
"""
import random

import pytest

from hrportal.core.errors import NegativeUnitsError, ReconciliationMismatchError
from hrportal.services.reconciliation import Reconciliation, validate, validate_reconciliation


def _random_triples(seed, count=200):
    rng = random.Random(seed)
    for _ in range(count):
        total = rng.randint(0, 60)
        paid = rng.randint(-5, 65)
        if rng.random() < 0.4:
            # Bias towards exact and off-by-one splits
            unpaid = total - paid + rng.choice((0, 0, 1, -1))
        else:
            unpaid = rng.randint(-5, 65)
        yield total, paid, unpaid


@pytest.mark.parametrize("seed", [0, 1, 7, 42, 2025])
def test_validate_accepts_exactly_non_negative_partitions(seed):
    for total, paid, unpaid in _random_triples(seed):
        should_pass = paid >= 0 and unpaid >= 0 and paid + unpaid == total
        if should_pass:
            validate(total, paid, unpaid)
        else:
            with pytest.raises((NegativeUnitsError, ReconciliationMismatchError)):
                validate(total, paid, unpaid)


@pytest.mark.parametrize("seed", [3, 11])
def test_negative_values_report_negative_units(seed):
    rng = random.Random(seed)
    for _ in range(100):
        total = rng.randint(0, 30)
        paid = rng.randint(-30, -1)
        with pytest.raises(NegativeUnitsError):
            validate(total, paid, total - paid)
        with pytest.raises(NegativeUnitsError):
            validate(total, total - paid, paid)


def test_mismatch_reports_total():
    with pytest.raises(ReconciliationMismatchError) as exc_info:
        validate(5, 3, 1)
    assert exc_info.value.context["total_units"] == 5


def test_zero_total_requires_zero_split():
    validate(0, 0, 0)
    with pytest.raises(ReconciliationMismatchError):
        validate(0, 1, 0)


@pytest.mark.parametrize("paid,unpaid", [(2.5, 2.5), (3.0, 2), ("3", 2), (True, 4)])
def test_non_whole_days_are_rejected(paid, unpaid):
    with pytest.raises(ReconciliationMismatchError):
        validate(5, paid, unpaid)


def test_validate_reconciliation_uses_split():
    validate_reconciliation(5, Reconciliation(paid_units=3, unpaid_units=2))
    with pytest.raises(ReconciliationMismatchError):
        validate_reconciliation(5, Reconciliation(paid_units=3, unpaid_units=1))
