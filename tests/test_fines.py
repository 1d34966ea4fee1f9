"""Unit tests for the late-payment fine."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from feedesk.core.fines import calc_fine

DUE = date(2024, 4, 10)


@pytest.mark.parametrize(
    "days_late, expected",
    [(-5, 0), (0, 0), (1, 25), (15, 25), (16, 50), (30, 50), (31, 75)],
)
def test_fine_steps(days_late: int, expected: int) -> None:
    assert calc_fine(DUE, DUE + timedelta(days=days_late)) == Decimal(expected)


def test_fine_is_non_decreasing() -> None:
    previous = Decimal("0")
    for days in range(0, 120):
        fine = calc_fine(DUE, DUE + timedelta(days=days))
        assert fine >= previous
        previous = fine


def test_missing_or_bad_dates_give_no_fine() -> None:
    assert calc_fine(None, DUE) == 0
    assert calc_fine("", DUE) == 0
    assert calc_fine("not a date", DUE) == 0
    assert calc_fine(DUE, "soon") == 0


def test_string_formats() -> None:
    assert calc_fine("2024-04-10", "2024-04-26") == Decimal("50")
    assert calc_fine("10/4/2024", "2024-04-11") == Decimal("25")


def test_partial_day_counts_as_a_day() -> None:
    assert calc_fine(DUE, datetime(2024, 4, 10, 9, 30)) == Decimal("25")
