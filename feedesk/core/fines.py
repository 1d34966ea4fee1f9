"""Late-payment fine: a flat step charged for every started block of days past the due date."""

import math
from decimal import Decimal
from typing import Any

from feedesk.core.dates import parse_date

FINE_STEP_DAYS = 15
FINE_PER_STEP = Decimal("25")

_SECONDS_PER_DAY = 24 * 60 * 60


def calc_fine(due_date: Any, pay_date: Any) -> Decimal:
    if due_date is None or due_date == "":
        return Decimal("0")
    due = parse_date(due_date)
    pay = parse_date(pay_date)
    if due is None or pay is None or pay <= due:
        return Decimal("0")
    days_late = math.ceil((pay - due).total_seconds() / _SECONDS_PER_DAY)
    steps = math.ceil(days_late / FINE_STEP_DAYS)
    return FINE_PER_STEP * steps
