"""
Resolve a student's fee obligations.

Local pass: class fee schedule + payment index + fine calculator.
Server pass: one concurrent payment check per locally-unpaid fee head; a check
that fails leaves its obligation as it was.
"""

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, Dict, Iterable, List

from feedesk.core.dates import today_ist
from feedesk.core.fines import calc_fine
from feedesk.core.payment_index import PaidEntry
from feedesk.core.schemas import FeeHeadDefinition, PaymentCheck, Student, class_key

from .schemas import FeeObligation

logger = logging.getLogger(__name__)

PREVIOUSLY_PAID = "Previously paid"

PaymentChecker = Callable[[str], Awaitable[PaymentCheck]]


def resolve_obligations(
    student: Student,
    fee_schedule: Iterable[FeeHeadDefinition],
    payment_index: Dict[str, PaidEntry],
    payment_date: date,
) -> List[FeeObligation]:
    student_class = class_key(student.class_name)
    obligations: List[FeeObligation] = []
    for fee in fee_schedule:
        if class_key(fee.class_name) != student_class:
            continue
        paid = payment_index.get(fee.fee_head.strip())
        obligations.append(
            FeeObligation(
                fee_head=fee.fee_head,
                amount=fee.amount,
                fine=calc_fine(fee.due_date, payment_date),
                due_date=fee.due_date,
                paid_date=paid.date if paid else None,
                receipt_no=paid.receipt_no if paid else None,
                paid_locally=paid is not None,
            )
        )
    return obligations


async def confirm_against_server(
    obligations: List[FeeObligation],
    check: PaymentChecker,
) -> List[FeeObligation]:
    """
    Ask the fee server about every obligation not already paid locally.

    All checks run concurrently; each result only touches its own obligation.
    """
    pending = [o for o in obligations if not o.is_paid]
    if not pending:
        return obligations
    results = await asyncio.gather(*(check(o.fee_head) for o in pending), return_exceptions=True)
    for obligation, result in zip(pending, results):
        if isinstance(result, BaseException):
            logger.warning("Failed to check payment status for %s: %s", obligation.fee_head, result)
            continue
        if result.ok and result.is_paid:
            obligation.mark_paid(
                result.date or today_ist().isoformat(),
                result.receipt_no or PREVIOUSLY_PAID,
                confirmed=True,
            )
    return obligations
