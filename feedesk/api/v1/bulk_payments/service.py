"""Bulk payment: one submission covering many students and fee heads."""

import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.audit.service import log_desk_audit
from feedesk.auth.schemas import SessionContext
from feedesk.core.dates import today_ist
from feedesk.core.enums import AuditAction
from feedesk.core.exceptions import GatewayError, PaymentValidationError
from feedesk.core.fines import calc_fine
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import BatchItem, BulkPaymentEntry, BulkPaymentRequest, adm_key, class_key
from feedesk.gateway.base import FeeBackend

from .schemas import BulkPaymentCreate, BulkPaymentResponse, SkippedItem

logger = logging.getLogger(__name__)


def build_bulk_request(
    ledger: FeeLedger,
    payload: BulkPaymentCreate,
    today: Optional[date] = None,
) -> Tuple[BulkPaymentRequest, List[SkippedItem]]:
    """
    Expand the selection into per-student items.

    Unknown students, fee heads not scheduled for the student's class and heads
    already paid are skipped and reported back.
    """
    pay_date = payload.payment_date or today or today_ist()
    paid_index = ledger.global_payment_index()
    payments: List[BulkPaymentEntry] = []
    skipped: List[SkippedItem] = []

    for adm_no in dict.fromkeys(a.strip() for a in payload.adm_nos if a.strip()):
        student = ledger.find_student(adm_no)
        if student is None:
            skipped.append(SkippedItem(adm_no=adm_no, reason="Student not found"))
            continue
        schedule = {f.fee_head.strip(): f for f in ledger.fee_heads_for(student.class_name)}
        paid = paid_index.get(adm_key(student.adm_no), set())
        items: List[BatchItem] = []
        for sel in payload.fee_heads:
            if class_key(sel.class_name) != class_key(student.class_name):
                continue
            head = sel.fee_head.strip()
            fee = schedule.get(head)
            if fee is None:
                skipped.append(SkippedItem(adm_no=student.adm_no, fee_head=head, reason="Not scheduled for class"))
                continue
            if head in paid:
                skipped.append(SkippedItem(adm_no=student.adm_no, fee_head=head, reason="Already paid"))
                continue
            items.append(
                BatchItem(
                    fee_head=fee.fee_head,
                    amount=fee.amount,
                    fine=0 if sel.waive_fine else calc_fine(fee.due_date, pay_date),
                    waived=sel.waive_fine,
                )
            )
        if not items:
            skipped.append(SkippedItem(adm_no=student.adm_no, reason="Nothing to pay"))
            continue
        payments.append(
            BulkPaymentEntry(
                adm_no=student.adm_no,
                name=student.name,
                class_name=student.class_name,
                phone=student.phone,
                items=items,
            )
        )

    request = BulkPaymentRequest(
        date=pay_date.isoformat(),
        mode=(payload.mode or "Cash").strip(),
        remarks=payload.remarks,
        payments=payments,
    )
    return request, skipped


async def process_bulk_payment(
    db: AsyncSession,
    backend: FeeBackend,
    ledger: FeeLedger,
    session: SessionContext,
    payload: BulkPaymentCreate,
) -> BulkPaymentResponse:
    request, skipped = build_bulk_request(ledger, payload)
    if not request.payments:
        raise PaymentValidationError("Please select at least one student and one fee head")

    result = await backend.bulk_payment(request)
    logger.info(
        "Bulk payment: %d receipts for %d students, %d failed",
        result.receipts_generated, len(request.payments), len(result.failed_payments),
    )
    await log_desk_audit(
        db,
        AuditAction.BULK_PAYMENT,
        session,
        payload={
            "date": request.date,
            "mode": request.mode,
            "students": [p.adm_no for p in request.payments],
            "receipts_generated": result.receipts_generated,
            "failed": len(result.failed_payments),
        },
    )
    try:
        await ledger.refresh_transactions()
    except GatewayError as e:
        logger.warning("Refresh transactions failed after bulk payment: %s", e.message)

    return BulkPaymentResponse(
        message=f"Successfully processed {result.receipts_generated} of {len(request.payments)} payments",
        result=result,
        skipped=skipped,
    )
