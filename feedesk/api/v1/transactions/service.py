"""Transaction history: search, collected total, and voiding / restoring receipts."""

import logging
from decimal import Decimal
from typing import Iterable, List

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.audit.service import log_desk_audit
from feedesk.auth.schemas import SessionContext
from feedesk.core.enums import AuditAction
from feedesk.core.exceptions import GatewayError, ServiceError
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import Transaction
from feedesk.gateway.base import FeeBackend

from .schemas import ReceiptActionResponse, TransactionListResponse

logger = logging.getLogger(__name__)


def search_transactions(transactions: Iterable[Transaction], query: str = "") -> List[Transaction]:
    """Case-insensitive substring match on admission no, name, class, fee head and receipt no."""
    q = (query or "").strip().lower()
    if not q:
        return list(transactions)
    return [
        t
        for t in transactions
        if any(q in field.lower() for field in (t.adm_no, t.name, t.class_name, t.fee_head, t.receipt_no))
    ]


def total_collected(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount + t.fine for t in transactions if not t.is_void), Decimal("0"))


def list_transactions(ledger: FeeLedger, query: str = "") -> TransactionListResponse:
    rows = search_transactions(ledger.transactions, query)
    return TransactionListResponse(
        total_collected=total_collected(ledger.transactions),
        count=len(rows),
        transactions=rows,
    )


async def _set_void(
    db: AsyncSession,
    backend: FeeBackend,
    ledger: FeeLedger,
    session: SessionContext,
    receipt_no: str,
    voided: bool,
) -> ReceiptActionResponse:
    receipt_no = (receipt_no or "").strip()
    if not receipt_no:
        raise ServiceError("Receipt number is required", status.HTTP_400_BAD_REQUEST)

    if voided:
        await backend.void_receipt(receipt_no)
    else:
        await backend.unvoid_receipt(receipt_no)
    logger.info("Receipt #%s %s by %s", receipt_no, "voided" if voided else "restored", session.name)

    await log_desk_audit(
        db,
        AuditAction.VOID if voided else AuditAction.UNVOID,
        session,
        receipt_no=receipt_no,
    )
    try:
        await ledger.refresh_transactions()
    except GatewayError as e:
        logger.warning("Refresh transactions failed after receipt change: %s", e.message)

    return ReceiptActionResponse(
        receipt_no=receipt_no,
        voided=voided,
        message=f"Receipt #{receipt_no} {'voided' if voided else 'restored'}",
    )


async def void_receipt(
    db: AsyncSession,
    backend: FeeBackend,
    ledger: FeeLedger,
    session: SessionContext,
    receipt_no: str,
) -> ReceiptActionResponse:
    return await _set_void(db, backend, ledger, session, receipt_no, voided=True)


async def unvoid_receipt(
    db: AsyncSession,
    backend: FeeBackend,
    ledger: FeeLedger,
    session: SessionContext,
    receipt_no: str,
) -> ReceiptActionResponse:
    return await _set_void(db, backend, ledger, session, receipt_no, voided=False)
