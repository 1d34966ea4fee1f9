"""
Payment desk: the working list of one cashier session and the batch submission workflow.

A submission moves idle -> saving -> success | failed. success and failed are
terminal for that submission and act as idle for whatever the cashier does next.
"""

import asyncio
import functools
import logging
import time
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.audit.service import log_desk_audit
from feedesk.auth.schemas import SessionContext
from feedesk.core.dates import today_ist
from feedesk.core.enums import AuditAction, DeskStatus
from feedesk.core.exceptions import (
    DuplicatePaymentError,
    GatewayError,
    PaymentValidationError,
    ServiceError,
)
from feedesk.core.fines import calc_fine
from feedesk.core.formatting import format_date_ist, format_inr, whatsapp_link
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import BatchItem, PaymentBatchRequest, Student
from feedesk.gateway.base import FeeBackend

from .resolver import PREVIOUSLY_PAID, confirm_against_server, resolve_obligations
from .schemas import DeskView, FeeObligation, Receipt

logger = logging.getLogger(__name__)


def build_receipt(
    receipt_no: str,
    receipt_date: str,
    student: Student,
    items: List[BatchItem],
    mode: str,
    remarks: str = "",
    country_code: str = "91",
) -> Receipt:
    receipt = Receipt(
        receipt_no=receipt_no,
        date=receipt_date,
        student=student,
        items=items,
        mode=mode,
        remarks=remarks,
    )
    lines = [
        "Fee Receipt",
        "------------------",
        f"Student: {student.name} (Adm {student.adm_no})",
        f"Class: {student.class_name}",
        f"Date: {format_date_ist(receipt_date)}",
        *(f"• {i.fee_head}: ₹{format_inr(i.amount + i.fine)}" for i in items),
        f"Total: ₹{format_inr(receipt.total)}",
        f"Mode: {mode}",
    ]
    if remarks:
        lines.append(f"Remarks: {remarks}")
    lines.append(f"Receipt No: {receipt_no}")
    receipt.message = "\n".join(lines)
    receipt.whatsapp_url = whatsapp_link(student.phone, receipt.message, country_code)
    return receipt


class PaymentDesk:
    def __init__(
        self,
        ledger: FeeLedger,
        backend: FeeBackend,
        *,
        default_mode: str = "Cash",
        payment_date: Optional[date] = None,
        reset_delay: Optional[float] = None,
        notice_seconds: float = 4.0,
        country_code: str = "91",
    ) -> None:
        self.ledger = ledger
        self.backend = backend
        self.reset_delay = reset_delay
        self.notice_seconds = notice_seconds
        self.country_code = country_code

        self.student: Optional[Student] = None
        self.payment_date: date = payment_date or today_ist()
        self.mode = default_mode
        self.obligations: List[FeeObligation] = []
        self.status = DeskStatus.IDLE
        self.receipt: Optional[Receipt] = None
        self.last_error: Optional[str] = None

        self._notice: Optional[str] = None
        self._notice_until = 0.0
        # Bumped whenever the working list is rebuilt; stale callbacks compare against it.
        self._generation = 0
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    # --- view ---
    @property
    def notice(self) -> Optional[str]:
        if self._notice and time.monotonic() < self._notice_until:
            return self._notice
        return None

    @property
    def total_selected(self) -> Decimal:
        return sum(
            (o.amount + o.payable_fine for o in self.obligations if o.selected and not o.is_paid),
            Decimal("0"),
        )

    def view(self) -> DeskView:
        return DeskView(
            student=self.student,
            payment_date=self.payment_date,
            mode=self.mode,
            status=self.status,
            obligations=self.obligations,
            total_selected=self.total_selected,
            notice=self.notice,
            receipt=self.receipt,
            last_error=self.last_error,
        )

    # --- working list ---
    async def select_student(self, adm_no: str) -> DeskView:
        self._ensure_not_saving()
        student = self.ledger.find_student(adm_no)
        if student is None:
            raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
        self._cancel_reset()
        self.student = student
        self.receipt = None
        self.last_error = None
        self.status = DeskStatus.IDLE
        await self._load_obligations()
        return self.view()

    async def _load_obligations(self) -> None:
        student = self.student
        self._generation += 1
        self.obligations = resolve_obligations(
            student,
            self.ledger.fee_heads_for(student.class_name),
            self.ledger.payment_index(student.adm_no),
            self.payment_date,
        )
        await confirm_against_server(
            self.obligations,
            functools.partial(self.backend.check_payment_status, student.adm_no),
        )

    def set_payment_date(self, payment_date: date) -> DeskView:
        self.payment_date = payment_date
        for o in self.obligations:
            if o.waive_fine or o.manual_fine:
                continue
            o.fine = calc_fine(o.due_date, payment_date)
        return self.view()

    def set_mode(self, mode: str) -> DeskView:
        self.mode = mode.strip()
        return self.view()

    def _obligation(self, fee_head: str) -> FeeObligation:
        key = fee_head.strip()
        for o in self.obligations:
            if o.fee_head.strip() == key:
                return o
        raise ServiceError(f"Fee head {fee_head!r} is not on the desk", status.HTTP_404_NOT_FOUND)

    def toggle_selection(self, fee_head: str, selected: Optional[bool] = None) -> DeskView:
        o = self._obligation(fee_head)
        if o.is_paid:
            raise ServiceError(f"{o.fee_head} is already paid", status.HTTP_409_CONFLICT)
        o.selected = (not o.selected) if selected is None else selected
        return self.view()

    def set_amount(self, fee_head: str, amount: Decimal) -> DeskView:
        self._obligation(fee_head).amount = amount
        return self.view()

    def toggle_waiver(self, fee_head: str) -> DeskView:
        o = self._obligation(fee_head)
        o.waive_fine = not o.waive_fine
        o.manual_fine = False
        o.fine = Decimal("0") if o.waive_fine else calc_fine(o.due_date, self.payment_date)
        return self.view()

    def set_fine(self, fee_head: str, fine: Decimal) -> DeskView:
        o = self._obligation(fee_head)
        o.fine = fine
        o.manual_fine = True
        o.waive_fine = False
        return self.view()

    def reset_fine(self, fee_head: str) -> DeskView:
        o = self._obligation(fee_head)
        o.fine = calc_fine(o.due_date, self.payment_date)
        o.manual_fine = False
        o.waive_fine = False
        return self.view()

    def _mark_paid(self, fee_heads: List[str], paid_date: str, receipt_no: str) -> None:
        wanted = {h.strip() for h in fee_heads}
        for o in self.obligations:
            if o.fee_head.strip() in wanted:
                o.mark_paid(paid_date, receipt_no)

    # --- submission ---
    def _ensure_not_saving(self) -> None:
        if self.status == DeskStatus.SAVING:
            raise ServiceError("A payment is already being saved", status.HTTP_409_CONFLICT)

    def _set_notice(self, text: str) -> None:
        self._notice = text
        self._notice_until = time.monotonic() + self.notice_seconds

    def _fail(self, message: str) -> None:
        self.status = DeskStatus.FAILED
        self.last_error = message

    async def submit(self, mode: Optional[str] = None, remarks: str = "") -> Receipt:
        self._ensure_not_saving()
        chosen = [o for o in self.obligations if o.selected and not o.is_paid]
        if self.student is None or not self.student.adm_no or not chosen:
            raise PaymentValidationError("Select a student and at least one fee head")

        student = self.student
        if mode:
            self.mode = mode.strip()
        items = [
            BatchItem(fee_head=o.fee_head, amount=o.amount, fine=o.payable_fine, reference="")
            for o in chosen
        ]
        request = PaymentBatchRequest(
            date=self.payment_date.isoformat(),
            adm_no=student.adm_no,
            name=student.name,
            class_name=student.class_name,
            mode=self.mode or "Cash",
            remarks=remarks,
            items=items,
        )

        self.status = DeskStatus.SAVING
        self.last_error = None
        try:
            result = await self.backend.submit_payment_batch(request)
        except DuplicatePaymentError as exc:
            self._fail(exc.message)
            await self._recover_from_duplicate(exc)
            raise
        except Exception as exc:
            self._fail(getattr(exc, "message", None) or str(exc))
            raise
        except asyncio.CancelledError:
            self._fail("Payment submission was cancelled")
            raise

        self.status = DeskStatus.SUCCESS
        self.receipt = build_receipt(
            result.receipt_no,
            result.date,
            student,
            items,
            request.mode,
            remarks,
            self.country_code,
        )
        self._set_notice(f"Payment recorded. Receipt #{result.receipt_no}")
        self._mark_paid([i.fee_head for i in items], result.date, result.receipt_no)
        try:
            await self.ledger.refresh_transactions()
        except GatewayError as exc:
            logger.warning("Refresh transactions failed after save: %s", exc.message)
        self._schedule_reset()
        return self.receipt

    async def _recover_from_duplicate(self, exc: DuplicatePaymentError) -> None:
        logger.warning(
            "Duplicate payment rejected for %s: %s",
            self.student.adm_no if self.student else "-", ", ".join(exc.paid_items),
        )
        try:
            await self.ledger.refresh_transactions()
        except GatewayError as refresh_exc:
            logger.warning("Failed to refresh data after duplicate payment: %s", refresh_exc.message)
        if self.student is not None:
            await self._load_obligations()
        placeholder = today_ist().isoformat()
        reported = {h.strip() for h in exc.paid_items}
        for o in self.obligations:
            if o.fee_head.strip() in reported and not o.is_paid:
                o.mark_paid(placeholder, PREVIOUSLY_PAID)

    # --- post-success reset ---
    def _schedule_reset(self) -> None:
        if self.reset_delay is None:
            return
        self._cancel_reset()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.reset_delay, self._reset_after_success, self._generation)

    def _reset_after_success(self, generation: int) -> None:
        self._reset_handle = None
        if generation != self._generation or self.status == DeskStatus.SAVING:
            return
        self.student = None
        self.obligations = []
        self.status = DeskStatus.IDLE
        self._generation += 1

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def close(self) -> None:
        self._cancel_reset()


class DeskRegistry:
    """
    Desks of the live sessions, keyed by session id. Memory only.

    A desk left untouched for longer than ``max_idle`` seconds outlives its
    access token and is dropped on the next lookup, unless it is saving.
    """

    def __init__(self, factory: Callable[[], PaymentDesk], max_idle: Optional[float] = None) -> None:
        self._factory = factory
        self.max_idle = max_idle
        self._desks: Dict[UUID, PaymentDesk] = {}
        self._last_used: Dict[UUID, float] = {}

    def get(self, session_id: UUID) -> PaymentDesk:
        now = time.monotonic()
        self._prune(now)
        desk = self._desks.get(session_id)
        if desk is None:
            desk = self._desks[session_id] = self._factory()
        self._last_used[session_id] = now
        return desk

    def _prune(self, now: float) -> None:
        if self.max_idle is None:
            return
        stale = [
            sid
            for sid, seen in self._last_used.items()
            if now - seen > self.max_idle and self._desks[sid].status != DeskStatus.SAVING
        ]
        for sid in stale:
            logger.info("Dropping idle desk of session %s", sid)
            self.discard(sid)

    def discard(self, session_id: UUID) -> None:
        self._last_used.pop(session_id, None)
        desk = self._desks.pop(session_id, None)
        if desk is not None:
            desk.close()

    def __len__(self) -> int:
        return len(self._desks)


async def submit_payment(
    db: AsyncSession,
    desk: PaymentDesk,
    session: SessionContext,
    mode: Optional[str] = None,
    remarks: str = "",
) -> Receipt:
    """Submit the desk's selection and record the outcome in the audit trail."""
    adm_no = desk.student.adm_no if desk.student else None
    try:
        receipt = await desk.submit(mode, remarks)
    except DuplicatePaymentError as e:
        await log_desk_audit(
            db,
            AuditAction.DUPLICATE_REJECTED,
            session,
            adm_no=adm_no,
            payload={"paid_items": e.paid_items},
        )
        raise
    await log_desk_audit(
        db,
        AuditAction.PAYMENT,
        session,
        receipt_no=receipt.receipt_no,
        adm_no=receipt.student.adm_no,
        payload={
            "date": receipt.date,
            "mode": receipt.mode,
            "items": [i.model_dump(mode="json") for i in receipt.items],
            "total": str(receipt.total),
        },
    )
    return receipt
