"""Tests for the payment desk workflow."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from feedesk.api.v1.desk.resolver import PREVIOUSLY_PAID
from feedesk.api.v1.desk.service import DeskRegistry, PaymentDesk
from feedesk.core.enums import DeskStatus
from feedesk.core.exceptions import (
    DuplicatePaymentError,
    GatewayError,
    PaymentValidationError,
    ServiceError,
)
from feedesk.core.fines import calc_fine
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import PaymentCheck

PAY_DATE = date(2024, 4, 26)


def _desk(ledger: FeeLedger, backend, reset_delay=None) -> PaymentDesk:
    return PaymentDesk(ledger, backend, payment_date=PAY_DATE, reset_delay=reset_delay)


def _by_head(desk: PaymentDesk, fee_head: str):
    return next(o for o in desk.obligations if o.fee_head == fee_head)


@pytest.mark.asyncio
async def test_submit_success_marks_paid_and_builds_receipt(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    assert desk.total_selected == Decimal("5050")

    receipt = await desk.submit(remarks="April")

    assert receipt.receipt_no == "171234"
    assert receipt.total == Decimal("5050")
    assert desk.status == DeskStatus.SUCCESS
    assert desk.notice == "Payment recorded. Receipt #171234"
    tuition = _by_head(desk, "Tuition")
    assert tuition.is_paid and tuition.receipt_no == "171234"
    assert not tuition.selected

    sent = backend.submitted[0]
    assert sent.adm_no == "101"
    assert sent.mode == "Cash"
    assert [(i.fee_head, i.amount, i.fine) for i in sent.items] == [("Tuition", Decimal("5000"), Decimal("50"))]

    assert "Receipt No: 171234" in receipt.message
    assert "• Tuition: ₹5,050" in receipt.message
    assert "Remarks: April" in receipt.message
    assert receipt.whatsapp_url.startswith("https://wa.me/919876543210?text=Fee%20Receipt")
    # the ledger picked up the new row
    assert "Tuition" in ledger.payment_index("101")


@pytest.mark.asyncio
async def test_success_stands_when_refresh_fails(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    backend.fail_transactions = True

    receipt = await desk.submit()

    assert receipt.receipt_no == "171234"
    assert desk.status == DeskStatus.SUCCESS
    assert _by_head(desk, "Tuition").receipt_no == "171234"


@pytest.mark.asyncio
async def test_validation_fails_before_any_network_call(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    with pytest.raises(PaymentValidationError):
        await desk.submit()

    await desk.select_student("101")
    with pytest.raises(PaymentValidationError):
        await desk.submit()
    assert backend.submitted == []
    assert desk.status == DeskStatus.IDLE


@pytest.mark.asyncio
async def test_duplicate_payment_recovers_and_names_items(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    backend.submit_error = DuplicatePaymentError(["Tuition"], "These fees have already been paid")

    with pytest.raises(DuplicatePaymentError) as exc_info:
        await desk.submit()

    assert "Tuition" in exc_info.value.message
    assert desk.status == DeskStatus.FAILED
    tuition = _by_head(desk, "Tuition")
    assert tuition.is_paid
    assert not tuition.selectable
    assert tuition.receipt_no == PREVIOUSLY_PAID
    assert not _by_head(desk, "Transport").is_paid


@pytest.mark.asyncio
async def test_hard_failure_leaves_obligations_alone(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    backend.submit_error = GatewayError("HTTP 500")

    with pytest.raises(GatewayError):
        await desk.submit()

    assert desk.status == DeskStatus.FAILED
    assert desk.last_error == "HTTP 500"
    tuition = _by_head(desk, "Tuition")
    assert tuition.selected and not tuition.is_paid
    assert desk.receipt is None


@pytest.mark.asyncio
async def test_submit_rejected_while_saving(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    desk.status = DeskStatus.SAVING
    with pytest.raises(ServiceError) as exc_info:
        await desk.submit()
    assert exc_info.value.status_code == 409
    assert backend.submitted == []


@pytest.mark.asyncio
async def test_selection_uses_server_confirmation(ledger: FeeLedger, backend) -> None:
    backend.paid_checks[("101", "Transport")] = PaymentCheck(
        ok=True, is_paid=True, date="2024-05-02", receipt_no="R7"
    )
    backend.failing_checks.add("Tuition")
    desk = _desk(ledger, backend)
    view = await desk.select_student("101")

    transport = next(o for o in view.obligations if o.fee_head == "Transport")
    assert transport.is_paid and transport.receipt_no == "R7"
    assert not _by_head(desk, "Tuition").is_paid
    with pytest.raises(ServiceError):
        desk.toggle_selection("Transport")


@pytest.mark.asyncio
async def test_unknown_student(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    with pytest.raises(ServiceError) as exc_info:
        await desk.select_student("999")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_fine_edits(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    tuition = _by_head(desk, "Tuition")

    desk.toggle_waiver("Tuition")
    assert tuition.payable_fine == 0
    desk.toggle_waiver("Tuition")
    assert tuition.fine == calc_fine(tuition.due_date, PAY_DATE)

    desk.set_fine("Transport", Decimal("10"))
    desk.set_payment_date(date(2024, 6, 30))
    assert _by_head(desk, "Transport").fine == Decimal("10")
    assert tuition.fine == calc_fine(tuition.due_date, date(2024, 6, 30))

    desk.reset_fine("Transport")
    assert _by_head(desk, "Transport").fine == calc_fine(date(2024, 5, 10), date(2024, 6, 30))
    assert not _by_head(desk, "Transport").manual_fine


@pytest.mark.asyncio
async def test_waived_fine_survives_payment_date_change(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    tuition = _by_head(desk, "Tuition")
    assert tuition.fine > 0

    desk.toggle_waiver("Tuition")
    later = date(2024, 7, 15)
    desk.set_payment_date(later)
    assert tuition.waive_fine
    assert tuition.fine == 0
    assert tuition.payable_fine == 0

    desk.toggle_waiver("Tuition")
    assert not tuition.waive_fine
    assert tuition.fine == calc_fine(tuition.due_date, later)
    assert tuition.fine > 0


@pytest.mark.asyncio
async def test_form_clears_after_success(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend, reset_delay=0.01)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    await desk.submit()
    await asyncio.sleep(0.05)

    assert desk.student is None
    assert desk.obligations == []
    assert desk.status == DeskStatus.IDLE
    assert desk.receipt is not None


@pytest.mark.asyncio
async def test_newer_selection_is_not_cleared(ledger: FeeLedger, backend) -> None:
    desk = _desk(ledger, backend, reset_delay=0.02)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")
    await desk.submit()
    await desk.select_student("201")
    await asyncio.sleep(0.06)

    assert desk.student.adm_no == "201"
    assert desk.obligations


@pytest.mark.asyncio
async def test_registry_keeps_one_desk_per_session(ledger: FeeLedger, backend) -> None:
    from uuid import uuid4

    registry = DeskRegistry(lambda: _desk(ledger, backend))
    sid = uuid4()
    assert registry.get(sid) is registry.get(sid)
    assert registry.get(uuid4()) is not registry.get(sid)
    registry.discard(sid)
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_registry_drops_idle_desks(ledger: FeeLedger, backend) -> None:
    from uuid import uuid4

    registry = DeskRegistry(lambda: _desk(ledger, backend), max_idle=0.01)
    stale_sid = uuid4()
    stale = registry.get(stale_sid)
    await asyncio.sleep(0.05)

    registry.get(uuid4())
    assert len(registry) == 1
    assert registry.get(stale_sid) is not stale


@pytest.mark.asyncio
async def test_cancelled_submit_does_not_leave_desk_saving(ledger: FeeLedger, backend) -> None:
    started = asyncio.Event()

    async def hang(request):
        started.set()
        await asyncio.sleep(10)

    backend.submit_payment_batch = hang
    desk = _desk(ledger, backend)
    await desk.select_student("101")
    desk.toggle_selection("Tuition")

    task = asyncio.create_task(desk.submit())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert desk.status == DeskStatus.FAILED
    assert desk.last_error
    await desk.select_student("201")
    assert desk.status == DeskStatus.IDLE
