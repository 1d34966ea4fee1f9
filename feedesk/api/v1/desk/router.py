"""Payment desk router: student selection, obligation edits and batch submission."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.rbac import require_cashier
from feedesk.auth.schemas import SessionContext
from feedesk.core.dependencies import get_desk_registry, get_ledger
from feedesk.core.exceptions import DuplicatePaymentError, ServiceError
from feedesk.core.ledger import FeeLedger
from feedesk.db.session import get_db

from .schemas import (
    AmountUpdate,
    DeskView,
    FineUpdate,
    ModeUpdate,
    ObligationAction,
    PaymentDateUpdate,
    Receipt,
    SelectionUpdate,
    SelectStudentRequest,
    SubmitRequest,
)
from .service import DeskRegistry, PaymentDesk
from . import service

router = APIRouter(prefix="/api/v1/desk", tags=["desk"])


async def get_desk(
    session: SessionContext = Depends(require_cashier),
    registry: DeskRegistry = Depends(get_desk_registry),
    ledger: FeeLedger = Depends(get_ledger),
) -> PaymentDesk:
    return registry.get(session.session_id)


@router.get("", response_model=DeskView)
async def read_desk(desk: PaymentDesk = Depends(get_desk)) -> DeskView:
    return desk.view()


@router.post("/student", response_model=DeskView)
async def select_student(
    payload: SelectStudentRequest,
    desk: PaymentDesk = Depends(get_desk),
) -> DeskView:
    try:
        return await desk.select_student(payload.adm_no)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/payment-date", response_model=DeskView)
async def set_payment_date(
    payload: PaymentDateUpdate,
    desk: PaymentDesk = Depends(get_desk),
) -> DeskView:
    return desk.set_payment_date(payload.payment_date)


@router.put("/mode", response_model=DeskView)
async def set_mode(payload: ModeUpdate, desk: PaymentDesk = Depends(get_desk)) -> DeskView:
    return desk.set_mode(payload.mode)


@router.post("/selection", response_model=DeskView)
async def toggle_selection(
    payload: SelectionUpdate,
    desk: PaymentDesk = Depends(get_desk),
) -> DeskView:
    try:
        return desk.toggle_selection(payload.fee_head, payload.selected)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/amount", response_model=DeskView)
async def set_amount(payload: AmountUpdate, desk: PaymentDesk = Depends(get_desk)) -> DeskView:
    try:
        return desk.set_amount(payload.fee_head, payload.amount)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Fines ---
@router.post("/fine/waiver", response_model=DeskView)
async def toggle_waiver(
    payload: ObligationAction,
    desk: PaymentDesk = Depends(get_desk),
) -> DeskView:
    try:
        return desk.toggle_waiver(payload.fee_head)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/fine", response_model=DeskView)
async def set_fine(payload: FineUpdate, desk: PaymentDesk = Depends(get_desk)) -> DeskView:
    try:
        return desk.set_fine(payload.fee_head, payload.fine)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/fine/reset", response_model=DeskView)
async def reset_fine(
    payload: ObligationAction,
    desk: PaymentDesk = Depends(get_desk),
) -> DeskView:
    try:
        return desk.reset_fine(payload.fee_head)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Submit ---
@router.post("/submit", response_model=Receipt, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payload: SubmitRequest,
    desk: PaymentDesk = Depends(get_desk),
    session: SessionContext = Depends(require_cashier),
    db: AsyncSession = Depends(get_db),
) -> Receipt:
    try:
        return await service.submit_payment(db, desk, session, payload.mode, payload.remarks)
    except DuplicatePaymentError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={"message": e.message, "paid_items": e.paid_items},
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
