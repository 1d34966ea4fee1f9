"""Transactions router: history search and receipt void / unvoid."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.rbac import require_cashier
from feedesk.auth.schemas import SessionContext
from feedesk.core.dependencies import get_backend, get_ledger
from feedesk.core.exceptions import ServiceError
from feedesk.core.ledger import FeeLedger
from feedesk.db.session import get_db
from feedesk.gateway.base import FeeBackend

from .schemas import ReceiptActionResponse, TransactionListResponse
from . import service

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


@router.get(
    "",
    response_model=TransactionListResponse,
    dependencies=[Depends(require_cashier)],
)
async def list_transactions(
    q: str = Query("", description="Admission no, name, class, fee head or receipt no"),
    ledger: FeeLedger = Depends(get_ledger),
) -> TransactionListResponse:
    return service.list_transactions(ledger, q)


@router.post("/{receipt_no}/void", response_model=ReceiptActionResponse)
async def void_receipt(
    receipt_no: str,
    db: AsyncSession = Depends(get_db),
    backend: FeeBackend = Depends(get_backend),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_cashier),
) -> ReceiptActionResponse:
    try:
        return await service.void_receipt(db, backend, ledger, session, receipt_no)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{receipt_no}/unvoid", response_model=ReceiptActionResponse)
async def unvoid_receipt(
    receipt_no: str,
    db: AsyncSession = Depends(get_db),
    backend: FeeBackend = Depends(get_backend),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_cashier),
) -> ReceiptActionResponse:
    try:
        return await service.unvoid_receipt(db, backend, ledger, session, receipt_no)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
