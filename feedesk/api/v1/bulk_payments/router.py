"""Bulk payments router."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.rbac import require_cashier
from feedesk.auth.schemas import SessionContext
from feedesk.core.dependencies import get_backend, get_ledger
from feedesk.core.exceptions import ServiceError
from feedesk.core.ledger import FeeLedger
from feedesk.db.session import get_db
from feedesk.gateway.base import FeeBackend

from .schemas import BulkPaymentCreate, BulkPaymentResponse
from . import service

router = APIRouter(prefix="/api/v1/bulk-payments", tags=["bulk-payments"])


@router.post("", response_model=BulkPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_bulk_payment(
    payload: BulkPaymentCreate,
    db: AsyncSession = Depends(get_db),
    backend: FeeBackend = Depends(get_backend),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_cashier),
) -> BulkPaymentResponse:
    try:
        return await service.process_bulk_payment(db, backend, ledger, session, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
