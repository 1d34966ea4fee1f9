"""Ledger router: user-initiated reload of students, fee heads and transactions."""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from feedesk.auth.rbac import require_any_role
from feedesk.core.exceptions import GatewayError
from feedesk.core.ledger import FeeLedger

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])


class LedgerStatus(BaseModel):
    students: int
    fee_heads: int
    transactions: int
    version: int


def _status(ledger: FeeLedger) -> LedgerStatus:
    return LedgerStatus(
        students=len(ledger.students),
        fee_heads=len(ledger.fee_heads),
        transactions=len(ledger.transactions),
        version=ledger.version,
    )


@router.post("/refresh", response_model=LedgerStatus, dependencies=[Depends(require_any_role)])
async def refresh_ledger(request: Request) -> LedgerStatus:
    ledger: FeeLedger = request.app.state.ledger
    try:
        await ledger.load()
    except GatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _status(ledger)
