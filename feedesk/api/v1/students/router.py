"""Students router: search suggestions and fee status."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from feedesk.auth.rbac import require_any_role, require_cashier
from feedesk.auth.schemas import SessionContext
from feedesk.core.dependencies import get_ledger
from feedesk.core.exceptions import ServiceError
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import Student

from .schemas import StudentFeeStatus
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get("/suggest", response_model=List[Student])
async def suggest_students(
    q: str = Query("", description="Admission number fragment or name prefix"),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> List[Student]:
    return service.suggest_students(ledger, q, session)


@router.get(
    "/{adm_no}/fee-status",
    response_model=StudentFeeStatus,
    dependencies=[Depends(require_cashier)],
)
async def read_fee_status(adm_no: str, ledger: FeeLedger = Depends(get_ledger)) -> StudentFeeStatus:
    try:
        return service.fee_status(ledger, adm_no)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{adm_no}/fee-status.csv", dependencies=[Depends(require_cashier)])
async def export_fee_status(adm_no: str, ledger: FeeLedger = Depends(get_ledger)) -> Response:
    try:
        sheet = service.fee_status(ledger, adm_no)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(
        content=service.fee_status_csv(sheet),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="fee-status-{sheet.student.adm_no}.csv"'},
    )
