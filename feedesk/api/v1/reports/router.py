"""Reports router: filtered collection report, CSV exports, filter options and duplicates."""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from feedesk.auth.rbac import require_any_role
from feedesk.auth.schemas import SessionContext
from feedesk.core.dependencies import get_ledger
from feedesk.core.enums import GroupBy, QuickRange, ReportStatus
from feedesk.core.ledger import FeeLedger

from .schemas import DuplicatePaymentResponse, FilterOptions, ReportFilters, ReportResponse
from . import export, service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

CSV_MEDIA_TYPE = "text/csv"


def report_filters(
    status_filter: ReportStatus = Query(ReportStatus.VALID, alias="status"),
    quick_range: QuickRange = Query(QuickRange.MONTH),
    date_from: Optional[date] = Query(None, description="Setting a date switches the range to custom"),
    date_to: Optional[date] = Query(None),
    class_name: str = Query("All"),
    fee_head: str = Query("All"),
    mode: str = Query("All"),
    search: str = Query("", description="Admission number, name or receipt number"),
    min_amount: Optional[Decimal] = Query(None),
    max_amount: Optional[Decimal] = Query(None),
    include_fine: bool = Query(True),
    group_by: GroupBy = Query(GroupBy.NONE),
) -> ReportFilters:
    return ReportFilters(
        status=status_filter,
        quick_range=quick_range,
        date_from=date_from,
        date_to=date_to,
        class_name=class_name,
        fee_head=fee_head,
        mode=mode,
        search=search,
        min_amount=min_amount,
        max_amount=max_amount,
        include_fine=include_fine,
        group_by=group_by,
    )


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("", response_model=ReportResponse)
async def read_report(
    filters: ReportFilters = Depends(report_filters),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> ReportResponse:
    return service.build_report(ledger, filters, session)


@router.get("/options", response_model=FilterOptions)
async def read_filter_options(
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> FilterOptions:
    return service.filter_options(ledger, session)


@router.get("/duplicates", response_model=List[DuplicatePaymentResponse])
async def read_duplicate_payments(
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> List[DuplicatePaymentResponse]:
    return service.list_duplicate_payments(ledger, session)


# --- CSV ---
@router.get("/export/detailed.csv")
async def export_detailed(
    filters: ReportFilters = Depends(report_filters),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> Response:
    rows = service.filter_rows(ledger.transactions, filters, session)
    return _csv_response(export.detailed_csv(rows, filters.include_fine), "report-detailed.csv")


@router.get("/export/grouped.csv")
async def export_grouped(
    filters: ReportFilters = Depends(report_filters),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> Response:
    if filters.group_by == GroupBy.NONE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Choose a Group By first")
    rows = service.filter_rows(ledger.transactions, filters, session)
    groups = service.group_rows(rows, filters.group_by, filters.include_fine)
    return _csv_response(export.grouped_csv(groups), "report-grouped.csv")


@router.get("/export/report.xlsx")
async def export_workbook(
    filters: ReportFilters = Depends(report_filters),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> Response:
    rows = service.filter_rows(ledger.transactions, filters, session)
    groups = service.group_rows(rows, filters.group_by, filters.include_fine) if filters.group_by != GroupBy.NONE else []
    return Response(
        content=export.report_workbook(rows, groups, filters.include_fine),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=report.xlsx"},
    )
