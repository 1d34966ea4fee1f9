"""Reminders router: due fee lists with share messages, and their CSV export."""

from fastapi import APIRouter, Depends, Query, Response

from feedesk.auth.rbac import require_any_role
from feedesk.auth.schemas import SessionContext
from feedesk.core.config import settings
from feedesk.core.dependencies import get_ledger
from feedesk.core.ledger import FeeLedger

from .schemas import DEFAULT_TEMPLATE, ReminderFilters, ReminderResponse
from . import service

router = APIRouter(prefix="/api/v1/reminders", tags=["reminders"])


def reminder_filters(
    class_name: str = Query("All"),
    only_overdue: bool = Query(True, description="Skip fee heads that are not yet due"),
    group_by_student: bool = Query(True),
    template: str = Query(DEFAULT_TEMPLATE),
) -> ReminderFilters:
    return ReminderFilters(
        class_name=class_name,
        only_overdue=only_overdue,
        group_by_student=group_by_student,
        template=template or DEFAULT_TEMPLATE,
    )


@router.get("", response_model=ReminderResponse)
async def list_reminders(
    filters: ReminderFilters = Depends(reminder_filters),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> ReminderResponse:
    return service.build_reminders(ledger, filters, session, settings.phone_country_code)


@router.get("/export.csv")
async def export_reminders(
    filters: ReminderFilters = Depends(reminder_filters),
    ledger: FeeLedger = Depends(get_ledger),
    session: SessionContext = Depends(require_any_role),
) -> Response:
    response = service.build_reminders(ledger, filters, session, settings.phone_country_code)
    filename = "overdues_grouped.csv" if response.grouped else "overdues.csv"
    return Response(
        content=service.reminders_csv(response),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
