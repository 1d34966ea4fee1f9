"""
Report aggregation over the transaction history.

filter_rows -> summarize / group_rows. A restricted session (a class teacher)
only ever sees its own class, whatever class filter it asks for.
"""

from collections import OrderedDict
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from feedesk.auth.schemas import SessionContext
from feedesk.core.dates import end_of_day, quick_range, today_ist
from feedesk.core.enums import GroupBy, QuickRange, ReportStatus
from feedesk.core.ledger import FeeLedger
from feedesk.core.payment_index import find_duplicate_payments
from feedesk.core.schemas import Transaction, class_key

from .schemas import (
    DuplicatePaymentResponse,
    FilterOptions,
    GroupSummary,
    ReportFilters,
    ReportResponse,
    ReportSummary,
)

ALL = "All"


def resolve_date_bounds(
    filters: ReportFilters, today: Optional[date] = None
) -> Tuple[QuickRange, Optional[date], Optional[date]]:
    """Explicit dates switch the range to custom; otherwise the quick range sets both bounds."""
    if filters.date_from is not None or filters.date_to is not None:
        return QuickRange.CUSTOM, filters.date_from, filters.date_to
    bounds = quick_range(filters.quick_range, today or today_ist())
    if bounds is None:
        return QuickRange.CUSTOM, None, None
    return filters.quick_range, bounds[0], bounds[1]


def _row_value(row: Transaction, include_fine: bool) -> Decimal:
    return row.amount + (row.fine if include_fine else Decimal("0"))


def filter_rows(
    transactions: Iterable[Transaction],
    filters: ReportFilters,
    session: Optional[SessionContext] = None,
    today: Optional[date] = None,
) -> List[Transaction]:
    _, date_from, date_to = resolve_date_bounds(filters, today)
    start = datetime.combine(date_from, time.min) if date_from else None
    end = end_of_day(date_to) if date_to else None
    restricted = class_key(session.restricted_class) if session and session.restricted_class else None
    wanted_class = class_key(filters.class_name) if filters.class_name and filters.class_name != ALL else None
    wanted_head = filters.fee_head.strip() if filters.fee_head and filters.fee_head != ALL else None
    wanted_mode = filters.mode.strip() if filters.mode and filters.mode != ALL else None
    query = filters.search.strip().lower()

    rows: List[Transaction] = []
    for row in transactions:
        if filters.status == ReportStatus.VALID and row.is_void:
            continue
        if filters.status == ReportStatus.VOIDED and not row.is_void:
            continue
        if restricted is not None and class_key(row.class_name) != restricted:
            continue
        if start is not None or end is not None:
            paid_on = row.paid_on
            if paid_on is None:
                continue
            if start is not None and paid_on < start:
                continue
            if end is not None and paid_on > end:
                continue
        if wanted_class is not None and class_key(row.class_name) != wanted_class:
            continue
        if wanted_head is not None and row.fee_head.strip() != wanted_head:
            continue
        if wanted_mode is not None and row.mode.strip() != wanted_mode:
            continue
        if query and not (
            query in row.adm_no.lower()
            or query in row.name.lower()
            or query in row.receipt_no.lower()
        ):
            continue
        value = _row_value(row, filters.include_fine)
        if filters.min_amount is not None and value < filters.min_amount:
            continue
        if filters.max_amount is not None and value > filters.max_amount:
            continue
        rows.append(row)
    return rows


def summarize(rows: Iterable[Transaction], include_fine: bool = True) -> ReportSummary:
    summary = ReportSummary()
    for row in rows:
        summary.gross += row.amount
        summary.fine += row.fine
        summary.count += 1
        if row.is_void:
            summary.void_count += 1
    summary.included = summary.gross + summary.fine if include_fine else summary.gross
    return summary


def group_key(row: Transaction, group_by: GroupBy) -> str:
    if group_by == GroupBy.CLASS:
        return row.class_name or "-"
    if group_by == GroupBy.FEE_HEAD:
        return row.fee_head or "-"
    if group_by == GroupBy.MODE:
        return row.mode or "-"
    if group_by == GroupBy.DAY:
        return row.date or "-"
    if group_by == GroupBy.MONTH:
        paid_on = row.paid_on
        return paid_on.strftime("%Y-%m") if paid_on else "-"
    if group_by == GroupBy.STUDENT:
        return f"{row.name} ({row.adm_no})"
    return "ALL"


def group_rows(
    rows: Iterable[Transaction], group_by: GroupBy, include_fine: bool = True
) -> List[GroupSummary]:
    """Per-group receipts, gross, fine and total, largest total first."""
    buckets: "OrderedDict[str, List[Transaction]]" = OrderedDict()
    for row in rows:
        buckets.setdefault(group_key(row, group_by), []).append(row)
    groups = []
    for key, members in buckets.items():
        s = summarize(members, include_fine)
        groups.append(GroupSummary(key=key, receipts=s.count, gross=s.gross, fine=s.fine, total=s.included))
    groups.sort(key=lambda g: g.total, reverse=True)
    return groups


def build_report(
    ledger: FeeLedger,
    filters: ReportFilters,
    session: SessionContext,
    today: Optional[date] = None,
) -> ReportResponse:
    mode, date_from, date_to = resolve_date_bounds(filters, today)
    rows = filter_rows(ledger.transactions, filters, session, today)
    groups = group_rows(rows, filters.group_by, filters.include_fine) if filters.group_by != GroupBy.NONE else []
    return ReportResponse(
        quick_range=mode,
        date_from=date_from,
        date_to=date_to,
        summary=summarize(rows, filters.include_fine),
        groups=groups,
        rows=rows,
    )


def filter_options(ledger: FeeLedger, session: SessionContext) -> FilterOptions:
    classes = ledger.classes()
    by_class = ledger.fee_heads_by_class()
    restricted = session.restricted_class
    if restricted:
        key = class_key(restricted)
        classes = [c for c in classes if class_key(c) == key] or [restricted]
        by_class = {c: heads for c, heads in by_class.items() if c == ALL or class_key(c) == key}
    return FilterOptions(classes=classes, fee_heads_by_class=by_class, modes=ledger.modes())


def list_duplicate_payments(ledger: FeeLedger, session: SessionContext) -> List[DuplicatePaymentResponse]:
    transactions = ledger.transactions
    restricted = session.restricted_class
    if restricted:
        key = class_key(restricted)
        transactions = [t for t in transactions if class_key(t.class_name) == key]
    return [
        DuplicatePaymentResponse(adm_no=d.adm_no, fee_head=d.fee_head, receipt_nos=d.receipt_nos)
        for d in find_duplicate_payments(transactions)
    ]
