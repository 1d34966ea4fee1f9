"""Tests for report filtering, grouping and exports."""

import io
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from openpyxl import load_workbook

from feedesk.api.v1.reports.export import detailed_csv, grouped_csv, report_workbook
from feedesk.api.v1.reports.schemas import ReportFilters
from feedesk.api.v1.reports.service import (
    filter_rows,
    group_key,
    group_rows,
    resolve_date_bounds,
    summarize,
)
from feedesk.auth.schemas import SessionContext
from feedesk.core.enums import GroupBy, QuickRange, ReportStatus, Role

from conftest import sample_transactions

YEAR = {"date_from": date(2024, 1, 1), "date_to": date(2024, 12, 31)}


def _receipts(rows):
    return [r.receipt_no for r in rows]


def test_status_filter() -> None:
    rows = sample_transactions()
    assert _receipts(filter_rows(rows, ReportFilters(**YEAR))) == ["R1", "R2"]
    assert _receipts(filter_rows(rows, ReportFilters(status=ReportStatus.VOIDED, **YEAR))) == ["R3"]
    assert len(filter_rows(rows, ReportFilters(status=ReportStatus.ALL, **YEAR))) == 3


def test_date_range_is_inclusive_of_the_end_day() -> None:
    rows = sample_transactions()
    filters = ReportFilters(date_from=date(2024, 4, 1), date_to=date(2024, 4, 20))
    assert _receipts(filter_rows(rows, filters)) == ["R1", "R2"]


def test_empty_range_returns_nothing() -> None:
    filters = ReportFilters(date_from=date(2024, 5, 1), date_to=date(2024, 4, 1))
    assert filter_rows(sample_transactions(), filters) == []


def test_restricted_session_only_sees_its_class() -> None:
    teacher = SessionContext(session_id=uuid4(), name="Teacher 7A", role=Role.TEACHER, class_name="7A")
    rows = sample_transactions()
    assert _receipts(filter_rows(rows, ReportFilters(**YEAR), teacher)) == ["R1"]
    assert filter_rows(rows, ReportFilters(class_name="8B", **YEAR), teacher) == []


def test_search_and_amount_range() -> None:
    rows = sample_transactions()
    assert _receipts(filter_rows(rows, ReportFilters(search="meera", **YEAR))) == ["R2"]
    assert _receipts(filter_rows(rows, ReportFilters(search="r1", **YEAR))) == ["R1"]
    assert _receipts(filter_rows(rows, ReportFilters(min_amount=Decimal("5525"), **YEAR))) == ["R2"]
    assert _receipts(
        filter_rows(rows, ReportFilters(max_amount=Decimal("5500"), include_fine=False, **YEAR))
    ) == ["R1", "R2"]
    assert _receipts(filter_rows(rows, ReportFilters(max_amount=Decimal("5500"), **YEAR))) == ["R1"]


def test_class_fee_head_and_mode_filters() -> None:
    rows = sample_transactions()
    assert _receipts(filter_rows(rows, ReportFilters(class_name="7 a", **YEAR))) == ["R1"]
    assert _receipts(filter_rows(rows, ReportFilters(mode="UPI", **YEAR))) == ["R2"]
    assert _receipts(filter_rows(rows, ReportFilters(fee_head="Transport", status=ReportStatus.ALL, **YEAR))) == ["R3"]


def test_summary() -> None:
    rows = filter_rows(sample_transactions(), ReportFilters(status=ReportStatus.ALL, **YEAR))
    s = summarize(rows, include_fine=True)
    assert s.gross == Decimal("11700")
    assert s.fine == Decimal("25")
    assert s.included == Decimal("11725")
    assert s.void_count == 1
    assert s.count == 3
    assert summarize(rows, include_fine=False).included == Decimal("11700")


@pytest.mark.parametrize("group_by", list(GroupBy))
@pytest.mark.parametrize("include_fine", [True, False])
def test_group_totals_match_summary(group_by: GroupBy, include_fine: bool) -> None:
    rows = filter_rows(sample_transactions(), ReportFilters(status=ReportStatus.ALL, **YEAR))
    groups = group_rows(rows, group_by, include_fine)
    assert sum(g.total for g in groups) == summarize(rows, include_fine).included
    totals = [g.total for g in groups]
    assert totals == sorted(totals, reverse=True)


def test_group_keys() -> None:
    r1 = sample_transactions()[0]
    assert group_key(r1, GroupBy.MONTH) == "2024-04"
    assert group_key(r1, GroupBy.DAY) == "2024-04-05"
    assert group_key(r1, GroupBy.STUDENT) == "Ravi Kumar (102)"
    assert group_key(r1, GroupBy.NONE) == "ALL"
    assert group_key(r1.model_copy(update={"mode": ""}), GroupBy.MODE) == "-"


def test_quick_ranges() -> None:
    today = date(2024, 4, 24)  # a Wednesday
    assert resolve_date_bounds(ReportFilters(quick_range=QuickRange.WEEK), today) == (
        QuickRange.WEEK, date(2024, 4, 22), today,
    )
    assert resolve_date_bounds(ReportFilters(quick_range=QuickRange.MONTH), today)[1] == date(2024, 4, 1)
    assert resolve_date_bounds(ReportFilters(quick_range=QuickRange.FISCAL_YEAR), date(2025, 2, 1)) == (
        QuickRange.FISCAL_YEAR, date(2024, 4, 1), date(2025, 3, 31),
    )
    assert resolve_date_bounds(ReportFilters(date_from=date(2024, 1, 1)), today) == (
        QuickRange.CUSTOM, date(2024, 1, 1), None,
    )


def test_detailed_csv_marks_voided_rows() -> None:
    rows = sample_transactions()[1:]
    lines = detailed_csv(rows, include_fine=True).split("\n")
    assert lines[0] == "Date,Receipt,AdmNo,Name,Class,FeeHead,Amount,Fine,Total,Mode,Voided"
    assert lines[1] == '2024-04-20,R2,201,"Meera Shah",8B,"Tuition",5500,25,5525,UPI,'
    assert lines[2].endswith(",Cash,Y")

    no_fine = detailed_csv(rows, include_fine=False).split("\n")
    assert ",5500,25,5500,UPI," in no_fine[1]


def test_grouped_csv_escapes_quotes() -> None:
    rows = [sample_transactions()[0].model_copy(update={"name": 'Ravi "RK" Kumar'})]
    groups = group_rows(rows, GroupBy.STUDENT)
    lines = grouped_csv(groups).split("\n")
    assert lines[0] == "Group,Receipts,Gross,Fine,Total"
    assert lines[1] == '"Ravi ""RK"" Kumar (102)",1,5000,0,5000'


def test_report_workbook_sheets() -> None:
    rows = filter_rows(sample_transactions(), ReportFilters(**YEAR))
    content = report_workbook(rows, group_rows(rows, GroupBy.MODE))
    wb = load_workbook(io.BytesIO(content))
    assert wb.sheetnames == ["Transactions", "Groups"]
    detail = list(wb["Transactions"].iter_rows(values_only=True))
    assert detail[0][0] == "Date"
    assert detail[2][1] == "R2" and detail[2][8] == 5525
    groups = list(wb["Groups"].iter_rows(values_only=True))
    assert groups[1] == ("UPI", 1, 5500, 25, 5525)

    assert load_workbook(io.BytesIO(report_workbook(rows, []))).sheetnames == ["Transactions"]
