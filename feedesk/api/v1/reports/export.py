"""Report exports: CSV with one line per transaction or per group, and an Excel workbook with both."""

import io
from typing import Iterable, List

from openpyxl import Workbook

from feedesk.core.formatting import csv_text, plain_number
from feedesk.core.schemas import Transaction

from .schemas import GroupSummary

DETAILED_HEADER = ["Date", "Receipt", "AdmNo", "Name", "Class", "FeeHead", "Amount", "Fine", "Total", "Mode", "Voided"]
GROUPED_HEADER = ["Group", "Receipts", "Gross", "Fine", "Total"]


def detailed_csv(rows: Iterable[Transaction], include_fine: bool = True) -> str:
    lines: List[str] = [",".join(DETAILED_HEADER)]
    for r in rows:
        total = r.amount + (r.fine if include_fine else 0)
        lines.append(
            ",".join(
                [
                    r.date,
                    r.receipt_no,
                    r.adm_no,
                    csv_text(r.name),
                    r.class_name,
                    csv_text(r.fee_head),
                    plain_number(r.amount),
                    plain_number(r.fine),
                    plain_number(total),
                    r.mode,
                    "Y" if r.is_void else "",
                ]
            )
        )
    return "\n".join(lines)


def grouped_csv(groups: Iterable[GroupSummary]) -> str:
    lines: List[str] = [",".join(GROUPED_HEADER)]
    for g in groups:
        lines.append(
            ",".join(
                [
                    csv_text(g.key),
                    str(g.receipts),
                    plain_number(g.gross),
                    plain_number(g.fine),
                    plain_number(g.total),
                ]
            )
        )
    return "\n".join(lines)


def report_workbook(
    rows: Iterable[Transaction],
    groups: Iterable[GroupSummary],
    include_fine: bool = True,
) -> bytes:
    """Detailed sheet first; a Groups sheet only when the report is grouped."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Transactions"
    ws.append(DETAILED_HEADER)
    for r in rows:
        total = r.amount + (r.fine if include_fine else 0)
        ws.append(
            [
                r.date,
                r.receipt_no,
                r.adm_no,
                r.name,
                r.class_name,
                r.fee_head,
                float(r.amount),
                float(r.fine),
                float(total),
                r.mode,
                "Y" if r.is_void else "",
            ]
        )

    groups = list(groups)
    if groups:
        ws_groups = wb.create_sheet("Groups")
        ws_groups.append(GROUPED_HEADER)
        for g in groups:
            ws_groups.append([g.key, g.receipts, float(g.gross), float(g.fine), float(g.total)])

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
