"""Student lookup for the desk search box and the per-student fee status sheet."""

from datetime import date
from typing import List, Optional

from fastapi import status

from feedesk.auth.schemas import SessionContext
from feedesk.core.dates import today_ist
from feedesk.core.exceptions import ServiceError
from feedesk.core.fines import calc_fine
from feedesk.core.formatting import csv_text, plain_number
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import Student, class_key

from .schemas import FeeStatusItem, FeeStatusSummary, StudentFeeStatus

MAX_SUGGESTIONS = 12
FEE_STATUS_CSV_HEADER = ["FeeHead", "Amount", "DueDate", "Status", "PaymentDate", "ReceiptNo"]


def suggest_students(
    ledger: FeeLedger, query: str, session: Optional[SessionContext] = None
) -> List[Student]:
    """Admission number containing the query, or name starting with it."""
    q = (query or "").strip().lower()
    if not q:
        return []
    restricted = session.restricted_class if session else None
    out: List[Student] = []
    for s in ledger.students:
        if restricted and class_key(s.class_name) != class_key(restricted):
            continue
        if q in s.adm_no.lower() or s.name.lower().startswith(q):
            out.append(s)
            if len(out) == MAX_SUGGESTIONS:
                break
    return out


def fee_status(ledger: FeeLedger, adm_no: str, today: Optional[date] = None) -> StudentFeeStatus:
    if not (adm_no or "").strip():
        raise ServiceError("Please enter an admission number", status.HTTP_400_BAD_REQUEST)
    student = ledger.find_student(adm_no)
    if student is None:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)

    today = today or today_ist()
    paid = ledger.payment_index(student.adm_no)
    items: List[FeeStatusItem] = []
    summary = FeeStatusSummary()
    for fee in ledger.fee_heads_for(student.class_name):
        entry = paid.get(fee.fee_head.strip())
        if entry is not None:
            items.append(
                FeeStatusItem(
                    fee_head=fee.fee_head,
                    amount=fee.amount,
                    due_date=fee.due_date,
                    paid=True,
                    payment_date=entry.date,
                    receipt_no=entry.receipt_no,
                )
            )
            summary.total_paid += fee.amount
            continue
        fine = calc_fine(fee.due_date, today)
        items.append(FeeStatusItem(fee_head=fee.fee_head, amount=fee.amount, due_date=fee.due_date, fine=fine))
        summary.total_due += fee.amount
        summary.total_fine += fine
        summary.payment_complete = False
    summary.grand_total = summary.total_due + summary.total_fine
    return StudentFeeStatus(student=student, fee_status=items, summary=summary)


def fee_status_csv(status_sheet: StudentFeeStatus) -> str:
    lines = [",".join(FEE_STATUS_CSV_HEADER)]
    for item in status_sheet.fee_status:
        lines.append(
            ",".join(
                [
                    csv_text(item.fee_head),
                    plain_number(item.amount),
                    item.due_date.isoformat() if item.due_date else "",
                    "Paid" if item.paid else "Pending",
                    item.payment_date or "",
                    item.receipt_no or "",
                ]
            )
        )
    return "\n".join(lines)
