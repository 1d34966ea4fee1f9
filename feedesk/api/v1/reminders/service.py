"""
Fee reminders: one row per unpaid fee head, optionally grouped per student,
rendered through a message template into WhatsApp share links and CSV.

Template placeholders: {name} {admNo} {class} {feeHead} {amount} {dueDate} {lines}.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from feedesk.auth.schemas import SessionContext
from feedesk.core.dates import today_ist
from feedesk.core.formatting import csv_text, format_date_ist, format_inr, plain_number, whatsapp_link
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import FeeHeadDefinition, Student, adm_key, class_key

from .schemas import DueItem, DueLine, ReminderFilters, ReminderResponse, StudentDues

ITEM_CSV_HEADER = ["AdmNo", "Name", "Class", "Phone", "FeeHead", "Amount", "DueDate"]
GROUPED_CSV_HEADER = ["AdmNo", "Name", "Class", "Phone", "Heads", "Total", "EarliestDue"]


def _sort_text(value: str) -> str:
    return (value or "").casefold()


def due_rows(
    students: Iterable[Student],
    fee_heads: Iterable[FeeHeadDefinition],
    paid_index: Dict[str, Set[str]],
    class_name: str = "All",
    restricted_class: Optional[str] = None,
    only_overdue: bool = True,
    today: Optional[date] = None,
) -> List[DueItem]:
    """Unpaid fee heads of every matching student, sorted by class, name, fee head."""
    today = today or today_ist()
    wanted = class_key(class_name) if class_name and class_name != "All" else None
    restricted = class_key(restricted_class) if restricted_class else None
    schedule: Dict[str, List[FeeHeadDefinition]] = {}
    for fee in fee_heads:
        schedule.setdefault(class_key(fee.class_name), []).append(fee)

    rows: List[DueItem] = []
    for s in students:
        key = class_key(s.class_name)
        if wanted is not None and key != wanted:
            continue
        if restricted is not None and key != restricted:
            continue
        paid = paid_index.get(adm_key(s.adm_no), set())
        for fee in schedule.get(key, []):
            if fee.fee_head.strip() in paid:
                continue
            overdue = fee.due_date is not None and fee.due_date < today
            if only_overdue and not overdue:
                continue
            rows.append(
                DueItem(
                    adm_no=s.adm_no,
                    name=s.name,
                    class_name=s.class_name,
                    phone=s.phone,
                    fee_head=fee.fee_head,
                    amount=fee.amount,
                    due_date=fee.due_date,
                    overdue=overdue,
                )
            )
    rows.sort(key=lambda r: (_sort_text(r.class_name), _sort_text(r.name), _sort_text(r.fee_head)))
    return rows


def group_by_student(rows: Iterable[DueItem]) -> List[StudentDues]:
    buckets: Dict[str, StudentDues] = {}
    for r in rows:
        bucket = buckets.get(r.adm_no)
        if bucket is None:
            bucket = buckets[r.adm_no] = StudentDues(
                adm_no=r.adm_no, name=r.name, class_name=r.class_name, phone=r.phone
            )
        bucket.items.append(DueLine(fee_head=r.fee_head, amount=r.amount, due_date=r.due_date))
        bucket.total += r.amount
        if r.due_date and (bucket.earliest_due is None or r.due_date < bucket.earliest_due):
            bucket.earliest_due = r.due_date
    groups = list(buckets.values())
    groups.sort(key=lambda g: (_sort_text(g.class_name), _sort_text(g.name)))
    return groups


def _due_line(fee_head: str, amount: Decimal, due_date: Optional[date]) -> str:
    return f"{fee_head}: ₹{format_inr(amount)} (Due {format_date_ist(due_date)})"


def _fill(template: str, values: Dict[str, str]) -> str:
    for placeholder, value in values.items():
        template = template.replace("{" + placeholder + "}", value)
    return template


def render_item_message(template: str, row: DueItem) -> str:
    return _fill(
        template,
        {
            "name": row.name,
            "admNo": row.adm_no,
            "class": row.class_name,
            "feeHead": row.fee_head,
            "amount": format_inr(row.amount),
            "dueDate": format_date_ist(row.due_date),
            "lines": _due_line(row.fee_head, row.amount, row.due_date),
        },
    )


def render_grouped_message(template: str, group: StudentDues) -> str:
    # {feeHead} and {amount} have no single value for a student; they render empty.
    return _fill(
        template,
        {
            "name": group.name,
            "admNo": group.adm_no,
            "class": group.class_name,
            "feeHead": "",
            "amount": "",
            "dueDate": format_date_ist(group.earliest_due),
            "lines": "\n".join(_due_line(i.fee_head, i.amount, i.due_date) for i in group.items),
        },
    )


def build_reminders(
    ledger: FeeLedger,
    filters: ReminderFilters,
    session: SessionContext,
    country_code: str = "91",
    today: Optional[date] = None,
) -> ReminderResponse:
    rows = due_rows(
        ledger.students,
        ledger.fee_heads,
        ledger.global_payment_index(),
        class_name=filters.class_name,
        restricted_class=session.restricted_class,
        only_overdue=filters.only_overdue,
        today=today,
    )
    if filters.group_by_student:
        groups = group_by_student(rows)
        for g in groups:
            g.message = render_grouped_message(filters.template, g)
            g.whatsapp_url = whatsapp_link(g.phone, g.message, country_code)
        return ReminderResponse(
            only_overdue=filters.only_overdue, grouped=True, count=len(groups), students=groups
        )
    for r in rows:
        r.message = render_item_message(filters.template, r)
        r.whatsapp_url = whatsapp_link(r.phone, r.message, country_code)
    return ReminderResponse(only_overdue=filters.only_overdue, grouped=False, count=len(rows), items=rows)


# --- CSV ---
def items_csv(rows: Iterable[DueItem]) -> str:
    lines = [",".join(ITEM_CSV_HEADER)]
    for r in rows:
        lines.append(
            ",".join(
                [
                    r.adm_no,
                    csv_text(r.name),
                    r.class_name,
                    csv_text(r.phone),
                    csv_text(r.fee_head),
                    plain_number(r.amount),
                    format_date_ist(r.due_date),
                ]
            )
        )
    return "\n".join(lines)


def grouped_csv(groups: Iterable[StudentDues]) -> str:
    lines = [",".join(GROUPED_CSV_HEADER)]
    for g in groups:
        heads = "; ".join(f"{i.fee_head} (₹{plain_number(i.amount)})" for i in g.items)
        lines.append(
            ",".join(
                [
                    g.adm_no,
                    csv_text(g.name),
                    g.class_name,
                    csv_text(g.phone),
                    csv_text(heads),
                    plain_number(g.total),
                    format_date_ist(g.earliest_due),
                ]
            )
        )
    return "\n".join(lines)


def reminders_csv(response: ReminderResponse) -> str:
    if response.grouped:
        return grouped_csv(response.students)
    return items_csv(response.items)
