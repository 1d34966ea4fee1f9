"""
Map raw sheet rows onto the canonical records.

The sheet has been edited by hand over the years, so the same column shows up
under several names (cls/class, name/studentName, phone/mobile). Every alias is
resolved here, once, when the data is loaded.
"""

from typing import Any, Dict, Iterable, List

from feedesk.core.dates import parse_day
from feedesk.core.formatting import to_decimal
from feedesk.core.schemas import FeeHeadDefinition, Student, Transaction


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        val = raw.get(key)
        if val is not None and val != "":
            return val
    return None


def _text(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def normalize_student(raw: Dict[str, Any]) -> Student:
    return Student(
        adm_no=_text(_first(raw, "admNo", "admissionNo", "adm_no")),
        name=_text(_first(raw, "name", "studentName")),
        class_name=_text(_first(raw, "cls", "class", "className")),
        phone=_text(_first(raw, "phone", "mobile")),
    )


def normalize_fee_head(raw: Dict[str, Any]) -> FeeHeadDefinition:
    return FeeHeadDefinition(
        class_name=_text(_first(raw, "class", "cls", "className")),
        fee_head=_text(_first(raw, "feeHead", "head", "fee_head")),
        amount=to_decimal(_first(raw, "amount")),
        due_date=parse_day(_first(raw, "dueDate", "due_date")),
    )


def normalize_transaction(raw: Dict[str, Any]) -> Transaction:
    return Transaction(
        receipt_no=_text(_first(raw, "receiptNo", "receipt")),
        date=_text(_first(raw, "date")),
        adm_no=_text(_first(raw, "admNo", "admissionNo")),
        name=_text(_first(raw, "name", "studentName")),
        class_name=_text(_first(raw, "cls", "class")),
        fee_head=_text(_first(raw, "feeHead", "head")),
        amount=to_decimal(_first(raw, "amount")),
        fine=to_decimal(_first(raw, "fine")),
        mode=_text(_first(raw, "mode")),
        void=_text(_first(raw, "void", "voided")),
    )


def normalize_rows(rows: Iterable[Dict[str, Any]], adapter) -> List:
    return [adapter(row) for row in rows or [] if isinstance(row, dict)]
