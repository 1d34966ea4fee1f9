"""Canonical records loaded from the fee sheet. One field name per concept."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from feedesk.core.dates import parse_date


def adm_key(value) -> str:
    """Comparable form of an admission number."""
    return str(value if value is not None else "").strip().lower()


def class_key(value) -> str:
    """Comparable form of a class name: all whitespace removed, lower-cased."""
    return re.sub(r"\s+", "", str(value if value is not None else "")).lower()


def is_void_flag(value) -> bool:
    return str(value or "").strip().upper().startswith("Y")


class Student(BaseModel):
    adm_no: str
    name: str = ""
    class_name: str = ""
    phone: str = ""


class FeeHeadDefinition(BaseModel):
    class_name: str
    fee_head: str
    amount: Decimal = Decimal("0")
    due_date: Optional[date] = None


class Transaction(BaseModel):
    receipt_no: str = ""
    date: str = ""
    adm_no: str = ""
    name: str = ""
    class_name: str = ""
    fee_head: str = ""
    amount: Decimal = Decimal("0")
    fine: Decimal = Decimal("0")
    mode: str = ""
    void: str = ""

    @property
    def is_void(self) -> bool:
        return is_void_flag(self.void)

    @property
    def paid_on(self) -> Optional[datetime]:
        return parse_date(self.date)


class PaymentCheck(BaseModel):
    """Answer of the fee server's single-obligation check."""

    ok: bool = False
    is_paid: bool = False
    date: Optional[str] = None
    receipt_no: Optional[str] = None


class BatchItem(BaseModel):
    fee_head: str
    amount: Decimal
    fine: Decimal = Decimal("0")
    reference: str = ""
    waived: bool = False


class PaymentBatchRequest(BaseModel):
    date: str
    adm_no: str
    name: str
    class_name: str
    mode: str
    remarks: str = ""
    items: list[BatchItem] = Field(default_factory=list)


class BatchReceipt(BaseModel):
    receipt_no: str
    date: str


class BulkPaymentEntry(BaseModel):
    adm_no: str
    name: str
    class_name: str
    phone: str = ""
    items: list[BatchItem] = Field(default_factory=list)


class BulkPaymentRequest(BaseModel):
    date: str
    mode: str
    remarks: str = ""
    payments: list[BulkPaymentEntry] = Field(default_factory=list)


class BulkPaymentResult(BaseModel):
    receipts_generated: int = 0
    successful_payments: list[dict] = Field(default_factory=list)
    failed_payments: list[dict] = Field(default_factory=list)
    date: str = ""
