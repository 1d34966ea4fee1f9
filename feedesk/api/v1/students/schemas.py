from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from feedesk.core.schemas import Student


class FeeStatusItem(BaseModel):
    fee_head: str
    amount: Decimal
    due_date: Optional[date] = None
    paid: bool = False
    payment_date: Optional[str] = None
    receipt_no: Optional[str] = None
    fine: Decimal = Decimal("0")


class FeeStatusSummary(BaseModel):
    total_due: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_fine: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")
    payment_complete: bool = True


class StudentFeeStatus(BaseModel):
    student: Student
    fee_status: List[FeeStatusItem] = Field(default_factory=list)
    summary: FeeStatusSummary
