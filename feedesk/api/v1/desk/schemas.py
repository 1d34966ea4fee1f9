"""Payment desk schemas: obligations, receipts and desk actions."""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from feedesk.core.enums import DeskStatus
from feedesk.core.schemas import BatchItem, Student


class FeeObligation(BaseModel):
    """One student's owed-or-settled status for one fee head. Lives only on the desk."""

    fee_head: str
    amount: Decimal
    fine: Decimal = Decimal("0")
    due_date: Optional[date] = None
    paid_date: Optional[str] = None
    receipt_no: Optional[str] = None
    paid_locally: bool = False
    paid_confirmed: bool = False
    selected: bool = False
    waive_fine: bool = False
    manual_fine: bool = False

    @computed_field
    @property
    def is_paid(self) -> bool:
        return self.paid_locally or self.paid_confirmed

    @computed_field
    @property
    def selectable(self) -> bool:
        return not self.is_paid

    @computed_field
    @property
    def payable_fine(self) -> Decimal:
        return Decimal("0") if self.waive_fine else self.fine

    def mark_paid(self, paid_date: str, receipt_no: str, confirmed: bool = False) -> None:
        self.paid_date = paid_date
        self.receipt_no = receipt_no
        if confirmed:
            self.paid_confirmed = True
        else:
            self.paid_locally = True
        self.selected = False


class Receipt(BaseModel):
    receipt_no: str
    date: str
    student: Student
    items: List[BatchItem]
    mode: str
    remarks: str = ""
    message: str = ""
    whatsapp_url: Optional[str] = None

    @computed_field
    @property
    def total(self) -> Decimal:
        return sum((i.amount + i.fine for i in self.items), Decimal("0"))


class DeskView(BaseModel):
    student: Optional[Student] = None
    payment_date: date
    mode: str
    status: DeskStatus
    obligations: List[FeeObligation] = Field(default_factory=list)
    total_selected: Decimal = Decimal("0")
    notice: Optional[str] = None
    receipt: Optional[Receipt] = None
    last_error: Optional[str] = None


# --- Requests ---
class SelectStudentRequest(BaseModel):
    adm_no: str = Field(..., min_length=1)


class PaymentDateUpdate(BaseModel):
    payment_date: date


class ModeUpdate(BaseModel):
    mode: str = Field(..., min_length=1, description="Cash, UPI, Cheque, Bank")


class ObligationAction(BaseModel):
    fee_head: str


class SelectionUpdate(ObligationAction):
    selected: Optional[bool] = Field(None, description="Omit to toggle")


class AmountUpdate(ObligationAction):
    amount: Decimal = Field(..., ge=0)


class FineUpdate(ObligationAction):
    fine: Decimal = Field(..., ge=0)


class SubmitRequest(BaseModel):
    mode: Optional[str] = None
    remarks: str = ""
