from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_TEMPLATE = (
    "Reminder: School Fee Due\n"
    "Student: {name} (Adm {admNo}), Class {class}\n"
    "{lines}\n"
    "Please pay at the earliest. Thank you."
)


class ReminderFilters(BaseModel):
    class_name: str = "All"
    only_overdue: bool = True
    group_by_student: bool = True
    template: str = DEFAULT_TEMPLATE


class DueItem(BaseModel):
    """One unpaid fee head of one student."""

    adm_no: str
    name: str
    class_name: str
    phone: str = ""
    fee_head: str
    amount: Decimal
    due_date: Optional[date] = None
    overdue: bool = False
    message: str = ""
    whatsapp_url: Optional[str] = None


class DueLine(BaseModel):
    fee_head: str
    amount: Decimal
    due_date: Optional[date] = None


class StudentDues(BaseModel):
    adm_no: str
    name: str
    class_name: str
    phone: str = ""
    items: List[DueLine] = Field(default_factory=list)
    total: Decimal = Decimal("0")
    earliest_due: Optional[date] = None
    message: str = ""
    whatsapp_url: Optional[str] = None


class ReminderResponse(BaseModel):
    only_overdue: bool
    grouped: bool
    count: int
    items: List[DueItem] = Field(default_factory=list)
    students: List[StudentDues] = Field(default_factory=list)
