from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from feedesk.core.enums import GroupBy, QuickRange, ReportStatus
from feedesk.core.schemas import Transaction


class ReportFilters(BaseModel):
    """Every predicate is independent; a row is reported when all of them hold."""

    status: ReportStatus = ReportStatus.VALID
    quick_range: QuickRange = QuickRange.MONTH
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    class_name: str = "All"
    fee_head: str = "All"
    mode: str = "All"
    search: str = ""
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    include_fine: bool = True
    group_by: GroupBy = GroupBy.NONE


class ReportSummary(BaseModel):
    gross: Decimal = Decimal("0")
    fine: Decimal = Decimal("0")
    included: Decimal = Decimal("0")
    void_count: int = 0
    count: int = 0


class GroupSummary(BaseModel):
    key: str
    receipts: int
    gross: Decimal
    fine: Decimal
    total: Decimal


class ReportResponse(BaseModel):
    quick_range: QuickRange
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    summary: ReportSummary
    groups: List[GroupSummary] = Field(default_factory=list)
    rows: List[Transaction] = Field(default_factory=list)


class FilterOptions(BaseModel):
    classes: List[str]
    fee_heads_by_class: Dict[str, List[str]]
    modes: List[str]


class DuplicatePaymentResponse(BaseModel):
    adm_no: str
    fee_head: str
    receipt_nos: List[str]
