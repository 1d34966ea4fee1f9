from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from feedesk.core.schemas import BulkPaymentResult


class BulkFeeHeadSelection(BaseModel):
    class_name: str
    fee_head: str
    waive_fine: bool = False


class BulkPaymentCreate(BaseModel):
    """Pay the selected fee heads for many students; each student gets the heads of their own class."""

    payment_date: Optional[date] = None
    mode: str = "Cash"
    remarks: str = ""
    adm_nos: List[str] = Field(..., min_length=1)
    fee_heads: List[BulkFeeHeadSelection] = Field(..., min_length=1)


class SkippedItem(BaseModel):
    adm_no: str
    fee_head: Optional[str] = None
    reason: str


class BulkPaymentResponse(BaseModel):
    message: str
    result: BulkPaymentResult
    skipped: List[SkippedItem] = Field(default_factory=list)
