from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from feedesk.core.schemas import Transaction


class TransactionListResponse(BaseModel):
    total_collected: Decimal
    count: int
    transactions: List[Transaction] = Field(default_factory=list)


class ReceiptActionResponse(BaseModel):
    receipt_no: str
    voided: bool
    message: str
