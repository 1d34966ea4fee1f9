"""Operations the fee desk needs from the spreadsheet server."""

from typing import List, Optional, Protocol

from feedesk.core.schemas import (
    BatchReceipt,
    BulkPaymentRequest,
    BulkPaymentResult,
    FeeHeadDefinition,
    PaymentBatchRequest,
    PaymentCheck,
    Student,
    Transaction,
)


class FeeBackend(Protocol):
    async def list_students(self) -> List[Student]: ...

    async def list_fee_heads(self) -> List[FeeHeadDefinition]: ...

    async def list_transactions(self) -> List[Transaction]: ...

    async def check_payment_status(self, adm_no: str, fee_head: str) -> PaymentCheck: ...

    async def submit_payment_batch(self, request: PaymentBatchRequest) -> BatchReceipt: ...

    async def void_receipt(self, receipt_no: str) -> None: ...

    async def unvoid_receipt(self, receipt_no: str) -> None: ...

    async def bulk_payment(self, request: BulkPaymentRequest) -> BulkPaymentResult: ...

    async def login(self, username: str, password: str) -> Optional[dict]: ...
