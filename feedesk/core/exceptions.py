from typing import List, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PaymentValidationError(ServiceError):
    """Selection or student missing; raised before anything is sent to the fee server."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class GatewayError(ServiceError):
    """The fee server could not be reached or answered with an error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)


class DuplicatePaymentError(ServiceError):
    """The fee server refused a batch because some fee heads were already paid."""

    def __init__(self, paid_items: List[str], server_message: Optional[str] = None) -> None:
        self.paid_items = list(paid_items)
        base = (server_message or "These fees have already been paid").rstrip(". ")
        if self.paid_items:
            base = f"{base}: {', '.join(self.paid_items)}"
        super().__init__(f"{base}. Please remove them and try again.", status.HTTP_409_CONFLICT)
