"""HTTP client for the spreadsheet web app that stores students, fee heads and payments."""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from feedesk.core.exceptions import DuplicatePaymentError, GatewayError
from feedesk.core.schemas import (
    BatchItem,
    BatchReceipt,
    BulkPaymentRequest,
    BulkPaymentResult,
    FeeHeadDefinition,
    PaymentBatchRequest,
    PaymentCheck,
    Student,
    Transaction,
)

from .adapters import normalize_fee_head, normalize_rows, normalize_student, normalize_transaction

logger = logging.getLogger(__name__)

HTML_PAGE_MESSAGE = (
    "The fee server returned an HTML page (likely a login/authorization page). "
    "Set the web app access to \"Anyone\" and redeploy, then retry."
)
INVALID_KEY_MESSAGE = (
    "Invalid API key. SHEET_API_KEY does not match the API_KEY configured on the fee server."
)
UNKNOWN_ACTION_MESSAGE = (
    "Server reported unknown_action. The requested action is not implemented by the fee server."
)
NETWORK_MESSAGE = (
    "Network error. Could not connect to the fee sheet. Check the internet connection, "
    "that the web app is deployed with 'Anyone' access and that SHEET_API_URL is correct."
)


def _json_number(value: Decimal):
    return int(value) if value == value.to_integral_value() else float(value)


def _item_payload(item: BatchItem) -> Dict[str, Any]:
    return {
        "feeHead": item.fee_head,
        "amount": _json_number(item.amount),
        "fine": _json_number(item.fine),
        "ref": item.reference,
    }


class SheetGateway:
    """
    Talks to the sheet web app: GET for reads (`action` and `key` as query
    parameters) and text/plain POST bodies for writes.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- transport ---
    async def _send(self, method: str, params: Optional[dict] = None, body: Optional[dict] = None) -> Dict[str, Any]:
        try:
            if method == "GET":
                resp = await self._client.get(
                    self._base_url,
                    params={**(params or {}), "key": self._api_key},
                    headers={"Cache-Control": "no-store"},
                )
            else:
                resp = await self._client.post(
                    self._base_url,
                    content=json.dumps({**(body or {}), "key": self._api_key}),
                    headers={"Content-Type": "text/plain"},
                )
        except httpx.TransportError as exc:
            logger.error("Fee server unreachable: %s", exc)
            raise GatewayError(NETWORK_MESSAGE) from exc

        if resp.status_code >= 400:
            raise GatewayError(f"HTTP {resp.status_code}")
        text = resp.text
        try:
            payload = json.loads(text)
        except ValueError:
            if text.lstrip().startswith("<!DOCTYPE") or "<html" in text.lower():
                raise GatewayError(HTML_PAGE_MESSAGE)
            snippet = " ".join(text[:160].split())
            raise GatewayError(f"Unexpected response from fee server: {snippet or 'empty body'}")
        if not isinstance(payload, dict):
            raise GatewayError("Unexpected response from fee server: not a JSON object")
        return payload

    @staticmethod
    def _raise_for_error(payload: Dict[str, Any], fallback: str) -> None:
        if payload.get("ok"):
            return
        error = str(payload.get("error") or payload.get("message") or fallback)
        lowered = error.lower()
        if "invalid_api_key" in lowered:
            raise GatewayError(INVALID_KEY_MESSAGE)
        if "unknown_action" in lowered:
            raise GatewayError(UNKNOWN_ACTION_MESSAGE)
        raise GatewayError(error)

    async def _read(self, action: str) -> List[Dict[str, Any]]:
        payload = await self._send("GET", params={"action": action})
        self._raise_for_error(payload, "API error")
        return payload.get("data") or []

    # --- bulk reads ---
    async def list_students(self) -> List[Student]:
        return normalize_rows(await self._read("students"), normalize_student)

    async def list_fee_heads(self) -> List[FeeHeadDefinition]:
        return normalize_rows(await self._read("feeheads"), normalize_fee_head)

    async def list_transactions(self) -> List[Transaction]:
        return normalize_rows(await self._read("transactions"), normalize_transaction)

    # --- single-obligation check ---
    async def check_payment_status(self, adm_no: str, fee_head: str) -> PaymentCheck:
        payload = await self._send(
            "GET",
            params={"action": "checkPayment", "admNo": adm_no, "feeHead": fee_head},
        )
        records = payload.get("matchingRecords") or []
        first = records[0] if records and isinstance(records[0], dict) else {}
        return PaymentCheck(
            ok=bool(payload.get("ok")),
            is_paid=bool(payload.get("isPaid")),
            date=str(first["date"]) if first.get("date") else None,
            receipt_no=str(first["receiptNo"]) if first.get("receiptNo") else None,
        )

    # --- writes ---
    async def submit_payment_batch(self, request: PaymentBatchRequest) -> BatchReceipt:
        body = {
            "action": "addPaymentBatch",
            "date": request.date,
            "admNo": request.adm_no,
            "name": request.name,
            "cls": request.class_name,
            "mode": request.mode,
            "remarks": request.remarks,
            "items": [_item_payload(i) for i in request.items],
        }
        logger.debug("Submitting payment batch for %s (%d items)", request.adm_no, len(request.items))
        payload = await self._send("POST", body=body)
        if payload.get("ok"):
            return BatchReceipt(
                receipt_no=str(payload.get("receiptNo") or ""),
                date=str(payload.get("date") or request.date),
            )
        if payload.get("error") == "duplicate_payment":
            raise DuplicatePaymentError(payload.get("paidItems") or [], payload.get("message"))
        self._raise_for_error(payload, "Payment failed with unknown error")
        raise GatewayError("Payment failed with unknown error")

    async def void_receipt(self, receipt_no: str) -> None:
        payload = await self._send("POST", body={"action": "voidReceipt", "receiptNo": receipt_no})
        self._raise_for_error(payload, "Void failed")

    async def unvoid_receipt(self, receipt_no: str) -> None:
        payload = await self._send("POST", body={"action": "unvoidReceipt", "receiptNo": receipt_no})
        self._raise_for_error(payload, "Restore failed")

    async def bulk_payment(self, request: BulkPaymentRequest) -> BulkPaymentResult:
        body = {
            "action": "bulkPayment",
            "date": request.date,
            "mode": request.mode,
            "remarks": request.remarks,
            "payments": [
                {
                    "admNo": entry.adm_no,
                    "name": entry.name,
                    "cls": entry.class_name,
                    "phone": entry.phone,
                    "feeHeads": [
                        {**_item_payload(i), "waiveFine": i.waived} for i in entry.items
                    ],
                }
                for entry in request.payments
            ],
        }
        payload = await self._send("POST", body=body)
        self._raise_for_error(payload, "Bulk payment failed with unknown error")
        return BulkPaymentResult(
            receipts_generated=int(payload.get("receiptsGenerated") or payload.get("successCount") or 0),
            successful_payments=payload.get("successfulPayments") or payload.get("results") or [],
            failed_payments=payload.get("failedPayments") or [],
            date=str(payload.get("date") or request.date),
        )

    async def login(self, username: str, password: str) -> Optional[dict]:
        """Server-side credential check. Returns {name, role, class} or None."""
        payload = await self._send(
            "POST", body={"action": "login", "username": username, "password": password}
        )
        if not payload.get("ok"):
            return None
        result = payload.get("result") or (payload.get("data") or {}).get("result")
        return result if isinstance(result, dict) else None
