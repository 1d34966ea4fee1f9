"""Display helpers for receipts, reminders and exports (Indian formats)."""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib.parse import quote

from feedesk.core.dates import parse_date

# Characters encodeURIComponent leaves alone; wa.me links are built the same way.
_URI_SAFE = "-_.!~*'()"


def to_decimal(val: Any) -> Decimal:
    if val is None or val == "":
        return Decimal("0")
    if isinstance(val, Decimal):
        return val
    try:
        return Decimal(str(val).replace(",", "").strip())
    except InvalidOperation:
        return Decimal("0")


def plain_number(value: Decimal) -> str:
    """5000.00 -> '5000', 12.50 -> '12.5'."""
    value = to_decimal(value)
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def format_inr(value: Any) -> str:
    """Indian digit grouping: 150000 -> '1,50,000'. Up to three decimals kept."""
    amount = to_decimal(value).quantize(Decimal("0.001"))
    sign = "-" if amount < 0 else ""
    text = plain_number(abs(amount))
    whole, _, frac = text.partition(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}{whole}.{frac}" if frac else f"{sign}{whole}"


def format_date_ist(value: Any) -> str:
    if value is None or value == "":
        return "-"
    parsed = parse_date(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%d/%m/%Y")


def clean_phone(phone: Any, country_code: str = "91") -> str:
    digits = "".join(ch for ch in str(phone or "") if ch.isdigit())
    if digits.startswith(country_code):
        return digits
    if len(digits) == 10:
        return country_code + digits
    return digits


def whatsapp_link(phone: Any, text: str, country_code: str = "91") -> Optional[str]:
    number = clean_phone(phone, country_code)
    if not number:
        return None
    return f"https://wa.me/{number}?text={quote(text, safe=_URI_SAFE)}"


def csv_text(value: Any) -> str:
    """Free-text CSV field: always wrapped in double quotes, inner quotes doubled."""
    return '"' + str(value if value is not None else "").replace('"', '""') + '"'
