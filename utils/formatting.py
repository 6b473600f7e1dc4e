# utils/formatting.py

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from domain.models import LineItem

DEFAULT_COUNTRY_CODE = "62"


def _to_whole_number(n) -> int:
    try:
        value = Decimal(str(n))
    except (InvalidOperation, ValueError, TypeError):
        return 0
    if not value.is_finite():
        return 0
    # half away from zero, same as the sheet's toFixed(0)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_rupiah(n) -> str:
    """
    Format number to Indonesian-style with '.' as thousands separator.
    Example: 1234567 -> "1.234.567"
    """
    return f"{_to_whole_number(n):,d}".replace(",", ".")


def format_currency(n) -> str:
    """
    Example: 1234567 -> "Rp 1.234.567", 0 -> "Rp 0"
    """
    return f"Rp {format_rupiah(n)}"


def format_quantity(q) -> str:
    if isinstance(q, float) and q.is_integer():
        return str(int(q))
    return str(q)


def normalize_phone_number(phone_number: str) -> str:
    """
    Normalize an Indonesian phone number to international digits without '+'.

      "0811 2411 915"  -> "628112411915"
      "+628112411915"  -> "628112411915"
      "8112411915"     -> "628112411915"
    """
    if not phone_number:
        return ""

    raw = str(phone_number).strip()
    clean = re.sub(r"\D", "", raw)

    if clean.startswith("0"):
        return DEFAULT_COUNTRY_CODE + clean[1:]
    if not clean.startswith(DEFAULT_COUNTRY_CODE):
        return DEFAULT_COUNTRY_CODE + clean
    return clean


def format_item_lines(items: Iterable[LineItem]) -> str:
    """
    One line per item: "- Pen x 2, Rp 2.000"
    """
    return "\n".join(
        f"- {item.name} x {format_quantity(item.quantity)}, {format_currency(item.line_total)}"
        for item in items
    )


def safe_file_stem(text: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", text or "")
