# backend/billsplit/domain/money.py
from __future__ import annotations

import re
from typing import Mapping

from billsplit.domain.models import SplitBreakdown
from billsplit.domain.rounding import round_half_up


class MoneyError(ValueError):
    """Raised when currency/money parsing or formatting fails."""


CURRENCY_SYMBOLS = {
    "SGD": "S$",
    "MYR": "RM",
    "IDR": "Rp",
    "THB": "THB",
    "PHP": "PHP",
    "VND": "VND",
}


# Conservative money-token parsing:
# - Supports $, S$, RM, Rp prefixes, optional spaces, decimal "." or ","
# - Supports trailing "-" meaning negative (common on receipts)
# - Rejects thousands separators to avoid guessing ("1,234.56")
_MONEY_TOKEN_RE = re.compile(
    r"^\s*(?:S\$|RM|Rp|\$)?\s*(\d{1,7})([.,](\d{1,2}))?\s*(-)?\s*$",
    re.IGNORECASE,
)


def parse_amount_to_cents(
    token: str,
    *,
    allow_negative: bool = True,
    max_abs_cents: int = 10_000_000_00,  # 10,000,000.00 safety bound
) -> int:
    """
    Parse a human/OCR money token into integer cents.

    Accepts examples:
      "12" -> 1200
      "12.34" -> 1234
      "S$12.34" -> 1234
      "RM 12,34" -> 1234  (decimal comma)
      "5.00-" -> -500  (trailing dash indicates negative)

    Rejects:
      "1,234.56" (thousands separator ambiguity)
      "12.345"
      "abc"
      "-12.34" (leading '-' not supported; receipts often use trailing '-')
    """
    if not isinstance(token, str):
        raise MoneyError("token must be a string")

    s = token.strip()
    if s == "":
        raise MoneyError("token is empty")

    if re.search(r"\d,\d{3}", s):
        raise MoneyError(f"ambiguous thousands separator format: {token}")

    m = _MONEY_TOKEN_RE.match(s)
    if not m:
        raise MoneyError(f"invalid money token: {token}")

    whole = m.group(1)
    dec_digits = m.group(3)
    negative = bool(m.group(4))
    if negative and not allow_negative:
        raise MoneyError("negative amounts are not allowed")

    cents = 0
    if dec_digits is not None:
        cents = int(dec_digits) * 10 if len(dec_digits) == 1 else int(dec_digits)

    total = int(whole) * 100 + cents
    if negative:
        total = -total

    if abs(total) > max_abs_cents:
        raise MoneyError("amount exceeds safety limit")

    return total


def currency_symbol(currency: str) -> str:
    try:
        return CURRENCY_SYMBOLS[currency]
    except KeyError as e:
        raise MoneyError(f"unsupported currency: {currency}") from e


def format_amount(value: float, currency: str) -> str:
    """
    Format an amount for display, e.g. format_amount(12.5, "SGD") -> "S$12.50".
    """
    symbol = currency_symbol(currency)
    amount = round_half_up(float(value))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):.2f}"


def format_share_summary(breakdown: SplitBreakdown, names: Mapping[str, str]) -> str:
    """
    One "Name: amount" line per party, ready to paste into a chat.
    Parties without a known name are shown as "Friend".
    """
    lines = []
    for share in breakdown.per_party:
        name = names.get(share.party_id) or "Friend"
        lines.append(f"{name}: {format_amount(share.total, breakdown.currency)}")
    return "\n".join(lines)


def format_percentage(value: float) -> str:
    return f"{value * 100:.1f}%"
