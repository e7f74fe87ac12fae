# backend/billsplit/services/receipt_parser.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence

from billsplit.domain.models import LineItem
from billsplit.domain.money import MoneyError, parse_amount_to_cents
from billsplit.domain.rounding import from_minor_units, round_half_up


class ReceiptParseError(ValueError):
    """Raised when parsing fails or inputs are invalid."""


@dataclass(frozen=True)
class ParsedItem:
    """
    A candidate line item read from OCR text. Untrusted: the split engine
    clamps quantity and price again before using them.
    """
    name: str
    quantity: int
    line_total_cents: int

    @property
    def unit_price(self) -> float:
        return round_half_up(from_minor_units(self.line_total_cents) / self.quantity)

    def to_line_item(self, item_id: str) -> LineItem:
        return LineItem(id=item_id, name=self.name, quantity=self.quantity, unit_price=self.unit_price)


# Price token expected at end of line. We keep it permissive because
# parse_amount_to_cents() does the strict validation.
#
# Captures examples:
#   12.34
#   S$12.34
#   RM 12.34
#   12.34-
#   12,34
_PRICE_AT_END_RE = re.compile(
    r"""
    (?P<token>
      (?:(?<![A-Za-z])(?:S\$|RM|Rp)|\$)?\s*   # optional currency prefix
      \d{1,7}                # digits
      (?:[.,]\d{1,2})?       # optional decimals
      \s*-?                  # optional trailing dash
    )
    \s*$                     # end of line
    """,
    re.VERBOSE | re.IGNORECASE,
)

# "2 x Iced Tea", "2x Iced Tea", "2 Iced Tea"
_LEADING_QTY_RE = re.compile(r"^(?P<qty>\d{1,2})\s*[xX@]?\s+(?P<name>.+)$")
# "Iced Tea x2"
_TRAILING_QTY_RE = re.compile(r"^(?P<name>.+?)\s+[xX]\s*(?P<qty>\d{1,2})$")

# Common receipt summary lines we skip by default (conservative).
_EXCLUDE_KEYWORDS = (
    "subtotal",
    "sub total",
    "tax",
    "gst",
    "sst",
    "vat",
    "tip",
    "gratuity",
    "service",
    "svc",
    "se chg",
    "rounding",
    "total",
    "balance",
    "change",
    "cash",
    "card",
    "visa",
    "mastercard",
    "amex",
    "amount due",
    # metadata / footer
    "date:",
    "time",
    "pax",
    "transaction",
    "receipt",
    "auth",
    "approval",
    "thank",
)

_HAS_LETTER = re.compile(r"[A-Za-z]")
_LONG_DIGIT_RUN = re.compile(r"\d{6,}")
_TIME_LIKE = re.compile(r"\b\d{1,2}:\d{2}(:\d{2})?\b")
_DIGIT = re.compile(r"\d")


def _looks_like_summary_line(text: str) -> bool:
    t = " ".join(text.lower().split())
    return any(k in t for k in _EXCLUDE_KEYWORDS)


def _split_quantity(desc: str) -> tuple[str, int]:
    for pattern in (_LEADING_QTY_RE, _TRAILING_QTY_RE):
        m = pattern.match(desc)
        if m and int(m.group("qty")) > 0:
            return m.group("name").strip(), int(m.group("qty"))
    return desc, 1


def extract_items_from_lines(
    lines: Sequence[str],
    *,
    exclude_summary_lines: bool = True,
    min_price_cents: int = 1,
) -> List[ParsedItem]:
    """
    Extract items from OCR'd receipt lines.

    Conservative approach:
    - Look for a money-like token at end of the line (the line total)
    - Parse it with parse_amount_to_cents() (single source of truth)
    - Description is everything before the token, minus a quantity marker
    - Optionally skip summary lines like TOTAL/GST/etc.
    - Skip negative lines (discounts are netted by the caller) and
      items below min_price_cents
    """
    if not isinstance(lines, (list, tuple)):
        raise ReceiptParseError("lines must be a sequence of strings")

    items: List[ParsedItem] = []
    for raw in lines:
        if not isinstance(raw, str):
            raise ReceiptParseError("each line must be a string")
        line = raw.strip()
        if not line:
            continue

        if exclude_summary_lines and _looks_like_summary_line(line):
            continue

        m = _PRICE_AT_END_RE.search(line)
        if not m:
            continue

        token = m.group("token").strip()
        try:
            price_cents = parse_amount_to_cents(token, allow_negative=True)
        except MoneyError:
            continue

        if price_cents < min_price_cents:
            continue

        desc = line[: m.start("token")].strip()
        if not desc:
            continue

        # Skip long IDs (barcodes, transaction numbers)
        if _LONG_DIGIT_RUN.search(desc):
            continue

        # Skip obvious time strings
        if _TIME_LIKE.search(desc):
            continue

        name, quantity = _split_quantity(desc)

        # Filter: name must contain letters (prevents numeric blobs)
        if not _HAS_LETTER.search(name):
            continue

        if len(name) > 60:
            continue

        digits = len(_DIGIT.findall(name))
        non_space = len([c for c in name if not c.isspace()])
        if non_space > 0 and digits / non_space > 0.60:
            continue

        items.append(ParsedItem(name=name, quantity=quantity, line_total_cents=price_cents))

    return items


def extract_items_from_ocr_text(
    ocr_text: str,
    *,
    exclude_summary_lines: bool = True,
    min_price_cents: int = 1,
) -> List[ParsedItem]:
    """
    Convenience: split OCR text by newlines, then run extract_items_from_lines.
    """
    if not isinstance(ocr_text, str):
        raise ReceiptParseError("ocr_text must be a string")

    return extract_items_from_lines(
        ocr_text.splitlines(),
        exclude_summary_lines=exclude_summary_lines,
        min_price_cents=min_price_cents,
    )
