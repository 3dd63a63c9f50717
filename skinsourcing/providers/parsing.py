"""Listing-parsing helpers shared by the marketplace adapters."""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from skinsourcing.candidates import normalize_text
from skinsourcing.models import MarketResult

T = TypeVar("T")

_NON_NUMERIC = re.compile(r"[^0-9.,-]")
_THOUSANDS_DOT = re.compile(r"\.(?=\d{3}(?:\D|$))")
_INTEGER = re.compile(r"^-?\d+$")


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _normalize_separators(text: str, dot_groups_thousands: bool = False) -> str:
    """
    Rewrite a price string to use "." as its only decimal separator.

    With both separators present the later one is the decimal point
    ("1.234,56", "1,234.56"). A lone comma is decimal, repeated commas group
    thousands. Dots followed by three digits group thousands when there are
    several of them, or always when dot_groups_thousands is set.
    """
    if "," in text and "." in text:
        if text.rfind(".") > text.rfind(","):
            return text.replace(",", "")
        return _THOUSANDS_DOT.sub("", text).replace(",", ".")
    if "," in text:
        return text.replace(",", ".") if text.count(",") == 1 else text.replace(",", "")
    if dot_groups_thousands or text.count(".") > 1:
        return _THOUSANDS_DOT.sub("", text)
    return text


def parse_price(value: Any, integer_divisor: Optional[float] = None) -> Optional[float]:
    """
    Parse a price from a number or a string such as "€12,34", "1.234,56" or "1299".

    When integer_divisor is given, bare integers (number or string) are read
    as minor units and divided by it.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        if integer_divisor and isinstance(value, int):
            return value / integer_divisor
        return float(value)
    cleaned = _NON_NUMERIC.sub("", str(value)).strip()
    if not cleaned:
        return None
    parsed = _to_float(_normalize_separators(cleaned))
    if parsed is None:
        return None
    if integer_divisor and _INTEGER.match(cleaned):
        return parsed / integer_divisor
    return parsed


def parse_localized_price(text: Optional[str]) -> Optional[float]:
    """Parse display strings like "1.234,56€" or "$1,234.56"."""
    if not text:
        return None
    cleaned = _NON_NUMERIC.sub("", text)
    if not cleaned:
        return None
    return _to_float(_normalize_separators(cleaned, dot_groups_thousands=True))


def determine_flag(name: str, keyword: str) -> bool:
    return keyword.lower() in (name or "").lower()


def filter_by_query_words(items: Iterable[T], query_text: str, name_of: Callable[[T], str]) -> List[T]:
    """Keep items whose normalized name contains every query word."""
    items = list(items)
    words = normalize_text(query_text).split()
    if not words:
        return items
    kept = []
    for item in items:
        normalized = normalize_text(name_of(item) or "")
        if all(word in normalized for word in words):
            kept.append(item)
    return kept


def sort_by_price(results: List[MarketResult]) -> List[MarketResult]:
    return sorted(results, key=lambda r: math.inf if r.price is None else r.price)
