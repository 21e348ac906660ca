"""Text and number normalization shared by the payment records."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

_TAG_RE = re.compile(r"<[^>]*>")
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")
_WORD_BREAK_RE = re.compile(r"[\s.,/\-]")
# No digit separators, no nan/inf.
_NUMBER_RE = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def shorten(
    text: Optional[str],
    length: int,
    ending: str = "",
    strip_html: bool = True,
    whole_words: bool = False,
) -> str:
    """Normalize whitespace and cut ``text`` to at most ``length`` characters.

    ``ending`` is appended only when the text was cut and counts towards
    ``length``. With ``whole_words`` the cut moves back to the previous word
    break, unless that would leave nothing.
    """
    if text is None:
        return ""
    text = str(text)
    if strip_html:
        text = _BR_RE.sub(" ", text)
        text = _TAG_RE.sub("", text)
    text = _WS_RE.sub(" ", text).strip()

    if len(text) <= length:
        return text

    limit = max(length - len(ending), 0)
    cut = text[:limit]
    if whole_words and not _WORD_BREAK_RE.match(text[limit : limit + 1]):
        boundary = max(cut.rfind(" "), 0)
        if boundary:
            cut = cut[:boundary]
    return cut.rstrip() + ending


def is_numeric(value: Any) -> bool:
    """True for finite numbers and plain decimal strings; bools are not numbers here."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, str):
        return _NUMBER_RE.fullmatch(value.strip()) is not None
    if not isinstance(value, (int, float, Decimal)):
        return False
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return False
    return number.is_finite()


def to_number(value: Any) -> int | float:
    """Convert a numeric value to int when integral, float otherwise."""
    number = Decimal(str(value).strip())
    if number == number.to_integral_value():
        return int(number)
    return float(number)


def round_half_away(value: Any) -> int:
    """Round to the nearest integer, ties away from zero (10.5 -> 11, -10.5 -> -11)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
