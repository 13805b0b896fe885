"""
Field-name and value normalization shared by the parser, grouper and aggregator.
"""

import re
import unicodedata
from typing import Any

from .fields import CURRENCY_FIELD_PREFIX, NOT_AVAILABLE, NUMERIC_FIELD_MARKERS

_WHITESPACE = re.compile(r"\s+")
_INVALID_CHARS = re.compile(r"[^a-z0-9_]")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_DECIMAL_TEXT = re.compile(r"^[-+]?\d[\d.,]*$")


def normalize_header(token: Any) -> str:
    """
    Normalize a header token into a snake_case field name.

    Accents are folded to ASCII first so that ``Saída`` becomes ``saida``
    instead of ``sada``. The result only contains ``[a-z0-9_]``, never has
    repeated underscores and never starts or ends with one. It may be empty.

    Args:
        token: Raw header cell or JSON key.

    Returns:
        The normalized field name.
    """
    folded = unicodedata.normalize("NFKD", str(token))
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    folded = _WHITESPACE.sub("_", folded.strip().lower())
    folded = _INVALID_CHARS.sub("", folded)
    folded = _REPEATED_UNDERSCORES.sub("_", folded)
    return folded.strip("_")


def is_missing(value: Any) -> bool:
    """Return True for None, blank strings and the N/A sentinel."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped.upper() == NOT_AVAILABLE
    return False


def parse_decimal(value: Any) -> float | None:
    """
    Parse a number that may use either ``,`` or ``.`` as decimal separator.

    Handles:
    - "8,5" and "8.5" -> 8.5
    - "1.234,56" (pt-BR) and "1,234.56" (en-US) -> 1234.56
    - "R$ 1.234,56" -> 1234.56

    Times such as "08:00" and other text are rejected. Once the decimal
    separator is known, the amount is read with price-parser.

    Returns:
        The parsed float, or None when the value is not a plain number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    cleaned = value.strip()
    if cleaned.upper().startswith("R$"):
        cleaned = cleaned[2:]
    cleaned = cleaned.replace(" ", "")
    if not _DECIMAL_TEXT.match(cleaned):
        return None

    sign = -1.0 if cleaned.startswith("-") else 1.0
    cleaned = cleaned.lstrip("+-")

    from price_parser import Price

    price = Price.fromstring(cleaned, decimal_separator=_decimal_separator(cleaned))
    if price.amount_float is None:
        return None
    return sign * price.amount_float


def _decimal_separator(number: str) -> str:
    """Guess the decimal separator of a digits-and-separators string."""
    # The right-most separator is the decimal one when both appear
    if "," in number and "." in number:
        return "," if number.rfind(",") > number.rfind(".") else "."
    if number.count(",") == 1:
        return ","
    if number.count(".") > 1:
        return ","
    return "."


def is_numeric_field(name: str) -> bool:
    """Whether a field name carries an hours/total marker."""
    lowered = name.lower()
    return any(marker in lowered for marker in NUMERIC_FIELD_MARKERS)


def is_currency_field(name: str) -> bool:
    return name.lower().startswith(CURRENCY_FIELD_PREFIX)
