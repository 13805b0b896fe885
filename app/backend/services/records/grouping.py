"""
Grouping of sequence-numbered field names.

Models enumerate repeated values as ``entrada_1``, ``entrada_2``,
``item_descricao_1`` and so on, and the highest index differs per document.
The column picker offers each family once under its canonical name
(``entrada``, ``item_descricao``); at export time the selection is expanded
back into the raw field names of every document.
"""

import logging
import re
from collections.abc import Iterable
from typing import Any

from .fields import RESERVED_KEYS, SOURCE_FILE_KEY

logger = logging.getLogger(__name__)


# Evaluated in order; the first match wins. Each captures the name to keep in
# the "base" group.
SUFFIX_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("three_token_numeric", re.compile(r"^(?P<base>[a-z]+_[a-z]+_[a-z]+)_\d+$")),
    ("two_token_numeric", re.compile(r"^(?P<base>[a-z]+_[a-z]+)_\d+$")),
    ("bare_numeric", re.compile(r"^(?P<base>.+?)(?:_\d+)+$")),
    ("single_letter", re.compile(r"^(?P<base>.*[a-z0-9])(?:_[a-z]|[A-Z])$")),
    ("trailing_digits", re.compile(r"^(?P<base>.*[A-Za-z_])\d+$")),
]


def match_suffix(name: str) -> tuple[str, str] | None:
    """
    Find the first suffix pattern matching a field name.

    Returns:
        Tuple of (pattern name, stripped base), or None if nothing matched.
    """
    for pattern_name, pattern in SUFFIX_PATTERNS:
        match = pattern.match(name)
        if match:
            return pattern_name, match.group("base").rstrip("_")
    return None


def canonical_key(name: str) -> str:
    """
    Strip the sequence suffix from a field name.

    Reserved names pass through, as do names that match no pattern. Suffixes
    are stripped until none is left, so ``dias_entradas_1_2`` and
    ``nota_a1`` end up as ``dias_entradas`` and ``nota``. If a stripped base
    would be empty, the name stripped so far is kept.
    """
    if name in RESERVED_KEYS:
        return name
    current = name
    while True:
        matched = match_suffix(current)
        if matched is None:
            return current
        _, base = matched
        if not base or base == current:
            return current
        current = base


def group_keys(names: Iterable[str]) -> list[str]:
    """Collapse field names into their sorted, distinct canonical names."""
    return sorted({canonical_key(name) for name in names})


def collect_keys(records: Iterable[dict[str, Any]]) -> list[str]:
    """All field names across records, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def expand_selection(
    records: Iterable[dict[str, Any]],
    selected: Iterable[str],
) -> list[str]:
    """
    Expand selected group names into the raw field names of every record.

    A raw field is included when its canonical form, or the raw name itself,
    was selected. Each record is checked separately because documents differ
    in how many numbered fields they carry. The provenance key always comes
    first.

    Args:
        records: Records the export is built from.
        selected: Group names picked by the user.

    Returns:
        Ordered raw field names for the export header.
    """
    wanted = {name for name in selected if isinstance(name, str) and name.strip()}
    headers: dict[str, None] = {SOURCE_FILE_KEY: None}

    for record in records:
        for key in record:
            if key in headers:
                continue
            if key in wanted or canonical_key(key) in wanted:
                headers[key] = None

    logger.debug("Expanded %d selected group(s) into %d header(s)", len(wanted), len(headers))
    return list(headers)
