"""
Export table construction: records plus a group selection into headers and rows.
"""

from collections.abc import Iterable
from typing import Any

from .fields import ERROR_KEY
from .grouping import expand_selection
from .normalization import is_currency_field, is_numeric_field


def valid_records(records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Records that are not error placeholders."""
    return [
        record for record in records
        if isinstance(record, dict) and ERROR_KEY not in record
    ]


def build_export_table(
    records: Iterable[dict[str, Any]],
    selected: Iterable[str],
) -> tuple[list[str], list[dict[str, Any]]]:
    """
    Build the ordered header list and row objects for the spreadsheet.

    Every row carries every header; fields a record lacks are None.
    """
    rows_source = valid_records(records)
    headers = expand_selection(rows_source, selected)
    rows = [{header: record.get(header) for header in headers} for record in rows_source]
    return headers, rows


def header_number_format(header: str) -> str | None:
    """Number format requested for a column, or None for plain text."""
    if is_currency_field(header):
        return "R$ #,##0.00"
    if is_numeric_field(header):
        return "#,##0.00"
    return None
