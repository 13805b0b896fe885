"""
Record pipeline: parsing model output, grouping field names and aggregating totals.

- parser: model text to flat records
- grouping: canonical names for numbered field families
- aggregation: per-identity hour totals
- export: headers and rows for the spreadsheet
"""

from .aggregation import aggregate_by_identity
from .exceptions import BatchEmptyError, MalformedSummaryError, ParseError
from .export import build_export_table, header_number_format, valid_records
from .fields import (
    ERROR_KEY,
    IDENTITY_KEY,
    NOT_AVAILABLE,
    SOURCE_FILE_KEY,
    SUMMARY_KEY,
    UNKNOWN_IDENTITY,
)
from .grouping import canonical_key, collect_keys, expand_selection, group_keys
from .normalization import normalize_header, parse_decimal
from .parser import ParsedDocument, parse_model_response

__all__ = [
    "BatchEmptyError",
    "MalformedSummaryError",
    "ParseError",
    "ParsedDocument",
    "aggregate_by_identity",
    "build_export_table",
    "canonical_key",
    "collect_keys",
    "expand_selection",
    "group_keys",
    "header_number_format",
    "normalize_header",
    "parse_decimal",
    "parse_model_response",
    "valid_records",
    "ERROR_KEY",
    "IDENTITY_KEY",
    "NOT_AVAILABLE",
    "SOURCE_FILE_KEY",
    "SUMMARY_KEY",
    "UNKNOWN_IDENTITY",
]
