"""
Model response parsing.

Turns the free-form text returned by the model into flat records. Two wire
shapes are understood:

- Markdown-fenced JSON: an array of flat objects (or a single object),
  optionally carrying a ``resumo_executivo_mensal`` summary.
- Delimited text: a ``;`` or ``,`` separated table, optionally followed by a
  JSON object holding the summary.

Each step is a small pure function so it can be tested on its own; the
``parse_model_response`` entry point composes them.
"""

import csv
import json
import logging
import re
from typing import Any

from .exceptions import MalformedSummaryError, ParseError
from .fields import (
    IDENTITY_KEY,
    NOT_AVAILABLE,
    SOURCE_FILE_KEY,
    SUMMARY_KEY,
    UNKNOWN_IDENTITY,
)
from .normalization import is_missing, is_numeric_field, normalize_header, parse_decimal

logger = logging.getLogger(__name__)

Record = dict[str, Any]

# A header needs at least this many recognizable fields to be a table
MIN_HEADER_FIELDS = 2

CANDIDATE_DELIMITERS = (";", ",")
PLACEHOLDER_COLUMN = "coluna"

_OPENING_FENCE = re.compile(r"^\s*```[\w+-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```\s*$")


class ParsedDocument:
    """Records and optional summary decoded from one model response."""

    def __init__(
        self,
        records: list[Record] | None = None,
        summary: str | None = None,
        source_format: str = "empty",
    ):
        self.records: list[Record] = records or []
        self.summary = summary
        self.source_format = source_format

    @property
    def is_empty(self) -> bool:
        return not self.records


# =============================================================================
# Shared Steps
# =============================================================================


def strip_code_fences(text: str | None) -> str:
    """
    Remove a leading and trailing markdown code fence.

    Accepts fences with or without a language tag (```` ```json ````,
    ```` ```csv ````, ```` ``` ````).
    """
    if not text:
        return ""
    stripped = _OPENING_FENCE.sub("", text, count=1)
    stripped = _CLOSING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def cut_at_closing_fence(text: str) -> str:
    """Drop a closing fence and any prose the model wrote after it."""
    index = text.find("```")
    if index == -1:
        return text
    return text[:index].rstrip()


def coerce_value(field: str, value: Any) -> Any:
    """
    Normalize a single cell value.

    Empty values become the N/A sentinel. Fields with an hours/total marker
    are parsed as numbers when possible; on failure the original string is
    kept.
    """
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return NOT_AVAILABLE
        if is_numeric_field(field):
            parsed = parse_decimal(value)
            if parsed is not None:
                return parsed
    return value


def carry_forward_identity(
    records: list[Record],
    identity_key: str = IDENTITY_KEY,
) -> list[Record]:
    """
    Backfill missing identities from the last row that had one.

    Only applies to documents that carry the identity column at all. Rows
    before the first valid identity get the UNKNOWN_IDENTITY sentinel, so no
    row is ever dropped for lacking one.
    """
    if not any(identity_key in record for record in records):
        return records

    resolved: list[Record] = []
    last_identity: Any = None
    for record in records:
        row = dict(record)
        value = row.get(identity_key)
        if is_missing(value):
            row[identity_key] = last_identity if last_identity is not None else UNKNOWN_IDENTITY
        else:
            last_identity = value
        resolved.append(row)
    return resolved


# =============================================================================
# JSON Responses
# =============================================================================


def flatten_record(data: dict[str, Any], prefix: str = "") -> Record:
    """
    Flatten nested objects and lists into snake_case keys.

    - ``{"cliente": {"nome": "X"}}`` -> ``cliente_nome``
    - ``{"itens": [{"descricao": "A"}]}`` -> ``itens_descricao_1``
    - ``{"telefones": ["1", "2"]}`` -> ``telefones_1``, ``telefones_2``
    """
    flat: Record = {}
    for key, value in data.items():
        name = normalize_header(key) or "campo"
        full_name = f"{prefix}_{name}" if prefix else name

        if isinstance(value, dict):
            flat.update(flatten_record(value, full_name))
        elif isinstance(value, list):
            for index, item in enumerate(value, start=1):
                if isinstance(item, dict):
                    for sub_key, sub_value in flatten_record(item).items():
                        flat[f"{full_name}_{sub_key}_{index}"] = sub_value
                elif isinstance(item, list):
                    flat[f"{full_name}_{index}"] = json.dumps(item, ensure_ascii=False)
                else:
                    flat[f"{full_name}_{index}"] = item
        else:
            flat[full_name] = value
    return flat


def _summary_text(value: Any) -> str | None:
    if is_missing(value):
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value).strip()


def decode_json_records(text: str) -> tuple[list[Record], str | None]:
    """
    Decode a JSON array (or single object) into flat records.

    The summary field is popped from whichever object carries it; an object
    left empty afterwards (the usual trailing summary object) is dropped.

    Raises:
        ParseError: If the text is not valid JSON or not an object/array.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in model response: {e}") from e

    if isinstance(payload, dict):
        items = [payload]
    elif isinstance(payload, list):
        items = payload
    else:
        raise ParseError(
            f"Expected a JSON object or array, got {type(payload).__name__}"
        )

    records: list[Record] = []
    summary: str | None = None
    skipped = 0

    for item in items:
        if not isinstance(item, dict):
            skipped += 1
            continue
        flat = flatten_record(item)
        if SUMMARY_KEY in flat:
            summary = _summary_text(flat.pop(SUMMARY_KEY)) or summary
        if not flat:
            continue
        records.append({field: coerce_value(field, value) for field, value in flat.items()})

    if skipped:
        logger.warning("Skipped %d non-object item(s) in JSON response", skipped)

    return records, summary


# =============================================================================
# Delimited Text Responses
# =============================================================================


def detect_delimiter(header_line: str) -> str:
    """Pick the candidate delimiter yielding more header fields (ties favor comma)."""
    semicolon_fields = header_line.count(";") + 1
    comma_fields = header_line.count(",") + 1
    return ";" if semicolon_fields > comma_fields else ","


def split_rows(lines: list[str], delimiter: str) -> list[list[str]]:
    """Split non-blank lines into stripped cells, honoring quoted cells."""
    content = [
        line for line in lines
        if line.strip() and not line.strip().startswith("```")
    ]
    reader = csv.reader(content, delimiter=delimiter, skipinitialspace=True)
    return [[cell.strip() for cell in row] for row in reader]


def normalize_headers(cells: list[str]) -> list[str]:
    """
    Normalize header cells into unique field names.

    Cells that normalize to nothing become ``coluna_<n>``; repeated names get
    a ``_<n>`` suffix so no column overwrites another.
    """
    headers: list[str] = []
    seen: dict[str, int] = {}
    for position, cell in enumerate(cells, start=1):
        name = normalize_header(cell) or f"{PLACEHOLDER_COLUMN}_{position}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 1
        headers.append(name)
    return headers


def coerce_row(headers: list[str], cells: list[str]) -> Record | None:
    """Build a record from one data row, or None when the row is too short."""
    if len(cells) < len(headers):
        return None
    return {header: coerce_value(header, cell) for header, cell in zip(headers, cells)}


def split_trailing_summary(text: str) -> tuple[str, str | None]:
    """
    Separate a trailing JSON summary object from the table before it.

    The boundary is the last top-level brace pair closing the text. A summary
    that fails to decode is logged and dropped; the table is kept either way.
    """
    body = text.rstrip()
    if not body.endswith("}"):
        return text, None

    depth = 0
    start: int | None = None
    for index in range(len(body) - 1, -1, -1):
        char = body[index]
        if char == "}":
            depth += 1
        elif char == "{":
            depth -= 1
            if depth == 0:
                start = index
                break

    if start is None:
        return text, None

    try:
        summary = decode_summary(body[start:])
    except MalformedSummaryError as e:
        # Not a summary after all; the braces belong to the table
        logger.warning("Ignoring trailing summary: %s", e)
        return text, None
    return body[:start], summary


def decode_summary(block: str) -> str | None:
    """
    Decode a JSON summary block.

    Raises:
        MalformedSummaryError: If the block is not a valid JSON object.
    """
    try:
        payload = json.loads(block)
    except json.JSONDecodeError as e:
        raise MalformedSummaryError(f"Invalid JSON in summary block: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedSummaryError("Summary block is not a JSON object")

    normalized = {normalize_header(key): value for key, value in payload.items()}
    return _summary_text(normalized.get(SUMMARY_KEY))


def parse_delimited_table(text: str) -> list[Record]:
    """
    Parse a delimited text table into records.

    Returns an empty list when there is no data row or the header has fewer
    than MIN_HEADER_FIELDS recognizable fields. Short rows are skipped.

    Raises:
        ParseError: If the csv module cannot split the rows.
    """
    lines = [
        line for line in text.splitlines()
        if line.strip() and not line.strip().startswith("```")
    ]
    if len(lines) < 2:
        logger.info("Table has %d non-blank line(s), need a header and a row", len(lines))
        return []

    delimiter = detect_delimiter(lines[0])
    try:
        rows = split_rows(lines, delimiter)
    except csv.Error as e:
        raise ParseError(f"Unreadable delimited table: {e}") from e
    header_cells, data_rows = rows[0], rows[1:]

    recognized = sum(1 for cell in header_cells if normalize_header(cell))
    if recognized < MIN_HEADER_FIELDS:
        logger.info(
            "Header has %d recognizable field(s), need %d",
            recognized,
            MIN_HEADER_FIELDS,
        )
        return []

    headers = normalize_headers(header_cells)
    records: list[Record] = []
    rejected = 0
    for cells in data_rows:
        record = coerce_row(headers, cells)
        if record is None:
            rejected += 1
            continue
        records.append(record)

    if rejected:
        logger.warning("Skipped %d row(s) shorter than the %d-field header", rejected, len(headers))

    return records


# =============================================================================
# Entry Point
# =============================================================================


def parse_model_response(text: str | None, source_label: str) -> ParsedDocument:
    """
    Parse one model response into records tagged with their source file.

    Args:
        text: Raw model output.
        source_label: Display name of the originating document.

    Returns:
        ParsedDocument with records (possibly none) and the summary, if any.

    Raises:
        ParseError: If the response looks like JSON but does not decode.
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        logger.warning("Empty model response for '%s'", source_label)
        return ParsedDocument()

    if cleaned[0] in "[{":
        records, summary = decode_json_records(cut_at_closing_fence(cleaned))
        source_format = "json"
    else:
        table_text, summary = split_trailing_summary(cleaned)
        records = parse_delimited_table(table_text)
        source_format = "table"

    records = carry_forward_identity(records)
    tagged = [{**record, SOURCE_FILE_KEY: source_label} for record in records]

    logger.info(
        "Parsed %d record(s) from '%s' (%s, summary=%s)",
        len(tagged),
        source_label,
        source_format,
        "yes" if summary else "no",
    )
    return ParsedDocument(tagged, summary, source_format)
