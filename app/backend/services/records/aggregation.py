"""
Per-identity hour totals for the summary view.
"""

import logging
from collections.abc import Iterable
from typing import Any

from .fields import (
    ERROR_KEY,
    IDENTITY_KEY,
    OVERTIME_HOURS_KEY,
    UNKNOWN_IDENTITY,
    WORKED_HOURS_KEY,
)
from .normalization import is_missing, parse_decimal

logger = logging.getLogger(__name__)


def _hours(record: dict[str, Any], key: str) -> float:
    parsed = parse_decimal(record.get(key))
    return parsed if parsed is not None else 0.0


def aggregate_by_identity(
    records: Iterable[dict[str, Any]],
    identity_key: str = IDENTITY_KEY,
    worked_key: str = WORKED_HOURS_KEY,
    overtime_key: str = OVERTIME_HOURS_KEY,
) -> dict[str, dict[str, str]]:
    """
    Sum worked and overtime hours per identity.

    Missing or unparseable values count as zero. Error placeholder records are
    ignored. Totals are recomputed from scratch on every call.

    Args:
        records: Parsed records.
        identity_key: Field grouping the records.
        worked_key: Field holding worked hours.
        overtime_key: Field holding overtime hours.

    Returns:
        Mapping of identity to ``{"totalHoras": "x.xx", "totalExtras": "y.yy"}``.
    """
    totals: dict[str, list[float]] = {}

    for record in records:
        if ERROR_KEY in record:
            continue
        identity = record.get(identity_key)
        identity = UNKNOWN_IDENTITY if is_missing(identity) else str(identity).strip()

        bucket = totals.setdefault(identity, [0.0, 0.0])
        bucket[0] += _hours(record, worked_key)
        bucket[1] += _hours(record, overtime_key)

    logger.debug("Aggregated hours for %d identit(ies)", len(totals))

    return {
        identity: {
            "totalHoras": f"{worked:.2f}",
            "totalExtras": f"{overtime:.2f}",
        }
        for identity, (worked, overtime) in totals.items()
    }
