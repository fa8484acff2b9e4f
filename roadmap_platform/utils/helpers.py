"""Shared utility functions for timestamps and payload parsing.

utcnow:            timezone-aware "now" used for every created_at / updated_at
to_epoch_ms:       datetime → epoch milliseconds (the freshness token format)
parse_timestamp:   client freshness token → int, or None when absent/garbled
parse_name_list:   ACL payload lists (usernames / group names) → clean list
"""
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def utcnow():
    return datetime.now(timezone.utc)


def to_epoch_ms(value):
    """Convert a stored timestamp to epoch milliseconds.

    Naive datetimes are treated as UTC (SQLite returns them without tzinfo).
    ``None`` stays ``None``; ints pass through unchanged.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def parse_timestamp(value):
    """Parse a client-supplied freshness token (epoch ms).

    Accepts ints, integral floats and numeric strings. Returns None for
    missing or unparseable input so the concurrency guard treats it as
    "unknown freshness".
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        logger.debug("Unparseable client timestamp %r", value)
        return None


def parse_name_list(value):
    """Normalise an ACL name list from a JSON payload.

    Strips whitespace, drops blanks and duplicates, preserves order.
    Non-list input yields an empty list.
    """
    if not isinstance(value, (list, tuple)):
        return []
    names = []
    for item in value:
        if not isinstance(item, str):
            continue
        name = item.strip()
        if name and name not in names:
            names.append(name)
    return names
