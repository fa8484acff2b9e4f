"""
Concurrency Guard: optimistic freshness check for updates.

The client sends the ``timestamp`` (epoch ms) of the version it last read.
An update may proceed only if nothing was written after that moment. No
lock is held between read and write and nothing is retried: a stale client
must reload and resubmit.
"""

from enum import Enum

from roadmap_platform.utils.helpers import to_epoch_ms


class Freshness(Enum):
    OK = "ok"
    CONFLICT = "conflict"


def check_freshness(stored, client_timestamp) -> Freshness:
    """Decide whether a write based on ``client_timestamp`` is still fresh.

    Args:
        stored: The resource's lastModified, as a datetime or epoch ms.
            ``None`` counts as 0 (never modified).
        client_timestamp: Epoch ms the client read at, or ``None``.

    Returns:
        ``Freshness.CONFLICT`` if the client timestamp is missing or older
        than the stored one, else ``Freshness.OK``.
    """
    if client_timestamp is None:
        return Freshness.CONFLICT
    stored_ms = to_epoch_ms(stored) or 0
    if stored_ms > client_timestamp:
        return Freshness.CONFLICT
    return Freshness.OK
