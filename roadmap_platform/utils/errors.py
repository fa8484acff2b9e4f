"""Standardised API error responses.

Usage
-----
    from roadmap_platform.utils.errors import api_error, E

    return api_error(E.ACCESS_DENIED, "Access denied")
    return api_error(E.INVALID_INPUT, "Missing required input parameters")
    return api_error(E.STALE_DATA, "StaleData", details={"stored": 1700000000000})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    One code per member of the mutation error taxonomy, plus the generic
    HTTP-level codes used by the app error handlers.
    """

    # Taxonomy
    INVALID_INPUT = "ERR_INVALID_INPUT"
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    ACCESS_DENIED = "ERR_ACCESS_DENIED"
    BAD_SESSION = "ERR_BAD_SESSION"
    STALE_DATA = "ERR_STALE_DATA"
    REFERENTIAL_FAILURE = "ERR_REFERENTIAL_FAILURE"
    INTERNAL = "ERR_INTERNAL"

    # HTTP-level
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    RATE_LIMITED = "ERR_RATE_LIMITED"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.INVALID_INPUT: 400,
    E.UNAUTHENTICATED: 401,
    E.ACCESS_DENIED: 403,
    E.BAD_SESSION: 403,
    E.STALE_DATA: 409,
    E.REFERENTIAL_FAILURE: 400,
    E.INTERNAL: 500,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
}


def status_for(code: str) -> int:
    """HTTP status for an error code (400 for unknown codes)."""
    return _DEFAULT_STATUS.get(code, 400)


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    extra: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, timestamps, etc.).
    extra : dict, optional
        Top-level keys merged into the body (e.g. ``{"logout": True}``).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or status_for(code)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details
    if extra:
        body.update(extra)

    return jsonify(body), http_status
