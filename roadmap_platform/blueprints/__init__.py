"""
Roadmap Platform
Blueprint registry and shared response helpers.
"""

from flask import g, jsonify, request

from roadmap_platform.utils.errors import api_error
from roadmap_platform.utils.helpers import parse_timestamp

LOGIN_PATH = "/login"


def paginate_list(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already-filtered list.

    Query params:
        limit : max items (default 200, capped at max_limit)
        offset: starting position (default 0)

    Returns:
        (page_items, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def json_payload():
    """The parsed JSON body, or ``{}`` when there is none.

    Arrays and scalars are returned as-is; the write path rejects them.
    """
    data = request.get_json(silent=True)
    return {} if data is None else data


def current_claims():
    return getattr(g, "session_claims", None)


def client_timestamp(data):
    """The freshness token a client sends back with an update."""
    if not isinstance(data, dict):
        return None
    return parse_timestamp(data.get("timestamp"))


def outcome_error(outcome):
    """Render a failed Outcome as a standard API error.

    A bad session also tells the client to drop its credentials and points
    it at the login page.
    """
    if outcome.force_logout:
        response, status = api_error(
            outcome.code, outcome.message, details=outcome.details or None,
            extra={"logout": True},
        )
        response.headers["Location"] = LOGIN_PATH
        return response, status
    return api_error(outcome.code, outcome.message, details=outcome.details or None)


def outcome_response(outcome, render, status=200):
    """Render an Outcome: ``render(resource)`` on success, api_error otherwise."""
    if not outcome.ok:
        return outcome_error(outcome)
    return jsonify(render(outcome.resource)), status
