"""
Platform-wide exception hierarchy.

Services raise these types; the mutation orchestrator converts them into
tagged outcomes at its boundary, so no blueprint ever has to compare
exception messages.

Usage:
    from roadmap_platform.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Goal", resource_id=goal_id)
    raise ValidationError("Invalid data series", details={"data_series": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Security note: callers map this to AccessDenied, never to a 404. A
    distinct status would confirm to an unauthorized caller that the id is
    real.

    Args:
        resource: Human-readable entity name (e.g. "Roadmap", "Action").
        resource_id: The id that was looked up. Logged, not returned.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed JSON but structurally unusable.

    Maps to InvalidInput (HTTP 400).

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for the API response.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ReferentialError(Exception):
    """Raised when a write references a record that does not exist.

    Covers usernames / group names in ACL payloads and parents that
    vanished between authorization and commit. Maps to ReferentialFailure.

    Args:
        resource: Model name of the missing record.
        field: The payload field that carried the reference.
        value: The reference that could not be connected.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} referenced by {field}={value!r} does not exist")
