"""
Tagged mutation results.

Every write path returns an ``Outcome`` instead of raising for expected
failures. Callers branch on ``outcome.status``; the blueprint layer turns a
failed outcome into an ``api_error`` response using the code table in
``roadmap_platform.utils.errors``.
"""

from dataclasses import dataclass, field
from enum import Enum

from roadmap_platform.utils.errors import E, status_for


class OutcomeStatus(Enum):
    OK = "OK"
    INVALID_INPUT = E.INVALID_INPUT
    UNAUTHENTICATED = E.UNAUTHENTICATED
    ACCESS_DENIED = E.ACCESS_DENIED
    BAD_SESSION = E.BAD_SESSION
    STALE_DATA = E.STALE_DATA
    REFERENTIAL_FAILURE = E.REFERENTIAL_FAILURE
    INTERNAL = E.INTERNAL


@dataclass(frozen=True)
class Outcome:
    """Terminal state of one mutation request."""

    status: OutcomeStatus
    message: str = ""
    resource: object | None = None
    details: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @property
    def code(self) -> str:
        return self.status.value

    @property
    def http_status(self) -> int:
        if self.ok:
            return 200
        return status_for(self.status.value)

    @property
    def force_logout(self) -> bool:
        """True when the caller's session was torn down and must re-authenticate."""
        return self.status is OutcomeStatus.BAD_SESSION

    @classmethod
    def success(cls, resource, message: str = "") -> "Outcome":
        return cls(OutcomeStatus.OK, message, resource)

    @classmethod
    def failure(cls, status: OutcomeStatus, message: str, **details) -> "Outcome":
        return cls(status, message, None, details)
