"""
Session Token Service: signed session tokens, session rows, revocation.

Authentication happens elsewhere; this module is the adapter the identity
subsystem uses to hand an authenticated principal to the platform, and the
mechanism the platform uses to force a logout.

Session token:  8 hours (configurable via SESSION_TOKEN_EXPIRES)
Algorithm:      HS256

Token payload:
{
    "sub": <user_id>,
    "username": <username>,
    "is_admin": <bool>,          # snapshot at login; re-checked on every write
    "groups": ["ClimateTeam", ...],
    "sid": <session row id>,
    "type": "session",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from roadmap_platform.models import db
from roadmap_platform.models.auth import Session, User
from roadmap_platform.services.access_policy import Principal

logger = logging.getLogger(__name__)

# ─── Defaults ────────────────────────────────────────────────
DEFAULT_SESSION_EXPIRES = 8 * 3600
ALGORITHM = "HS256"
TOKEN_TYPE = "session"


@dataclass(frozen=True)
class SessionClaims:
    """What the caller's session says about them. Not trusted for admin."""

    user_id: str
    username: str
    is_admin: bool
    groups: tuple
    session_id: str


def _get_secret():
    return current_app.config.get("SESSION_TOKEN_SECRET") or current_app.config["SECRET_KEY"]


def _get_expires():
    return current_app.config.get("SESSION_TOKEN_EXPIRES", DEFAULT_SESSION_EXPIRES)


# ═══════════════════════════════════════════════════════════════
# Token Generation
# ═══════════════════════════════════════════════════════════════
def issue_session_token(user: User) -> str:
    """Open a session for ``user`` and return its signed token.

    Commits the new Session row.
    """
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=_get_expires())
    session = Session(user_id=user.id, expires_at=expires_at)
    db.session.add(session)
    db.session.commit()

    payload = {
        "sub": user.id,
        "username": user.username,
        "is_admin": bool(user.is_admin),
        "groups": user.group_names,
        "sid": session.id,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expires_at,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_session_token(token: str) -> SessionClaims:
    """
    Decode and verify a session token.

    Raises jwt exceptions on failure (ExpiredSignatureError, InvalidTokenError, ...).
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    if payload.get("type") != TOKEN_TYPE:
        raise jwt.InvalidTokenError(f"Expected {TOKEN_TYPE} token, got {payload.get('type')}")
    if not payload.get("sub") or not payload.get("sid"):
        raise jwt.InvalidTokenError("Session token is missing sub/sid")
    return SessionClaims(
        user_id=str(payload["sub"]),
        username=payload.get("username", ""),
        is_admin=bool(payload.get("is_admin", False)),
        groups=tuple(payload.get("groups") or ()),
        session_id=payload["sid"],
    )


def is_session_active(session_id: str) -> bool:
    session = db.session.get(Session, session_id)
    if session is None or not session.is_active:
        return False
    expires_at = session.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at > datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
# Session Management
# ═══════════════════════════════════════════════════════════════
def revoke_session(session_id: str, reason: str = "logout") -> bool:
    """
    Mark a session as inactive and commit.

    Returns True if an active session was found and revoked.
    """
    session = db.session.get(Session, session_id)
    if session is None or not session.is_active:
        return False
    session.is_active = False
    session.revoked_at = datetime.now(timezone.utc)
    session.revoke_reason = reason
    db.session.commit()
    logger.info("Session %s revoked (%s)", session_id, reason)
    return True


def load_principal(user_id: str) -> Principal | None:
    """Build a Principal from the current user record, or None if it is gone."""
    user = db.session.get(User, user_id)
    if user is None:
        return None
    return Principal(
        id=user.id,
        username=user.username,
        is_admin=bool(user.is_admin),
        groups=frozenset(user.group_names),
    )
