"""
Session Auth Middleware: parses the session token from the Authorization
header and sets ``g.session_claims``.

Authentication itself is done by the identity subsystem that issued the
token. This hook only decides whether the caller presents a live session:

  valid token + active session row  →  g.session_claims = SessionClaims(...)
  no token / invalid / expired / revoked  →  g.session_claims = None (anonymous)

It never rejects a request. Whether anonymous callers may proceed is the
access policy's decision.
"""

import logging

import jwt as pyjwt
from flask import g, request

from roadmap_platform.services.jwt_service import decode_session_token, is_session_active

logger = logging.getLogger(__name__)

# Paths that skip session parsing entirely
SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_session_auth(app):
    """Register the session middleware as a before_request hook."""

    @app.before_request
    def _session_auth():
        g.session_claims = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            claims = decode_session_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired session token on %s", path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected session token on %s: %s", path, exc)
            return

        if not is_session_active(claims.session_id):
            logger.info(
                "Inactive session %s presented by %s", claims.session_id, claims.user_id,
                extra={"principal_id": claims.user_id},
            )
            return

        g.session_claims = claims
