"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in roadmap_platform/__init__.py with no
default limits; this module applies granular limits per route category.

Usage:
    from roadmap_platform.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

# Blueprints whose routes mutate roadmap resources.
RESOURCE_BLUEPRINTS = ("roadmap_bp", "goal_bp")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Resource endpoints: 60/minute for writes, 200/minute for reads
        - Health check:       exempt

    Rate limiting is disabled in testing mode or when RATELIMIT_ENABLED is off.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    for bp_name in RESOURCE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, methods=["POST", "PUT", "DELETE"])(bp)
            limiter.limit(READ_LIMIT, methods=["GET"])(bp)

    # Health check: exempt from rate limiting
    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: write: %s, read: %s", WRITE_LIMIT, READ_LIMIT)
