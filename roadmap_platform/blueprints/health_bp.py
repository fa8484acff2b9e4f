"""
Health check blueprint.

Endpoints:
    GET /api/v1/health       : app name + status
    GET /api/v1/health/ready : simple 200 for load balancers
    GET /api/v1/health/live  : detailed system health (DB, rate-limit storage)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from roadmap_platform.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

APP_NAME = "Roadmap Platform"


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": APP_NAME}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe: always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check: database failed: %s", exc)

    # ── Rate-limit storage ───────────────────────────────────────────
    storage = current_app.config.get("REDIS_URL", "")
    checks["rate_limit_storage"] = {
        "status": "ok" if current_app.config.get("RATELIMIT_ENABLED", True) else "disabled",
        "backend": storage.split("://", 1)[0] if storage else "memory",
    }

    # ── App info ─────────────────────────────────────────────────────
    checks["app"] = {
        "name": APP_NAME,
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
