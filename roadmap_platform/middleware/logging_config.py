"""
Structured logging configuration.

- Development: human-readable colored lines tagged with request id and caller
- Production: one JSON object per record (log aggregator compatible)
- LOG_LEVEL / LOG_FORMAT env variables override the defaults

Every record logged while a request is being served carries the request id
and the id of the signed-in principal (if any), so a denial logged deep in
the mutation service can be tied back to the HTTP request that caused it.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Extra record fields emitted when present, either via ``extra=`` or from
# the request context filter.
EXTRA_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "request_id",
    "principal_id",
    "resource_kind",
    "resource_id",
    "outcome",
)

FORMATS = ("json", "readable")


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request id and principal id.

    Values passed explicitly through ``extra=`` win over the request context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        if getattr(record, "principal_id", None) is None:
            claims = getattr(g, "session_claims", None)
            record.principal_id = claims.user_id if claims else None
        return True


def record_context(record: logging.LogRecord) -> dict:
    """The non-empty EXTRA_FIELDS of a record."""
    context = {}
    for key in EXTRA_FIELDS:
        val = getattr(record, key, None)
        if val is not None and val != "":
            context[key] = val
    return context


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        log_entry.update(record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line formatter for development.

    ``12:00:01 WARNING  [3f2a9c] roadmap_platform.services...: Access denied ... goal:abc (access_denied) user=u-1 [4ms]``
    """

    COLORS = {
        "DEBUG": "\033[36m",      # cyan
        "INFO": "\033[32m",       # green
        "WARNING": "\033[33m",    # yellow
        "ERROR": "\033[31m",      # red
        "CRITICAL": "\033[35m",   # magenta
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        ctx = record_context(record)
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self.color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        parts = [ts, level]
        if "request_id" in ctx:
            parts.append(f"[{ctx['request_id']}]")
        parts.append(f"{record.name}: {record.getMessage()}")
        if "resource_kind" in ctx:
            parts.append(f"{ctx['resource_kind']}:{ctx.get('resource_id', '-')}")
        if ctx.get("outcome") not in (None, "ok"):
            parts.append(f"({ctx['outcome']})")
        if "principal_id" in ctx:
            parts.append(f"user={ctx['principal_id']}")
        if "duration_ms" in ctx:
            parts.append(f"[{ctx['duration_ms']:.0f}ms]")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def build_formatter(fmt: str, color: bool = True) -> logging.Formatter:
    if fmt not in FORMATS:
        raise ValueError(f"LOG_FORMAT must be one of {', '.join(FORMATS)}, got {fmt!r}")
    return JSONFormatter() if fmt == "json" else ReadableFormatter(color=color)


def configure_logging(app):
    """
    Set up structured logging for the Flask app.

    LOG_LEVEL defaults to INFO in production and DEBUG otherwise.
    LOG_FORMAT defaults to ``json`` in production and ``readable`` otherwise;
    readable output is only colored when stderr is a terminal.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)
    fmt = os.getenv("LOG_FORMAT", "json" if is_prod else "readable").lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(build_formatter(fmt, color=sys.stderr.isatty()))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    # Single root handler; cleared first so repeated create_app calls in tests don't stack
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
