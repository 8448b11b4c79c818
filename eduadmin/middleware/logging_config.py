"""
Structured logging for the admin API.

Log records carry the caller (role/scope) and, for access-control events,
an ``event_type`` such as ``mutation_denied`` or ``hidden_record_access``.
Both formatters surface that context:

- JSON (production): one object per line, caller fields nested
  under ``caller`` as well as kept flat for log queries
- Readable (development/testing): a colored line with an
  ``[event_type]`` tag and a ``(ROLE:scope)`` suffix

LOG_LEVEL overrides the per-environment default level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Request context attached by the timing middleware
REQUEST_FIELDS = ("request_id", "method", "path", "status", "duration_ms", "remote_addr")

# Access-control context attached by services through ``extra=``
DOMAIN_FIELDS = ("role", "scope", "entity_type", "event_type")

EXTRA_FIELDS = REQUEST_FIELDS + DOMAIN_FIELDS


def _caller_label(record: logging.LogRecord) -> str | None:
    role = getattr(record, "role", None)
    if not role:
        return None
    scope = getattr(record, "scope", None)
    return f"{role}:{scope}" if scope else str(role)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        caller = _caller_label(record)
        if caller:
            entry["caller"] = caller
        if record.levelno >= logging.WARNING:
            entry["source"] = f"{record.module}:{record.lineno}"
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line formatter for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        parts = [
            f"{color}{datetime.now():%H:%M:%S} {record.levelname:<8}{self.RESET}",
            f"{record.name}:",
        ]
        event = getattr(record, "event_type", None)
        if event:
            parts.append(f"[{event}]")
        parts.append(record.getMessage())

        caller = _caller_label(record)
        if caller:
            parts.append(f"({caller})")
        entity = getattr(record, "entity_type", None)
        if entity:
            parts.append(f"<{entity}>")
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"[{duration:.0f}ms]")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install one stderr handler on the root logger.

    JSON at INFO when neither DEBUG nor TESTING is set; readable lines at
    DEBUG otherwise.
    """
    is_testing = app.config.get("TESTING", False)
    use_json = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if use_json else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if use_json else ReadableFormatter())

    root = logging.getLogger()
    # create_app runs once per test; replace rather than stack handlers
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)
    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "json" if use_json else "readable")
