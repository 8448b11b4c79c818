"""
Rate limiting configuration.

The Limiter instance is created in eduadmin/__init__.py with no default
limits; this module applies limits per blueprint. Keys are the caller
role + scope when present, so one learning center cannot exhaust the
budget of another behind the same proxy.

Usage:
    from eduadmin.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import request

logger = logging.getLogger(__name__)

READ_LIMIT = "300/minute"
WRITE_LIMIT = "60/minute"
WORKFLOW_LIMIT = "20/minute"


def rate_limit_key() -> str:
    """Role:scope from the request when given, else the remote address."""
    role = request.args.get("userRole") or request.headers.get("X-User-Role")
    scope = request.args.get("userScope") or request.headers.get("X-User-Scope")
    if role:
        return f"caller:{role}:{scope or '-'}"
    return request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to the API blueprints.

        - Entity reads:     300/minute
        - Entity writes:    60/minute  (POST/PUT/DELETE)
        - Teacher workflow: 20/minute
        - Health:           exempt

    Disabled when TESTING is set or RATELIMIT_ENABLED is false.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    bp = app.blueprints.get("entities")
    if bp:
        limiter.limit(READ_LIMIT, key_func=rate_limit_key, methods=["GET"])(bp)
        limiter.limit(WRITE_LIMIT, key_func=rate_limit_key, methods=["POST", "PUT", "DELETE"])(bp)

    bp = app.blueprints.get("teachers")
    if bp:
        limiter.limit(WORKFLOW_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: read=%s write=%s workflow=%s",
        READ_LIMIT, WRITE_LIMIT, WORKFLOW_LIMIT,
    )
