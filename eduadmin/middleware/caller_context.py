"""
Caller context: who is making the request.

There is no authentication layer; the front end passes the caller's
role and organisational unit on every call, either as query parameters
(``userRole`` / ``userScope``) or as ``X-User-Role`` / ``X-User-Scope``
headers. Query parameters win when both are present.

Parsing is lazy: ``current_caller()`` is called by the views that need a
caller, so a missing or unknown role becomes a 400 from the view's error
handler instead of breaking health checks or CORS preflights.
"""

import logging

from flask import g, request

from eduadmin.core.roles import Caller

logger = logging.getLogger(__name__)

ROLE_PARAM = "userRole"
SCOPE_PARAM = "userScope"
ROLE_HEADER = "X-User-Role"
SCOPE_HEADER = "X-User-Scope"


def _raw_caller() -> tuple[str | None, str | None]:
    role = request.args.get(ROLE_PARAM) or request.headers.get(ROLE_HEADER)
    scope = request.args.get(SCOPE_PARAM) or request.headers.get(SCOPE_HEADER)
    return role, scope


def current_caller() -> Caller:
    """Parse (once per request) and return the caller; raises InvalidInputError."""
    caller = getattr(g, "caller_cached", None)
    if caller is None:
        caller = Caller.from_params(*_raw_caller())
        g.caller_cached = caller
    return caller


def init_caller_context(app):
    """Reset the per-request caller cache."""

    @app.before_request
    def _reset_caller():
        g.caller_cached = None
