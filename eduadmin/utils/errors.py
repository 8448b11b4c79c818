"""Standardised API error responses.

Every failure leaves the API in the same envelope shape the UI consumes:

    {"success": false, "message": "...", "code": "ERR_..."}

Usage
-----
    from eduadmin.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Program not found")
    return api_error(E.VALIDATION_INVALID, "Invalid page", details={"page": "abc"})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Invalid input – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Role / visibility denial – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Method / rate – HTTP 405 / 429
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.NOT_FOUND: 404,
    E.FORBIDDEN: 403,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}


def error_body(code: str, message: str, details: dict | None = None) -> dict:
    """Build the failure envelope as a plain dict."""
    body: dict = {
        "success": False,
        "message": message,
        "code": code,
    }
    if details:
        body["details"] = details
    return body


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation, safe to show to the end user.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown for validation failures.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)
    return jsonify(error_body(code, message, details)), http_status
