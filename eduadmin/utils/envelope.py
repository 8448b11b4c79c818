"""Response envelope builder.

Success:
    {"success": true, "data": ..., "message": "..."}
Paginated success (pagination sits alongside data):
    {"success": true, "data": [...], "pagination": {...}, "message": "..."}
Failure: ``error_response(exc)`` maps the domain exceptions onto
``eduadmin.utils.errors.api_error``.

The ``*_body`` functions return plain dicts so services and tests can use
the envelope without a request context; the ``*_response`` functions wrap
them for Flask views.
"""

from __future__ import annotations

from flask import jsonify

from eduadmin.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from eduadmin.utils.errors import E, api_error
from eduadmin.utils.helpers import to_jsonable


def success_body(data=None, message: str | None = None) -> dict:
    body = {"success": True, "data": to_jsonable(data)}
    if message:
        body["message"] = message
    return body


def paginated_body(result, message: str | None = None) -> dict:
    """Wrap a ``PaginatedResult`` (data + pagination block)."""
    body = {
        "success": True,
        "data": to_jsonable(list(result.data)),
        "pagination": result.pagination.to_dict(),
    }
    if message:
        body["message"] = message
    return body


def success_response(data=None, message: str | None = None, status: int = 200):
    return jsonify(success_body(data, message)), status


def paginated_response(result, message: str | None = None):
    return jsonify(paginated_body(result, message)), 200


# Exception type → error code; anything else is a 500
_ERROR_CODES = {
    NotFoundError: E.NOT_FOUND,
    ForbiddenError: E.FORBIDDEN,
    InvalidInputError: E.VALIDATION_INVALID,
}


def error_response(error: Exception):
    """Turn a domain exception into the failure envelope."""
    for exc_type, code in _ERROR_CODES.items():
        if isinstance(error, exc_type):
            details = getattr(error, "details", None)
            if details and "required" in details.values():
                code = E.VALIDATION_REQUIRED
            return api_error(code, str(error), details=details)
    return api_error(E.INTERNAL, "Internal server error")
