"""
Entity Blueprint: role-scoped CRUD for every registered entity type.

Endpoints:
    GET    /api/<entity>          List (search, filters, sort, pagination)
    POST   /api/<entity>          Create
    GET    /api/<entity>/<id>     Detail
    PUT    /api/<entity>/<id>     Partial update
    DELETE /api/<entity>/<id>     Delete

<entity> is one of the slugs in ``ENTITY_DEFINITIONS`` (programs,
subprograms, learning-groups, teachers, students, products, orders,
trainings, accounts, applications); anything else is a 404.

Every call needs the caller's role (``userRole`` query parameter or
``X-User-Role`` header) and, for MF/LC callers, their organisational
unit (``userScope`` / ``X-User-Scope``).
"""

import logging

from flask import Blueprint, current_app, request

from eduadmin.blueprints import get_service
from eduadmin.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from eduadmin.middleware.caller_context import current_caller
from eduadmin.services.entity_registry import get_definition
from eduadmin.services.query_engine import QueryDescriptor
from eduadmin.utils.envelope import error_response, paginated_response, success_response

logger = logging.getLogger(__name__)

entity_bp = Blueprint("entities", __name__, url_prefix="/api")


# ── Error handlers ────────────────────────────────────────────────────────────


@entity_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return error_response(error)


@entity_bp.errorhandler(ForbiddenError)
def _handle_forbidden(error: ForbiddenError):
    return error_response(error)


@entity_bp.errorhandler(InvalidInputError)
def _handle_invalid(error: InvalidInputError):
    return error_response(error)


# ── Helpers ──────────────────────────────────────────────────────────────────


def _json_body():
    # Shape is checked by the service, after the mutation gate
    return request.get_json(silent=True)


def _descriptor(definition) -> QueryDescriptor:
    return QueryDescriptor.from_args(
        request.args,
        definition,
        default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
        max_limit=current_app.config["MAX_PAGE_LIMIT"],
    )


# ═════════════════════════════════════════════════════════════════════════
# Collection  (/api/<entity>)
# ═════════════════════════════════════════════════════════════════════════


@entity_bp.route("/<entity>", methods=["GET"])
def list_entities(entity):
    """List the records the caller may see, one page at a time."""
    definition = get_definition(entity)
    caller = current_caller()
    result = get_service().list_records(entity, caller, _descriptor(definition))
    return paginated_response(result, f"{definition.plural.capitalize()} retrieved successfully")


@entity_bp.route("/<entity>", methods=["POST"])
def create_entity(entity):
    definition = get_definition(entity)
    record = get_service().create_record(entity, _json_body(), current_caller())
    return success_response(record, f"{definition.label} created successfully", status=201)


# ═════════════════════════════════════════════════════════════════════════
# Single record  (/api/<entity>/<id>)
# ═════════════════════════════════════════════════════════════════════════


@entity_bp.route("/<entity>/<record_id>", methods=["GET"])
def get_entity(entity, record_id):
    """Hidden records answer 403, unknown ids 404."""
    definition = get_definition(entity)
    record = get_service().get_record(entity, record_id, current_caller())
    return success_response(record, f"{definition.label} retrieved successfully")


@entity_bp.route("/<entity>/<record_id>", methods=["PUT"])
def update_entity(entity, record_id):
    definition = get_definition(entity)
    record = get_service().update_record(entity, record_id, _json_body(), current_caller())
    return success_response(record, f"{definition.label} updated successfully")


@entity_bp.route("/<entity>/<record_id>", methods=["DELETE"])
def delete_entity(entity, record_id):
    definition = get_definition(entity)
    get_service().delete_record(entity, record_id, current_caller())
    return success_response(None, f"{definition.label} deleted successfully")
