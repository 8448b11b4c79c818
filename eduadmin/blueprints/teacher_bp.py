"""
Teacher onboarding endpoints.

    POST /api/teachers/<id>/contract   MF uploads the signed contract
    POST /api/teachers/<id>/approve    HQ activates the teacher

Plain CRUD on teachers goes through the entity blueprint.
"""

import logging

from flask import Blueprint, request

from eduadmin.blueprints import get_service
from eduadmin.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from eduadmin.middleware.caller_context import current_caller
from eduadmin.services.teacher_workflow import approve_teacher, upload_contract
from eduadmin.utils.envelope import error_response, success_response

logger = logging.getLogger(__name__)

teacher_bp = Blueprint("teachers", __name__, url_prefix="/api/teachers")


@teacher_bp.errorhandler(NotFoundError)
@teacher_bp.errorhandler(ForbiddenError)
@teacher_bp.errorhandler(InvalidInputError)
def _handle_domain_error(error: Exception):
    return error_response(error)


@teacher_bp.route("/<teacher_id>/contract", methods=["POST"])
def contract(teacher_id):
    payload = request.get_json(silent=True) or {}
    record = upload_contract(get_service(), teacher_id, payload, current_caller())
    return success_response(record, "Contract uploaded successfully")


@teacher_bp.route("/<teacher_id>/approve", methods=["POST"])
def approve(teacher_id):
    record = approve_teacher(get_service(), teacher_id, current_caller())
    return success_response(record, "Teacher approved successfully")
