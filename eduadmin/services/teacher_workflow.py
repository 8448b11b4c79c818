"""Teacher onboarding workflow.

New teachers start in ``process`` status:

    process ──(MF uploads contract)──► process + contract
            ──(HQ approves)──────────► active

Both steps are role-gated and re-check that the teacher is visible to the
caller's organisational scope.
"""
import logging

from eduadmin.core.exceptions import ForbiddenError, InvalidInputError
from eduadmin.core.roles import Caller, Role
from eduadmin.services.entity_registry import TEACHERS
from eduadmin.services.entity_service import EntityService
from eduadmin.utils.helpers import parse_datetime, utcnow

logger = logging.getLogger(__name__)

PENDING_STATUS = "process"
APPROVED_STATUS = "active"


def upload_contract(service: EntityService, teacher_id: str, payload: dict, caller: Caller) -> dict:
    """Attach a signed contract to a teacher awaiting approval (MF only)."""
    if caller.role is not Role.MF:
        raise ForbiddenError("Only MF users can upload contracts", role=caller.role.value, operation="contract")

    teacher = service.get_record(TEACHERS.name, teacher_id, caller)
    if teacher.get("status") != PENDING_STATUS:
        raise InvalidInputError("Contract can only be uploaded for teachers in PROCESS status")

    contract_file = (payload or {}).get("contractFile")
    contract_date = (payload or {}).get("contractDate")
    if not contract_file or not contract_date:
        raise InvalidInputError(
            "Contract file and contract date are required",
            details={k: "required" for k, v in (("contractFile", contract_file), ("contractDate", contract_date)) if not v},
        )
    if parse_datetime(contract_date) is None:
        raise InvalidInputError("Invalid contractDate", details={"contractDate": contract_date})

    record = service.store.for_entity(TEACHERS.name).update(
        teacher_id, {"contractFile": str(contract_file), "contractDate": contract_date},
    )
    logger.info("Contract uploaded for teacher %s by %s", teacher_id, caller)
    return record


def approve_teacher(service: EntityService, teacher_id: str, caller: Caller) -> dict:
    """Activate a teacher whose contract is on file (HQ only)."""
    if caller.role is not Role.HQ:
        raise ForbiddenError("Only HQ users can approve teachers", role=caller.role.value, operation="approve")

    teacher = service.get_record(TEACHERS.name, teacher_id, caller)
    if not teacher.get("contractFile"):
        raise InvalidInputError("Teacher must have a contract uploaded before approval")
    if teacher.get("status") != PENDING_STATUS:
        raise InvalidInputError("Only teachers in PROCESS status can be approved")

    record = service.store.for_entity(TEACHERS.name).update(
        teacher_id, {"status": APPROVED_STATUS, "approvedAt": utcnow().isoformat()},
    )
    logger.info("Teacher %s approved by %s", teacher_id, caller)
    return record
