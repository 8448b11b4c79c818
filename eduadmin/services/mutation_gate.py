"""Mutation gate: role-based create/update/delete authorisation.

The permission table maps entity type → operation → roles allowed. An
entity or operation missing from the table is unrestricted. The gate is
evaluated before the store is touched; a denial never leaves a partial
write behind.

Usage:
    decision = authorize(Role.MF, "programs", Operation.CREATE)
    if not decision.allowed:
        ...                               # decision.reason is user-safe

    require(Role.MF, "programs", Operation.CREATE)   # raises ForbiddenError
"""
import logging
from dataclasses import dataclass

from eduadmin.core.exceptions import ForbiddenError
from eduadmin.core.roles import Operation, Role
from eduadmin.services.entity_registry import ENTITY_DEFINITIONS

logger = logging.getLogger(__name__)

_HQ = frozenset({Role.HQ})
_MF = frozenset({Role.MF})

# entity type → operation → allowed roles (absent == any role)
PERMISSIONS: dict[str, dict[Operation, frozenset]] = {
    "programs": {
        Operation.CREATE: _HQ,
        Operation.UPDATE: _HQ,
        Operation.DELETE: _HQ,
    },
    "subprograms": {
        Operation.CREATE: _MF,
        Operation.UPDATE: _MF,
        Operation.DELETE: _MF,
    },
    "products": {
        Operation.CREATE: _HQ,
        Operation.UPDATE: _HQ,
        Operation.DELETE: _HQ,
    },
    "trainings": {
        Operation.CREATE: frozenset({Role.HQ, Role.TT}),
        Operation.UPDATE: frozenset({Role.HQ, Role.TT}),
        Operation.DELETE: _HQ,
    },
    "accounts": {
        Operation.CREATE: frozenset({Role.HQ, Role.MF}),
        Operation.UPDATE: frozenset({Role.HQ, Role.MF}),
        Operation.DELETE: _HQ,
    },
    "applications": {
        Operation.UPDATE: _HQ,
        Operation.DELETE: _HQ,
    },
    # teachers, students, learning-groups, orders: unrestricted
}

# Display order for role lists in messages
_ROLE_ORDER = (Role.HQ, Role.MF, Role.LC, Role.TT)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None


ALLOWED = Decision(allowed=True)


def allowed_roles(entity_type: str, operation: Operation) -> frozenset | None:
    """Roles permitted for the operation, or None when unrestricted."""
    return PERMISSIONS.get(entity_type, {}).get(Operation(operation))


def denial_message(entity_type: str, operation: Operation, roles) -> str:
    definition = ENTITY_DEFINITIONS.get(entity_type)
    plural = definition.plural if definition else entity_type
    names = " and ".join(r.value for r in _ROLE_ORDER if r in roles)
    return f"Access denied. Only {names} can {Operation(operation).value} {plural}."


def authorize(role: Role, entity_type: str, operation: Operation) -> Decision:
    """Decide whether *role* may perform *operation* on *entity_type*."""
    roles = allowed_roles(entity_type, operation)
    if roles is None or role in roles:
        return ALLOWED
    return Decision(allowed=False, reason=denial_message(entity_type, operation, roles))


def require(role: Role, entity_type: str, operation: Operation) -> None:
    """Raise ForbiddenError unless ``authorize`` allows the mutation."""
    decision = authorize(role, entity_type, operation)
    if decision.allowed:
        return
    logger.warning(
        "Mutation denied: role=%s entity=%s op=%s",
        role.value, entity_type, Operation(operation).value,
        extra={"event_type": "mutation_denied", "role": role.value, "entity_type": entity_type},
    )
    raise ForbiddenError(decision.reason, role=role.value, operation=Operation(operation).value)
