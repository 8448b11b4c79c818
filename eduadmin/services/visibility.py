"""Visibility filter: which records a caller may see.

Two independent rules, both table-driven from the entity definition:

1. **Visibility mode** (visibility-bearing entities: programs, subprograms)

   | Role | Visible records                                             |
   |------|-------------------------------------------------------------|
   | HQ   | all                                                         |
   | MF   | public, or shared with scope ∈ share-list for MF            |
   | LC   | public, or shared with scope ∈ share-list for LC            |
   | TT   | public only                                                 |

   MF and LC callers also see records they created themselves (the
   ``createdBy`` stamp equals their scope), whatever the mode.

2. **Organisational scope** (org-owned entities: teachers, students,
   learning groups, orders). MF callers see records whose ``mfId`` is
   their scope, LC callers records whose ``lcId`` is. HQ and TT are not
   restricted.

Both are applied before search/filter/sort/paginate, and a direct fetch of
a hidden record is a ForbiddenError, never a NotFoundError.
"""
import logging

from eduadmin.core.exceptions import ForbiddenError, InvalidInputError
from eduadmin.core.roles import Caller, Role, Visibility
from eduadmin.services.entity_registry import OWNER_FIELD, EntityDefinition

logger = logging.getLogger(__name__)

# Roles that only ever see public records, whatever the share lists say
PUBLIC_ONLY_ROLES = frozenset({Role.TT})


def is_owner(record: dict, caller: Caller, definition: EntityDefinition) -> bool:
    """True when a scoped MF/LC caller created *record*."""
    if caller.scope is None or caller.role not in definition.share_fields:
        return False
    return str(record.get(OWNER_FIELD)) == caller.scope


def is_visible(record: dict, caller: Caller, definition: EntityDefinition) -> bool:
    """Apply the visibility-mode rule to one record."""
    if not definition.visibility_bearing or caller.role is Role.HQ:
        return True
    if is_owner(record, caller, definition):
        return True

    mode = str(record.get("visibility") or Visibility.PRIVATE.value).lower()
    if mode == Visibility.PUBLIC.value:
        return True
    if caller.role in PUBLIC_ONLY_ROLES or mode != Visibility.SHARED.value:
        return False

    share_field = definition.share_fields.get(caller.role)
    if share_field is None or caller.scope is None:
        return False
    shared_with = record.get(share_field) or []
    return caller.scope in {str(s) for s in shared_with}


def filter_visible(records: list[dict], caller: Caller, definition: EntityDefinition) -> list[dict]:
    """Narrow *records* by visibility mode; identity for non-bearing types."""
    if not definition.visibility_bearing or caller.role is Role.HQ:
        return list(records)
    return [r for r in records if is_visible(r, caller, definition)]


def _scope_field(caller: Caller, definition: EntityDefinition) -> str | None:
    if not definition.org_scoped:
        return None
    field = definition.scope_fields.get(caller.role)
    if field is not None and caller.scope is None:
        raise InvalidInputError(
            f"{caller.role.value} user missing organizational information",
            details={"userScope": "required"},
        )
    return field


def in_scope(record: dict, caller: Caller, definition: EntityDefinition) -> bool:
    """Apply the organisational-scope rule to one record."""
    field = _scope_field(caller, definition)
    if field is None:
        return True
    return str(record.get(field)) == caller.scope


def filter_in_scope(records: list[dict], caller: Caller, definition: EntityDefinition) -> list[dict]:
    field = _scope_field(caller, definition)
    if field is None:
        return list(records)
    return [r for r in records if str(r.get(field)) == caller.scope]


def visible_to(records: list[dict], caller: Caller, definition: EntityDefinition) -> list[dict]:
    """Both rules; what a list endpoint hands to the query engine."""
    return filter_in_scope(filter_visible(records, caller, definition), caller, definition)


def can_view(record: dict, caller: Caller, definition: EntityDefinition) -> bool:
    return is_visible(record, caller, definition) and in_scope(record, caller, definition)


def ensure_visible(record: dict, caller: Caller, definition: EntityDefinition) -> dict:
    """Return *record* or raise ForbiddenError if the caller may not see it."""
    if can_view(record, caller, definition):
        return record
    logger.warning(
        "Hidden record access: %s/%s by %s",
        definition.name, record.get("id"), caller,
        extra={
            "event_type": "hidden_record_access", "role": caller.role.value,
            "scope": caller.scope, "entity_type": definition.name,
        },
    )
    raise ForbiddenError("Access denied", role=caller.role.value, operation="read")
