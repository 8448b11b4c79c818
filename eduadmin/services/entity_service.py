"""Entity service: the role-scoped access layer every endpoint goes through.

    list:    visibility filter → query engine
    get:     store lookup (404) → visibility re-check (403)
    create:  mutation gate (403) → validation (400) → references → store
    update:  mutation gate (403) → store lookup (404) → [ownership (403)]
             → validation (400) → references → partial merge
    delete:  mutation gate (403) → [lookup + ownership] → dependents (400)
             → hard delete (404)

The store is only touched after every check has passed. Ownership checks
on update/delete run only when ``enforce_scope_ownership`` is on; by
default the gate is role-only. Visibility-bearing records are stamped with
their creator's scope, which keeps them visible (and so mutable) to the
creator whatever their visibility mode.
"""
import logging

from eduadmin.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from eduadmin.core.roles import Caller, Operation
from eduadmin.services import mutation_gate
from eduadmin.services.entity_registry import (
    ENTITY_DEFINITIONS,
    OWNER_FIELD,
    EntityDefinition,
    get_definition,
)
from eduadmin.services.query_engine import PaginatedResult, QueryDescriptor, run_query
from eduadmin.services.repository import EntityStore
from eduadmin.services.visibility import can_view, ensure_visible, visible_to

logger = logging.getLogger(__name__)


class EntityService:
    """Role-scoped CRUD over an ``EntityStore``."""

    def __init__(self, store: EntityStore, *, enforce_scope_ownership: bool = False) -> None:
        self.store = store
        self.enforce_scope_ownership = enforce_scope_ownership

    # ── Reads ────────────────────────────────────────────────────────────

    def list_records(
        self, entity_type: str, caller: Caller, descriptor: QueryDescriptor,
    ) -> PaginatedResult:
        definition = get_definition(entity_type)
        records = self.store.for_entity(entity_type).list()
        visible = visible_to(records, caller, definition)
        result = run_query(visible, descriptor, definition)
        logger.debug(
            "List %s by %s: visible=%d matched=%d page=%d",
            entity_type, caller, len(visible), result.pagination.total, descriptor.page,
        )
        return result

    def get_record(self, entity_type: str, record_id: str, caller: Caller) -> dict:
        definition = get_definition(entity_type)
        record = self.store.for_entity(entity_type).get_by_id(record_id)
        return ensure_visible(record, caller, definition)

    # ── Writes ───────────────────────────────────────────────────────────

    def create_record(self, entity_type: str, payload: dict, caller: Caller) -> dict:
        definition = get_definition(entity_type)
        mutation_gate.require(caller.role, entity_type, Operation.CREATE)

        data = definition.clean(payload)
        scope_field = definition.scope_fields.get(caller.role)
        if scope_field and caller.scope and not data.get(scope_field):
            data[scope_field] = caller.scope
        if definition.visibility_bearing:
            data[OWNER_FIELD] = caller.scope or caller.role.value
        self._check_references(definition, data, caller)

        record = self.store.for_entity(entity_type).create(data)
        logger.info("Created %s/%s by %s", entity_type, record["id"], caller)
        return record

    def update_record(
        self, entity_type: str, record_id: str, payload: dict, caller: Caller,
    ) -> dict:
        definition = get_definition(entity_type)
        mutation_gate.require(caller.role, entity_type, Operation.UPDATE)

        repo = self.store.for_entity(entity_type)
        existing = repo.get_by_id(record_id)
        if self.enforce_scope_ownership:
            ensure_visible(existing, caller, definition)

        changes = definition.clean(payload, partial=True)
        self._check_references(definition, changes, caller)

        record = repo.update(record_id, changes)
        logger.info(
            "Updated %s/%s by %s fields=%s", entity_type, record_id, caller, sorted(changes),
        )
        return record

    def delete_record(self, entity_type: str, record_id: str, caller: Caller) -> None:
        definition = get_definition(entity_type)
        mutation_gate.require(caller.role, entity_type, Operation.DELETE)

        repo = self.store.for_entity(entity_type)
        if self.enforce_scope_ownership:
            ensure_visible(repo.get_by_id(record_id), caller, definition)
        self._check_dependents(definition, record_id)

        if not repo.delete(record_id):
            raise NotFoundError(resource=definition.label, resource_id=record_id)
        logger.info("Deleted %s/%s by %s", entity_type, record_id, caller)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _check_references(self, definition: EntityDefinition, data: dict, caller: Caller) -> None:
        """Referenced records must exist (400) and be visible to the caller (403)."""
        for field, target_type in definition.references.items():
            target_id = data.get(field)
            if target_id is None or target_id == "":
                continue
            target_def = ENTITY_DEFINITIONS[target_type]
            try:
                target = self.store.for_entity(target_type).get_by_id(target_id)
            except NotFoundError:
                raise InvalidInputError(
                    f"Invalid {field}: {target_def.label} not found",
                    details={field: target_id},
                ) from None
            if not can_view(target, caller, target_def):
                raise ForbiddenError(
                    f"Access denied. You can only use {target_def.plural} shared with your account.",
                    role=caller.role.value,
                )

    def _check_dependents(self, definition: EntityDefinition, record_id: str) -> None:
        """Refuse to delete a record other records still point at (400)."""
        for dependent_type, field in definition.dependents.items():
            count = sum(
                1 for r in self.store.for_entity(dependent_type).list()
                if r.get(field) == record_id
            )
            if count:
                dependent_def = ENTITY_DEFINITIONS[dependent_type]
                raise InvalidInputError(
                    f"Cannot delete {definition.label.lower()} with existing {dependent_def.plural}. "
                    f"Please delete {dependent_def.plural} first.",
                    details={dependent_type: count},
                )
