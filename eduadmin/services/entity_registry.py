"""Entity registry: one declarative definition per managed entity type.

The access layer (query engine, visibility filter, mutation gate, entity
service) is written once and parameterised by these definitions, so adding
an entity type is a data change here rather than a new blueprint.

Each definition declares:
- searchable fields (case-insensitive substring search)
- filterable fields (exact match, query-string name == field name)
- field types (drive sorting and payload validation)
- enum domains, required fields and create-time defaults
- share-list fields per role (visibility-bearing entities only)
- organisational scope fields per role (org-owned entities only)
- references to other entity types (checked on create/update)
- dependents: records of other types that block deletion while they
  still reference this one
- system fields: set only by the service layer, never from a payload
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from eduadmin.core.exceptions import InvalidInputError, NotFoundError
from eduadmin.core.roles import Role, Visibility
from eduadmin.services.pricing_snapshot import normalize_pricing_snapshot
from eduadmin.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)

# ── Field kinds ──────────────────────────────────────────────────────────

STRING = "string"
NUMBER = "number"
DATE = "date"
BOOL = "bool"
ID_LIST = "id_list"      # list of scope / record ids, stored as strings
LIST = "list"
OBJECT = "object"

# Managed by the store; silently dropped from incoming payloads
READONLY_FIELDS = frozenset({"id", "createdAt", "updatedAt"})

# Fields every record carries, whatever its type
_COMMON_FIELD_TYPES = {"id": STRING, "createdAt": DATE, "updatedAt": DATE}

# Stamped with the creating caller's scope on visibility-bearing records
OWNER_FIELD = "createdBy"

VISIBILITIES = {v.value for v in Visibility}


@dataclass(frozen=True)
class EntityDefinition:
    """Declarative description of one entity type."""

    name: str                      # URL slug, e.g. "learning-groups"
    label: str                     # singular, e.g. "Learning group"
    plural: str                    # used in messages, e.g. "learning groups"
    id_prefix: str
    searchable: tuple[str, ...] = ()
    filterable: tuple[str, ...] = ()
    field_types: dict[str, str] = field(default_factory=dict)
    enums: dict[str, frozenset] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    defaults: dict[str, Any] = field(default_factory=dict)
    share_fields: dict[Role, str] = field(default_factory=dict)
    scope_fields: dict[Role, str] = field(default_factory=dict)
    references: dict[str, str] = field(default_factory=dict)
    dependents: dict[str, str] = field(default_factory=dict)
    system_fields: frozenset = frozenset()
    normalizers: dict[str, Callable[[Any], Any]] = field(default_factory=dict)

    @property
    def visibility_bearing(self) -> bool:
        return bool(self.share_fields)

    @property
    def org_scoped(self) -> bool:
        return bool(self.scope_fields)

    def field_type(self, name: str) -> str | None:
        return self.field_types.get(name) or _COMMON_FIELD_TYPES.get(name)

    # ── Payload validation ───────────────────────────────────────────────

    def clean(self, payload: dict, *, partial: bool = False) -> dict:
        """Validate and normalise an incoming create/update payload.

        Args:
            payload: Raw JSON body.
            partial: True for updates; required fields are not enforced
                and defaults are not applied.

        Returns:
            A new dict with readonly and system keys removed and values
            coerced.

        Raises:
            InvalidInputError: with field-level ``details``.
        """
        if not isinstance(payload, dict):
            raise InvalidInputError("Request body must be a JSON object")

        ignored = READONLY_FIELDS | self.system_fields
        data = {k: v for k, v in payload.items() if k not in ignored}
        dropped = ignored.intersection(payload)
        if dropped:
            logger.debug("Ignoring readonly/system fields %s on %s payload", sorted(dropped), self.name)

        if not partial:
            for key, value in self.defaults.items():
                data.setdefault(key, list(value) if isinstance(value, list) else value)

        errors: dict[str, str] = {}

        if not partial:
            missing = [f for f in self.required if _is_blank(data.get(f))]
            if missing:
                raise InvalidInputError(
                    f"Missing required fields: {', '.join(missing)}",
                    details={f: "required" for f in missing},
                )
        else:
            blanked = [f for f in self.required if f in data and _is_blank(data[f])]
            for f in blanked:
                errors[f] = "cannot be empty"

        for key, value in list(data.items()):
            if value is None:
                continue
            kind = self.field_types.get(key)
            try:
                if key in self.normalizers:
                    data[key] = self.normalizers[key](value)
                elif kind is not None:
                    data[key] = _coerce(value, kind)
            except (ValueError, TypeError) as exc:
                errors[key] = str(exc)
                continue

            allowed = self.enums.get(key)
            if allowed is not None:
                normalized = str(data[key]).strip().lower()
                if normalized not in allowed:
                    errors[key] = f"Invalid {key}: '{value}'. Allowed: {sorted(allowed)}"
                else:
                    data[key] = normalized

        if errors:
            first = next(iter(errors.values()))
            message = first if len(errors) == 1 else "Validation failed"
            raise InvalidInputError(message, details=errors)
        return data

    def normalize_filter(self, name: str, raw: str):
        """Coerce a query-string filter value to the stored representation."""
        if name in self.enums:
            return raw.strip().lower()
        kind = self.field_types.get(name)
        if kind == NUMBER:
            try:
                return _coerce(raw, NUMBER)
            except ValueError as exc:
                raise InvalidInputError(f"Invalid {name} filter", details={name: raw}) from exc
        if kind == BOOL:
            return _coerce(raw, BOOL)
        return raw


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == []


def _coerce(value, kind: str):
    if kind == STRING:
        if isinstance(value, (dict, list)):
            raise TypeError("must be a string")
        return str(value)
    if kind == NUMBER:
        if isinstance(value, bool):
            raise TypeError("must be a number")
        if isinstance(value, (int, float)):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                raise ValueError("must be a number") from None
    if kind == DATE:
        if parse_datetime(value) is None:
            raise ValueError("must be an ISO date (YYYY-MM-DD)")
        return value
    if kind == BOOL:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no"):
            return False
        raise ValueError("must be a boolean")
    if kind == ID_LIST:
        if not isinstance(value, list):
            raise TypeError("must be a list of ids")
        return [str(v) for v in value if v is not None]
    if kind == LIST:
        if not isinstance(value, list):
            raise TypeError("must be a list")
        return value
    if kind == OBJECT:
        if not isinstance(value, dict):
            raise TypeError("must be an object")
        return value
    return value


# ═════════════════════════════════════════════════════════════════════════════
# DEFINITIONS
# ═════════════════════════════════════════════════════════════════════════════

_SHARED_WITH = {Role.MF: "sharedWithMFs", Role.LC: "sharedWithLCs"}
_ORG_SCOPE = {Role.MF: "mfId", Role.LC: "lcId"}
_VISIBILITY_DEFAULTS = {"visibility": "private", "sharedWithMFs": [], "sharedWithLCs": []}
_VISIBILITY_TYPES = {"visibility": STRING, "sharedWithMFs": ID_LIST, "sharedWithLCs": ID_LIST}

PRICING_MODELS = frozenset({
    "per_course", "per_month", "per_session", "subscription",
    "program_price", "one_time", "installments",
})

PROGRAMS = EntityDefinition(
    name="programs",
    label="Program",
    plural="programs",
    id_prefix="prog",
    searchable=("name", "description", "kind"),
    filterable=("status", "category", "kind", "visibility"),
    field_types={
        "name": STRING, "description": STRING, "status": STRING,
        "category": STRING, "kind": STRING, "duration": NUMBER,
        "price": NUMBER, "maxStudents": NUMBER, "currentStudents": NUMBER,
        "hours": NUMBER, "lessonLength": NUMBER, "requirements": LIST,
        "learningObjectives": LIST, "createdBy": STRING, **_VISIBILITY_TYPES,
    },
    enums={
        "status": frozenset({"draft", "active", "inactive"}),
        "visibility": frozenset(VISIBILITIES),
    },
    required=("name",),
    defaults={"status": "draft", "currentStudents": 0, **_VISIBILITY_DEFAULTS},
    share_fields=_SHARED_WITH,
    dependents={"subprograms": "programId"},
    system_fields=frozenset({OWNER_FIELD}),
)

SUBPROGRAMS = EntityDefinition(
    name="subprograms",
    label="SubProgram",
    plural="subprograms",
    id_prefix="sub",
    searchable=("name", "description"),
    filterable=("status", "programId", "pricingModel", "visibility"),
    field_types={
        "programId": STRING, "name": STRING, "description": STRING,
        "status": STRING, "order": NUMBER, "duration": NUMBER, "price": NUMBER,
        "prerequisites": LIST, "learningObjectives": LIST, "pricingModel": STRING,
        "coursePrice": NUMBER, "numberOfPayments": NUMBER, "gap": NUMBER,
        "pricePerMonth": NUMBER, "pricePerSession": NUMBER, "createdBy": STRING,
        **_VISIBILITY_TYPES,
    },
    enums={
        "status": frozenset({"draft", "active", "inactive"}),
        "pricingModel": PRICING_MODELS,
        "visibility": frozenset(VISIBILITIES),
    },
    required=("programId", "name"),
    defaults={"status": "draft", "order": 1, **_VISIBILITY_DEFAULTS},
    share_fields=_SHARED_WITH,
    references={"programId": "programs"},
    system_fields=frozenset({OWNER_FIELD}),
)

LEARNING_GROUPS = EntityDefinition(
    name="learning-groups",
    label="Learning group",
    plural="learning groups",
    id_prefix="lg",
    searchable=("name", "description", "location"),
    filterable=("status", "lcId", "mfId", "programId", "subProgramId", "teacherId"),
    field_types={
        "name": STRING, "description": STRING, "status": STRING,
        "location": STRING, "notes": STRING, "maxStudents": NUMBER,
        "startDate": DATE, "endDate": DATE, "programId": STRING,
        "subProgramId": STRING, "teacherId": STRING, "lcId": STRING,
        "mfId": STRING, "schedule": LIST, "pricingSnapshot": OBJECT,
    },
    enums={"status": frozenset({"active", "inactive", "completed", "cancelled"})},
    required=("name", "programId"),
    defaults={"status": "active", "schedule": []},
    scope_fields=_ORG_SCOPE,
    references={"programId": "programs", "subProgramId": "subprograms", "teacherId": "teachers"},
    normalizers={"pricingSnapshot": normalize_pricing_snapshot},
)

TEACHERS = EntityDefinition(
    name="teachers",
    label="Teacher",
    plural="teachers",
    id_prefix="tch",
    searchable=("firstName", "lastName", "email"),
    filterable=("status", "lcId", "mfId", "gender"),
    field_types={
        "firstName": STRING, "lastName": STRING, "email": STRING,
        "phone": STRING, "dateOfBirth": DATE, "gender": STRING,
        "status": STRING, "lcId": STRING, "mfId": STRING,
        "contractFile": STRING, "contractDate": DATE, "approvedAt": DATE,
    },
    enums={
        "status": frozenset({"process", "active", "inactive"}),
        "gender": frozenset({"male", "female", "other"}),
    },
    required=("firstName", "lastName", "email"),
    defaults={"status": "process"},
    scope_fields=_ORG_SCOPE,
    system_fields=frozenset({"contractFile", "contractDate", "approvedAt"}),
)

STUDENTS = EntityDefinition(
    name="students",
    label="Student",
    plural="students",
    id_prefix="stu",
    searchable=("firstName", "lastName", "parentFirstName", "parentLastName", "parentEmail"),
    filterable=("status", "lcId", "mfId", "learningGroupId", "gender"),
    field_types={
        "firstName": STRING, "lastName": STRING, "dateOfBirth": DATE,
        "gender": STRING, "status": STRING, "parentFirstName": STRING,
        "parentLastName": STRING, "parentEmail": STRING, "parentPhone": STRING,
        "learningGroupId": STRING, "lcId": STRING, "mfId": STRING,
    },
    enums={
        "status": frozenset({"active", "inactive", "graduated"}),
        "gender": frozenset({"male", "female", "other"}),
    },
    required=("firstName", "lastName"),
    defaults={"status": "active"},
    scope_fields=_ORG_SCOPE,
    references={"learningGroupId": "learning-groups"},
)

PRODUCTS = EntityDefinition(
    name="products",
    label="Product",
    plural="products",
    id_prefix="prd",
    searchable=("name", "sku", "description"),
    filterable=("status", "category"),
    field_types={
        "name": STRING, "sku": STRING, "description": STRING,
        "category": STRING, "status": STRING, "price": NUMBER, "stock": NUMBER,
    },
    enums={"status": frozenset({"active", "inactive"})},
    required=("name",),
    defaults={"status": "active", "stock": 0},
)

ORDERS = EntityDefinition(
    name="orders",
    label="Order",
    plural="orders",
    id_prefix="ord",
    searchable=("orderNumber", "notes"),
    filterable=("status", "lcId", "mfId"),
    field_types={
        "orderNumber": STRING, "notes": STRING, "status": STRING,
        "items": LIST, "total": NUMBER, "orderDate": DATE,
        "lcId": STRING, "mfId": STRING,
    },
    enums={"status": frozenset({"pending", "approved", "shipped", "delivered", "cancelled"})},
    required=("orderNumber",),
    defaults={"status": "pending", "items": []},
    scope_fields=_ORG_SCOPE,
)

TRAININGS = EntityDefinition(
    name="trainings",
    label="Training",
    plural="trainings",
    id_prefix="trn",
    searchable=("name", "description", "location"),
    filterable=("status", "trainingType", "trainerId"),
    field_types={
        "name": STRING, "description": STRING, "location": STRING,
        "status": STRING, "trainingType": STRING, "trainerId": STRING,
        "startDate": DATE, "endDate": DATE, "maxParticipants": NUMBER,
        "participants": ID_LIST,
    },
    enums={"status": frozenset({"scheduled", "in_progress", "completed", "cancelled"})},
    required=("name",),
    defaults={"status": "scheduled", "participants": []},
)

ACCOUNTS = EntityDefinition(
    name="accounts",
    label="Account",
    plural="accounts",
    id_prefix="acc",
    searchable=("name", "code", "email"),
    filterable=("status", "accountType", "parentId"),
    field_types={
        "name": STRING, "code": STRING, "email": STRING, "status": STRING,
        "accountType": STRING, "parentId": STRING, "country": STRING,
    },
    enums={
        "status": frozenset({"active", "inactive"}),
        "accountType": frozenset({"hq", "mf", "lc"}),
    },
    required=("name", "accountType"),
    defaults={"status": "active"},
)

APPLICATIONS = EntityDefinition(
    name="applications",
    label="Application",
    plural="applications",
    id_prefix="apl",
    searchable=("applicantName", "email", "organization"),
    filterable=("status", "applicationType"),
    field_types={
        "applicantName": STRING, "email": STRING, "organization": STRING,
        "status": STRING, "applicationType": STRING, "message": STRING,
    },
    enums={
        "status": frozenset({"pending", "approved", "rejected"}),
        "applicationType": frozenset({"mf", "lc"}),
    },
    required=("applicantName", "email"),
    defaults={"status": "pending"},
)

ENTITY_DEFINITIONS: dict[str, EntityDefinition] = {
    d.name: d
    for d in (
        PROGRAMS, SUBPROGRAMS, LEARNING_GROUPS, TEACHERS, STUDENTS,
        PRODUCTS, ORDERS, TRAININGS, ACCOUNTS, APPLICATIONS,
    )
}


def get_definition(entity_type: str) -> EntityDefinition:
    """Look up a definition by URL slug; unknown slugs are a 404."""
    definition = ENTITY_DEFINITIONS.get(entity_type)
    if definition is None:
        raise NotFoundError(resource="Entity type", resource_id=entity_type)
    return definition
