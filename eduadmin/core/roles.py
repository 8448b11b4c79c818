"""
Organisational roles, visibility modes and the caller identity.

HQ ⊇ MF / LC / TT: headquarters sees everything, the other tiers see
subsets decided by the visibility and permission tables in
``eduadmin.services.visibility`` and ``eduadmin.services.mutation_gate``.
"""

from dataclasses import dataclass
from enum import Enum

from eduadmin.core.exceptions import InvalidInputError


class Role(str, Enum):
    """Caller's organisational tier."""

    HQ = "HQ"   # Headquarters
    MF = "MF"   # Master franchise
    LC = "LC"   # Learning center
    TT = "TT"   # Teacher trainer

    @classmethod
    def parse(cls, raw: str | None) -> "Role":
        """Parse ``HQ`` / ``mf`` / ``LC_ADMIN`` style values.

        Account roles in the user directory carry a suffix
        (``HQ_ADMIN``, ``MF_STAFF``); only the prefix matters here.
        """
        if not raw or not str(raw).strip():
            raise InvalidInputError("userRole is required", details={"userRole": raw})
        prefix = str(raw).strip().upper().split("_", 1)[0]
        try:
            return cls(prefix)
        except ValueError as exc:
            raise InvalidInputError(
                "Invalid user role", details={"userRole": raw}
            ) from exc


class Visibility(str, Enum):
    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Caller:
    """Who is asking: role plus (optionally) the organisational unit id."""

    role: Role
    scope: str | None = None

    @classmethod
    def from_params(cls, role: str | None, scope: str | None = None) -> "Caller":
        scope = str(scope).strip() if scope is not None else None
        return cls(role=Role.parse(role), scope=scope or None)

    def __str__(self) -> str:
        return f"{self.role.value}:{self.scope or '-'}"
