"""Query engine: search, filter, sort and paginate an in-memory collection.

    result = run_query(records, QueryDescriptor(search="math", page=2, limit=10), PROGRAMS)
    result.data                    # at most 10 records
    result.pagination.total        # matches before slicing

Order of operations is fixed: search → filters → sort → paginate. The
caller applies the visibility filter before handing the collection in, so
``total`` only ever counts records the caller may see.

Never raises for empty collections or out-of-range pages.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from eduadmin.core.exceptions import InvalidInputError
from eduadmin.services.entity_registry import DATE, NUMBER, STRING, EntityDefinition
from eduadmin.utils.helpers import ceil_div, parse_datetime, parse_int_arg

logger = logging.getLogger(__name__)

SORT_ORDERS = ("asc", "desc")


@dataclass
class QueryDescriptor:
    """One list request: search text, exact-match filters, sort, page window."""

    search: str | None = None
    filters: dict[str, Any] = field(default_factory=dict)
    sort_by: str | None = None
    sort_order: str = "asc"
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.sort_order not in SORT_ORDERS:
            raise InvalidInputError(
                f"Invalid sortOrder: '{self.sort_order}'. Allowed: {list(SORT_ORDERS)}",
                details={"sortOrder": self.sort_order},
            )
        if self.limit < 1:
            raise InvalidInputError("limit must be at least 1", details={"limit": self.limit})

    @classmethod
    def from_args(
        cls,
        args,
        definition: EntityDefinition,
        *,
        default_limit: int = 10,
        max_limit: int = 1000,
        default_sort_by: str | None = "createdAt",
        default_sort_order: str = "desc",
    ) -> "QueryDescriptor":
        """Build a descriptor from a request's query-string mapping.

        Only the entity's declared filterable fields become filters; other
        unknown keys are ignored. ``limit`` is capped at *max_limit*.
        """
        page = parse_int_arg(args.get("page"), "page", 1)
        limit = parse_int_arg(args.get("limit"), "limit", default_limit)
        if limit > max_limit:
            limit = max_limit

        filters = {}
        for name in definition.filterable:
            raw = args.get(name)
            if raw is not None and str(raw).strip() != "":
                filters[name] = definition.normalize_filter(name, str(raw))

        search = (args.get("search") or "").strip() or None
        return cls(
            search=search,
            filters=filters,
            sort_by=args.get("sortBy") or default_sort_by,
            sort_order=(args.get("sortOrder") or default_sort_order).lower(),
            page=page,
            limit=limit,
        )


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


@dataclass(frozen=True)
class PaginatedResult:
    data: list[dict]
    pagination: Pagination


# ── Steps ────────────────────────────────────────────────────────────────


def apply_search(records: list[dict], term: str | None, fields) -> list[dict]:
    """Keep records where any searchable field contains *term* (case-insensitive)."""
    if not term:
        return list(records)
    needle = term.lower()
    matched = []
    for record in records:
        for name in fields:
            value = record.get(name)
            if value is not None and needle in str(value).lower():
                matched.append(record)
                break
    return matched


def apply_filters(records: list[dict], filters: dict[str, Any]) -> list[dict]:
    """Keep records whose every filtered field equals the requested value."""
    if not filters:
        return list(records)
    return [
        r for r in records
        if all(_equals(r.get(name), expected) for name, expected in filters.items())
    ]


def _equals(actual, expected) -> bool:
    if actual == expected:
        return True
    # ids arrive as strings in the query string; stored values may be numbers
    if actual is None or isinstance(actual, (dict, list)):
        return False
    return str(actual) == str(expected)


def _sort_value(value, kind: str | None):
    """Map a raw field value to a (family, comparable) pair, or None if missing."""
    if value is None or value == "":
        return None
    if kind == DATE or isinstance(value, datetime):
        parsed = parse_datetime(value)
        return ("date", parsed) if parsed is not None else None
    if kind == NUMBER or (kind is None and isinstance(value, (int, float)) and not isinstance(value, bool)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return ("invalid", None)
        return ("number", value)
    if kind == STRING or (kind is None and isinstance(value, str)):
        return ("string", value) if isinstance(value, str) else ("invalid", None)
    if isinstance(value, bool):
        return ("bool", value)
    return ("invalid", None)


def apply_sort(
    records: list[dict],
    sort_by: str | None,
    sort_order: str = "asc",
    definition: EntityDefinition | None = None,
) -> list[dict]:
    """Stable sort by *sort_by*.

    Records missing the value stay in their slots; only records carrying a
    value are reordered among themselves. If the present values are of
    mixed or non-comparable kinds the sort is a no-op.
    """
    if not sort_by or len(records) < 2:
        return list(records)

    kind = definition.field_type(sort_by) if definition else None
    keyed = [(i, _sort_value(r.get(sort_by), kind)) for i, r in enumerate(records)]
    present = [(i, key) for i, key in keyed if key is not None]
    families = {key[0] for _, key in present}
    if len(families) != 1 or "invalid" in families:
        if present:
            logger.debug("Sort on %s skipped: non-comparable values %s", sort_by, sorted(families))
        return list(records)

    slots = [i for i, _ in present]
    ordered = sorted(present, key=lambda item: item[1][1], reverse=(sort_order == "desc"))
    result = list(records)
    for slot, (source_index, _) in zip(slots, ordered):
        result[slot] = records[source_index]
    return result


def paginate(records: list[dict], page: int, limit: int) -> PaginatedResult:
    """Slice ``[(page-1)*limit, page*limit)``; out-of-range pages are empty."""
    total = len(records)
    total_pages = ceil_div(total, limit)
    if page < 1:
        data = []
    else:
        start = (page - 1) * limit
        data = records[start:start + limit]
    return PaginatedResult(
        data=data,
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
    )


def run_query(
    records: list[dict],
    descriptor: QueryDescriptor,
    definition: EntityDefinition | None = None,
) -> PaginatedResult:
    """Search → filter → sort → paginate."""
    searchable = definition.searchable if definition else ()
    matched = apply_search(records, descriptor.search, searchable)
    matched = apply_filters(matched, descriptor.filters)
    matched = apply_sort(matched, descriptor.sort_by, descriptor.sort_order, definition)
    return paginate(matched, descriptor.page, descriptor.limit)
