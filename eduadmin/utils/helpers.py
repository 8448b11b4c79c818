"""Shared parsing and serialisation helpers.

parse_datetime:   lenient, returns None on bad input (sorting, snapshots)
parse_int_arg:    strict, raises InvalidInputError (query string paging)
to_jsonable:      datetimes → ISO strings, recursively
utcnow:           timezone-aware "now"
"""
import math
from datetime import date, datetime, timezone

from eduadmin.core.exceptions import InvalidInputError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value):
    """Parse a date/datetime value to an aware datetime.

    Returns None for empty/invalid input. Supports:
    - datetime / date objects
    - YYYY-MM-DD and full ISO-8601 strings (a trailing ``Z`` is accepted)
    - DD.MM.YYYY

    Naive values are assumed to be UTC so that mixed inputs stay comparable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    for parse in (datetime.fromisoformat, lambda s: datetime.strptime(s, "%d.%m.%Y")):
        try:
            parsed = parse(text)
        except (ValueError, TypeError):
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def parse_int_arg(raw, name: str, default: int) -> int:
    """Parse an integer query parameter, raising InvalidInputError on garbage."""
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (ValueError, TypeError) as exc:
        raise InvalidInputError(
            f"Invalid {name}: must be an integer", details={name: raw}
        ) from exc


def ceil_div(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def to_jsonable(value):
    """Recursively convert datetimes to ISO strings for JSON responses."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
