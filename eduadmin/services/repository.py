"""Entity store: repository port plus the in-memory implementation.

The access layer only talks to ``EntityRepository``; which backend sits
behind it (the in-memory mock or ``SqlRepository``) is decided once in
``build_store`` from the ``REPOSITORY_BACKEND`` setting.

Records are plain dicts in API shape (camelCase keys). Repositories hand
out deep copies, so a caller mutating a returned record never touches the
stored one.
"""
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from threading import Lock

from eduadmin.core.exceptions import NotFoundError
from eduadmin.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def new_record_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def next_timestamp(previous: datetime | None = None) -> datetime:
    """Return "now", nudged past *previous* so updatedAt strictly increases."""
    now = utcnow()
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


class EntityRepository(ABC):
    """Storage port for one entity type."""

    def __init__(self, entity_type: str, *, label: str, id_prefix: str) -> None:
        self.entity_type = entity_type
        self.label = label
        self.id_prefix = id_prefix

    @abstractmethod
    def list(self) -> list[dict]:
        """Return the full, unfiltered collection in insertion order."""

    @abstractmethod
    def get_by_id(self, record_id: str) -> dict:
        """Return one record. Raises NotFoundError if the id is unknown."""

    @abstractmethod
    def create(self, data: dict) -> dict:
        """Store a new record with a fresh id and createdAt == updatedAt."""

    @abstractmethod
    def update(self, record_id: str, changes: dict) -> dict:
        """Merge *changes* into the record and bump updatedAt.

        Fields absent from *changes* are left untouched.
        Raises NotFoundError if the id is unknown.
        """

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Hard-delete. Returns True if a record existed."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every record of this type."""

    def exists(self, record_id: str) -> bool:
        try:
            self.get_by_id(record_id)
        except NotFoundError:
            return False
        return True

    def __repr__(self):
        return f"<{type(self).__name__} {self.entity_type}>"


class InMemoryRepository(EntityRepository):
    """Dict-backed repository; the mock backend used in development and tests.

    One lock per collection keeps create/update/delete atomic with respect
    to concurrent list reads when Flask serves requests on several threads.
    """

    def __init__(self, entity_type: str, *, label: str, id_prefix: str) -> None:
        super().__init__(entity_type, label=label, id_prefix=id_prefix)
        self._records: dict[str, dict] = {}  # insertion-ordered
        self._last_created: datetime | None = None
        self._lock = Lock()

    def list(self) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values()]

    def get_by_id(self, record_id: str) -> dict:
        with self._lock:
            record = self._records.get(str(record_id))
            if record is None:
                raise NotFoundError(resource=self.label, resource_id=record_id)
            return copy.deepcopy(record)

    def create(self, data: dict) -> dict:
        record = copy.deepcopy(data)
        with self._lock:
            # createdAt strictly increases within a collection
            now = self._last_created = next_timestamp(self._last_created)
            record_id = new_record_id(self.id_prefix)
            while record_id in self._records:
                record_id = new_record_id(self.id_prefix)
            record.update(id=record_id, createdAt=now, updatedAt=now)
            self._records[record_id] = record
            return copy.deepcopy(record)

    def update(self, record_id: str, changes: dict) -> dict:
        with self._lock:
            record = self._records.get(str(record_id))
            if record is None:
                raise NotFoundError(resource=self.label, resource_id=record_id)
            merged = {**record, **copy.deepcopy(changes)}
            merged.update(
                id=record["id"],
                createdAt=record["createdAt"],
                updatedAt=next_timestamp(record["updatedAt"]),
            )
            self._records[record["id"]] = merged
            return copy.deepcopy(merged)

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(str(record_id), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class EntityStore:
    """All repositories of one application, keyed by entity type."""

    def __init__(self, repositories: dict[str, EntityRepository], backend: str) -> None:
        self._repositories = repositories
        self.backend = backend

    def for_entity(self, entity_type: str) -> EntityRepository:
        try:
            return self._repositories[entity_type]
        except KeyError:
            raise NotFoundError(resource="Entity type", resource_id=entity_type) from None

    def clear(self) -> None:
        for repo in self._repositories.values():
            repo.clear()

    def __iter__(self):
        return iter(self._repositories.values())


def build_store(backend: str, definitions) -> EntityStore:
    """Create one repository per entity definition for the given backend.

    Args:
        backend: "memory" or "sql".
        definitions: iterable of ``EntityDefinition``.
    """
    if backend == "memory":
        repo_cls = InMemoryRepository
    elif backend == "sql":
        from eduadmin.services.sql_repository import SqlRepository
        repo_cls = SqlRepository
    else:
        raise ValueError(f"Unknown REPOSITORY_BACKEND: {backend!r} (expected 'memory' or 'sql')")

    repositories = {
        d.name: repo_cls(d.name, label=d.label, id_prefix=d.id_prefix)
        for d in definitions
    }
    logger.info("Entity store ready: backend=%s types=%d", backend, len(repositories))
    return EntityStore(repositories, backend)
