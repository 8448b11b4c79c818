"""SQLAlchemy-backed repository over the generic ``entity_records`` table.

Transaction policy: every public method commits on success and rolls back
on failure before re-raising. Must be called inside an app context.
"""
import logging

from sqlalchemy import delete, select

from eduadmin.core.exceptions import NotFoundError
from eduadmin.models import db
from eduadmin.models.record import EntityRecord
from eduadmin.services.repository import EntityRepository, new_record_id, next_timestamp
from eduadmin.utils.helpers import to_jsonable

logger = logging.getLogger(__name__)

# Columns, never part of the JSON payload
_IDENTITY_KEYS = frozenset({"id", "createdAt", "updatedAt"})


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Database error on commit")
        raise


class SqlRepository(EntityRepository):
    """One entity type stored as JSON documents in ``entity_records``."""

    def _query(self):
        return select(EntityRecord).where(EntityRecord.entity_type == self.entity_type)

    def _get_row(self, record_id: str) -> EntityRecord:
        row = db.session.execute(
            self._query().where(EntityRecord.record_id == str(record_id))
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(resource=self.label, resource_id=record_id)
        return row

    def list(self) -> list[dict]:
        rows = db.session.execute(self._query().order_by(EntityRecord.pk)).scalars()
        return [row.to_dict() for row in rows]

    def get_by_id(self, record_id: str) -> dict:
        return self._get_row(record_id).to_dict()

    def create(self, data: dict) -> dict:
        now = next_timestamp()
        row = EntityRecord(
            record_id=new_record_id(self.id_prefix),
            entity_type=self.entity_type,
            created_at=now,
            updated_at=now,
        )
        row.payload = to_jsonable({k: v for k, v in data.items() if k not in _IDENTITY_KEYS})
        db.session.add(row)
        _commit()
        return row.to_dict()

    def update(self, record_id: str, changes: dict) -> dict:
        row = self._get_row(record_id)
        previous = row.to_dict()["updatedAt"]
        changes = {k: v for k, v in changes.items() if k not in _IDENTITY_KEYS}
        row.payload = {**row.payload, **to_jsonable(changes)}
        row.updated_at = next_timestamp(previous)
        _commit()
        return row.to_dict()

    def delete(self, record_id: str) -> bool:
        try:
            row = self._get_row(record_id)
        except NotFoundError:
            return False
        db.session.delete(row)
        _commit()
        return True

    def clear(self) -> None:
        db.session.execute(
            delete(EntityRecord).where(EntityRecord.entity_type == self.entity_type)
        )
        _commit()
