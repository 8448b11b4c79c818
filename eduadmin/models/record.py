"""
Franchise Education Admin
Generic entity record table used by the SQL repository.

Every entity type (programs, teachers, orders, ...) shares one table: the
record's business fields live in ``payload_json`` and only identity,
type and timestamps are real columns. Insertion order is kept by the
integer surrogate key so listings are deterministic.
"""

import json
from datetime import UTC, datetime

from eduadmin.models import db


class EntityRecord(db.Model):
    """One stored record of any entity type."""

    __tablename__ = "entity_records"
    __table_args__ = (
        db.Index("idx_entity_records_type", "entity_type"),
        db.UniqueConstraint("entity_type", "record_id", name="uq_entity_records_type_id"),
    )

    pk = db.Column(db.Integer, primary_key=True, autoincrement=True)
    record_id = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(
        db.String(50), nullable=False,
        comment="programs | subprograms | teachers | students | ...",
    )
    payload_json = db.Column(db.Text, nullable=False, default="{}")

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def payload(self) -> dict:
        """Deserialise *payload_json* to a Python dict."""
        try:
            return json.loads(self.payload_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    @payload.setter
    def payload(self, value: dict) -> None:
        self.payload_json = json.dumps(value, ensure_ascii=False)

    def to_dict(self) -> dict:
        """Return the record in API shape (camelCase keys, aware datetimes)."""
        result = dict(self.payload)
        result["id"] = self.record_id
        result["createdAt"] = _aware(self.created_at)
        result["updatedAt"] = _aware(self.updated_at)
        return result

    def __repr__(self):
        return f"<EntityRecord {self.entity_type}/{self.record_id}>"


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
