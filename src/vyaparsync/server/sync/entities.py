"""Entity stores: the authoritative tables that sync operations mutate.

Each store exposes get/insert/update/delete for one model and works with
JSON-friendly snapshots (plain dicts) rather than ORM objects, so results
can be stored as conflict data or returned to API callers unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, delete
from sqlalchemy.exc import IntegrityError, OperationalError

from vyaparsync.core.types import EntityType
from vyaparsync.server.database import as_utc
from vyaparsync.server.models import Bill, Customer, EntityMixin, Payment, Product, utcnow
from vyaparsync.server.sync.detector import parse_timestamp
from vyaparsync.server.sync.errors import (
    DuplicateRecordError,
    EntityNotFoundError,
    InvalidPayloadError,
    StorageError,
    SyncError,
)

if TYPE_CHECKING:
    from vyaparsync.server.database import Database

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Columns the server owns; clients cannot set them through a payload.
# company_id always comes from the operation, whose company was checked on enqueue.
SERVER_OWNED_COLUMNS = frozenset({"id", "company_id", "created_at", "updated_at"})

ENTITY_MODELS: dict[EntityType, type[EntityMixin]] = {
    EntityType.BILLS: Bill,
    EntityType.CUSTOMERS: Customer,
    EntityType.PRODUCTS: Product,
    EntityType.PAYMENTS: Payment,
}


def to_column_name(key: str) -> str:
    """Convert a camelCase payload key to its snake_case column name."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def snapshot(row: EntityMixin) -> dict[str, Any]:
    """Convert an entity row to a JSON-serializable dict."""
    result: dict[str, Any] = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, datetime):
            value = as_utc(value).isoformat()
        result[column.key] = value
    return result


@contextmanager
def storage_guard(action: str) -> Iterator[None]:
    """Translate database availability errors into StorageError."""
    try:
        yield
    except OperationalError as e:
        raise StorageError(f"Failed to {action}: {e.orig}") from e


class EntityStore:
    """Read/write access to one entity table."""

    def __init__(self, db: Database, model: type[EntityMixin]) -> None:
        self._db = db
        self._model = model
        self._columns = {column.key: column for column in model.__table__.columns}

    @property
    def name(self) -> str:
        """Human-readable entity name used in error messages."""
        return self._model.__name__

    def normalize(self, data: dict[str, Any] | None) -> dict[str, Any]:
        """Map a client payload onto column values.

        camelCase keys are converted to snake_case, server-owned columns are
        dropped and datetime columns are parsed.

        Raises:
            InvalidPayloadError: On unknown fields or unparseable datetimes.
        """
        values: dict[str, Any] = {}
        unknown: list[str] = []
        for key, value in (data or {}).items():
            column_name = to_column_name(key)
            if column_name in SERVER_OWNED_COLUMNS:
                continue
            column = self._columns.get(column_name)
            if column is None:
                unknown.append(key)
                continue
            if isinstance(column.type, DateTime) and value is not None:
                parsed = parse_timestamp(value)
                if parsed is None:
                    raise InvalidPayloadError(f"Invalid datetime for {self.name}.{key}: {value!r}")
                value = parsed
            values[column_name] = value
        if unknown:
            raise InvalidPayloadError(f"Unknown {self.name} fields: {', '.join(sorted(unknown))}")
        return values

    def get(self, record_id: str) -> dict[str, Any] | None:
        """Get a record snapshot by ID, or None if it doesn't exist."""
        with storage_guard(f"read {self.name} {record_id}"), self._db.session() as session:
            row = session.get(self._model, record_id)
            return snapshot(row) if row is not None else None

    def insert(
        self,
        record_id: str,
        data: dict[str, Any] | None,
        company_id: str | None = None,
    ) -> dict[str, Any]:
        """Insert a new record.

        Args:
            record_id: Primary key for the new record.
            data: Field values from the client.
            company_id: Owning company; a company named in the payload is ignored.

        Returns:
            Snapshot of the inserted record.

        Raises:
            DuplicateRecordError: If a record with this ID already exists.
            InvalidPayloadError: If the payload violates the schema.
        """
        values = self.normalize(data)
        values["company_id"] = company_id
        now = utcnow()

        with storage_guard(f"create {self.name} {record_id}"), self._db.session() as session:
            if session.get(self._model, record_id) is not None:
                raise DuplicateRecordError(self.name, record_id)
            row = self._model(id=record_id, created_at=now, updated_at=now, **values)
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                if session.get(self._model, record_id) is not None:
                    raise DuplicateRecordError(self.name, record_id) from e
                raise InvalidPayloadError(f"Cannot create {self.name} {record_id}: {e.orig}") from e
            session.refresh(row)
            return snapshot(row)

    def update(self, record_id: str, data: dict[str, Any] | None) -> dict[str, Any]:
        """Apply a (partial) payload to an existing record.

        ``updated_at`` is always set to the current server time.

        Returns:
            Snapshot of the updated record.

        Raises:
            EntityNotFoundError: If the record doesn't exist.
            InvalidPayloadError: If the payload violates the schema.
        """
        values = self.normalize(data)

        with storage_guard(f"update {self.name} {record_id}"), self._db.session() as session:
            row = session.get(self._model, record_id)
            if row is None:
                raise EntityNotFoundError(self.name, record_id)
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise InvalidPayloadError(f"Cannot update {self.name} {record_id}: {e.orig}") from e
            session.refresh(row)
            return snapshot(row)

    def delete(self, record_id: str) -> bool:
        """Delete a record. Deleting a missing record is not an error.

        Returns:
            True if a record was deleted, False if it didn't exist.

        Raises:
            SyncError: If other records still reference this one.
        """
        with storage_guard(f"delete {self.name} {record_id}"), self._db.session() as session:
            stmt = delete(self._model).where(self._model.id == record_id)
            try:
                result = session.execute(stmt)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise SyncError(f"Cannot delete {self.name} {record_id}: still referenced") from e
            return bool(result.rowcount)


def build_entity_stores(db: Database) -> dict[EntityType, EntityStore]:
    """Create one store per entity type that accepts offline mutations."""
    return {entity_type: EntityStore(db, model) for entity_type, model in ENTITY_MODELS.items()}
