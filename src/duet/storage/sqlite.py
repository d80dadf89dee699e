"""SQLite implementation of the snapshot repository.

Uses SQLAlchemy 2.0-style queries (select() + session.execute()).
Each save commits its own transaction so a crash never leaves a
half-written snapshot.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from duet.exceptions import PersistenceError
from duet.storage.repositories import SnapshotRepository
from duet.storage.schema import SnapshotRow


class SqliteSnapshotRepository(SnapshotRepository):
    """SQLite implementation of snapshot repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get(self, key: str) -> SnapshotRow | None:
        stmt = select(SnapshotRow).where(SnapshotRow.key == key)
        return self._session.execute(stmt).scalar_one_or_none()

    def load(self, key: str) -> dict[str, Any] | None:
        try:
            row = self._get(key)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load snapshot {key!r}: {exc}") from exc
        if row is None:
            return None
        try:
            data = json.loads(row.data_json)
        except ValueError as exc:
            raise PersistenceError(f"Corrupt snapshot {key!r}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Corrupt snapshot {key!r}: expected object")
        return data

    def save(self, key: str, schema_name: str, data: dict[str, Any]) -> None:
        payload = json.dumps(data, sort_keys=True)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        try:
            row = self._get(key)
            if row is None:
                self._session.add(SnapshotRow(
                    key=key,
                    schema_name=schema_name,
                    data_json=payload,
                    updated_at=now,
                ))
            else:
                row.schema_name = schema_name
                row.data_json = payload
                row.updated_at = now
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"Failed to save snapshot {key!r}: {exc}") from exc

    def delete(self, key: str) -> bool:
        row = self._get(key)
        if row is None:
            return False
        self._session.delete(row)
        self._session.commit()
        return True

    def keys(self) -> list[str]:
        stmt = select(SnapshotRow.key).order_by(SnapshotRow.key)
        return list(self._session.execute(stmt).scalars())
