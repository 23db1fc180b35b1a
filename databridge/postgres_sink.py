"""Sink that upserts chunk records into the chunks table."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Engine, Table, delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from databridge.core import Record, Sink
from databridge.store import Chunk

_TABLE: Table = Chunk.__table__  # type: ignore[assignment]
_COLUMNS = {column.name: column for column in _TABLE.columns}
_CONFLICT_KEYS = ("workspace_id", "file_path", "symbol")
_UPDATED = (
    "symbol_type",
    "language",
    "content",
    "content_hash",
    "embedding",
    "metadata",
    "updated_at",
)


class PostgresSink(Sink):
    """Upserts records into the chunks table, keyed by workspace, file and symbol."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def open(self) -> None:
        """Mark the sink writable; the engine is supplied at construction."""
        super().open()

    def write(self, record: Record) -> None:
        """Upsert one chunk; a delete record removes all chunks of its file."""
        self._ensure_writable()
        if record.is_delete:
            self._delete_file(record)
            return

        try:
            json.dumps(record.metadata)
        except (TypeError, ValueError) as exc:
            raise RuntimeError(
                f"postgres sink: marshal metadata for {record.path}#{record.symbol}: {exc}"
            ) from exc

        now = datetime.now(timezone.utc)
        values = {
            _COLUMNS["id"]: str(uuid.uuid4()),
            _COLUMNS["workspace_id"]: record.source_id,
            _COLUMNS["file_path"]: record.path,
            _COLUMNS["symbol"]: record.symbol,
            _COLUMNS["symbol_type"]: record.symbol_type,
            _COLUMNS["language"]: record.language,
            _COLUMNS["content"]: record.content,
            _COLUMNS["content_hash"]: record.content_hash,
            _COLUMNS["embedding"]: list(record.embedding) if record.embedding else None,
            _COLUMNS["metadata"]: dict(record.metadata),
            _COLUMNS["created_at"]: now,
            _COLUMNS["updated_at"]: now,
        }
        try:
            stmt = self._insert().values(values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[_COLUMNS[name] for name in _CONFLICT_KEYS],
                set_={
                    _COLUMNS[name]: stmt.excluded[_COLUMNS[name].key] for name in _UPDATED
                },
            )
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise RuntimeError(
                f"postgres sink: upsert {record.path}#{record.symbol}: {exc}"
            ) from exc

    def close(self) -> None:
        """Refuse further writes; the engine is managed by the caller."""
        super().close()

    def _delete_file(self, record: Record) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    delete(_TABLE).where(
                        _COLUMNS["workspace_id"] == record.source_id,
                        _COLUMNS["file_path"] == record.path,
                    )
                )
        except SQLAlchemyError as exc:
            raise RuntimeError(
                f"postgres sink: delete chunks for {record.path}: {exc}"
            ) from exc

    def _insert(self) -> Any:
        name = self._engine.dialect.name
        if name == "postgresql":
            return postgresql.insert(_TABLE)
        if name == "sqlite":
            return sqlite.insert(_TABLE)
        raise RuntimeError(f"postgres sink: unsupported database dialect {name!r}")