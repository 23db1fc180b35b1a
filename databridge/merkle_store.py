"""Persist merkle tree snapshots in the merkle_snapshots table."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Engine, Table, delete, select
from sqlalchemy.dialects import postgresql, sqlite

from databridge.merkle import MerkleTree
from databridge.store import MerkleSnapshot

_BATCH_SIZE = 500
_TABLE: Table = MerkleSnapshot.__table__  # type: ignore[assignment]


def _upsert_insert(engine: Engine) -> Any:
    name = engine.dialect.name
    if name == "postgresql":
        return postgresql.insert(_TABLE)
    if name == "sqlite":
        return sqlite.insert(_TABLE)
    raise ValueError(f"merkle: upsert not supported for database dialect {name!r}")


def load_from_database(engine: Engine, workspace_id: str, tree: MerkleTree) -> None:
    """Replace the tree contents with the stored hashes of one workspace."""
    query = select(_TABLE.c.file_path, _TABLE.c.content_hash).where(
        _TABLE.c.workspace_id == workspace_id
    )
    with engine.connect() as conn:
        rows = conn.execute(query).all()
    tree.load({path: content_hash for path, content_hash in rows})


def save_to_database(engine: Engine, workspace_id: str, tree: MerkleTree) -> None:
    """Upsert the tree's hashes; rows for paths no longer tracked are kept."""
    snapshot = tree.snapshot()
    if not snapshot:
        return
    now = datetime.now(timezone.utc)
    rows = [
        {
            "id": str(uuid.uuid4()),
            "workspace_id": workspace_id,
            "file_path": path,
            "content_hash": content_hash,
            "updated_at": now,
        }
        for path, content_hash in snapshot.items()
    ]
    with engine.begin() as conn:
        for start in range(0, len(rows), _BATCH_SIZE):
            stmt = _upsert_insert(engine).values(rows[start : start + _BATCH_SIZE])
            stmt = stmt.on_conflict_do_update(
                index_elements=[_TABLE.c.workspace_id, _TABLE.c.file_path],
                set_={
                    "content_hash": stmt.excluded.content_hash,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            conn.execute(stmt)


def delete_from_database(engine: Engine, workspace_id: str, file_path: str) -> None:
    """Remove one file's stored hash."""
    with engine.begin() as conn:
        conn.execute(
            delete(_TABLE).where(
                _TABLE.c.workspace_id == workspace_id,
                _TABLE.c.file_path == file_path,
            )
        )