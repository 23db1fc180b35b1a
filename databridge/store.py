"""Database models for snapshots, chunks and jobs, and the index job store."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Engine,
    Index,
    Integer,
    Text,
    Uuid,
    create_engine,
    text,
    update,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.types import UserDefinedType

EMBEDDING_DIMENSION = 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class _Vector(UserDefinedType):
    """A pgvector column; values travel as the text form ``[1.0,2.0,...]``."""

    cache_ok = True

    def __init__(self, dim: int) -> None:
        self.dim = dim

    def get_col_spec(self, **kw: Any) -> str:
        return f"vector({self.dim})"

    def bind_processor(self, dialect: Any):
        def process(value: Any) -> str | None:
            if value is None:
                return None
            return "[" + ",".join(repr(float(v)) for v in value) + "]"

        return process

    def result_processor(self, dialect: Any, coltype: Any):
        def process(value: Any) -> list[float] | None:
            if value is None:
                return None
            if isinstance(value, str):
                body = value.strip().strip("[]").strip()
                return [float(part) for part in body.split(",")] if body else []
            return [float(v) for v in value]

        return process


_JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all tables managed by this package."""


class MerkleSnapshot(Base):
    """Content hash of one file in one workspace."""

    __tablename__ = "merkle_snapshots"
    __table_args__ = (
        Index("uniq_workspace_filepath", "workspace_id", "file_path", unique=True),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    workspace_id: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    content_hash: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class Chunk(Base):
    """An indexed code symbol with its embedding."""

    __tablename__ = "chunks"
    __table_args__ = (
        Index("uniq_chunk", "workspace_id", "file_path", "symbol", unique=True),
        Index("idx_chunks_workspace", "workspace_id"),
        Index("idx_chunks_file", "file_path"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    workspace_id: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    symbol_type: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_hash: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float] | None] = mapped_column(
        _Vector(EMBEDDING_DIMENSION), nullable=True
    )
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", _JSON_TYPE, nullable=False, default=dict
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=_utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=_utcnow
    )


class Job(Base):
    """An asynchronous indexing request."""

    __tablename__ = "index_jobs"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    workspace_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="queued")
    total_files: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    done: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_msg: Mapped[str | None] = mapped_column(Text, nullable=True, default="")
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=_utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=_utcnow
    )

    def to_dict(self) -> dict[str, Any]:
        """A JSON-ready view of the job."""
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "status": self.status,
            "total_files": self.total_files,
            "done": self.done,
            "failed": self.failed,
            "error_msg": self.error_msg or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class JobNotFoundError(LookupError):
    """No job exists with the requested ID."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"jobs: get {job_id}: record not found")
        self.job_id = job_id


def open_database(dsn: str) -> Engine:
    """Create an engine for the given database URL."""
    try:
        return create_engine(dsn)
    except ArgumentError as exc:
        raise ValueError(f"store: open db: {exc}") from exc


def auto_migrate(engine: Engine) -> None:
    """Create all tables; on PostgreSQL enable the vector extension first."""
    with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        Base.metadata.create_all(conn)


class JobStore:
    """Create, read and update rows of the index_jobs table."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    def create(self, workspace_id: str, total_files: int = 0) -> Job:
        """Insert a queued job and return it with its generated ID."""
        now = _utcnow()
        job = Job(
            id=_new_id(),
            workspace_id=workspace_id,
            status="queued",
            total_files=total_files,
            done=0,
            failed=0,
            error_msg="",
            created_at=now,
            updated_at=now,
        )
        with self._sessions.begin() as session:
            session.add(job)
        return job

    def get(self, job_id: str) -> Job:
        """Return the job with job_id; raise JobNotFoundError when absent."""
        with self._sessions() as session:
            job = session.get(Job, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def update_status(self, job_id: str, status: str, error_msg: str = "") -> None:
        """Set the status and error message of a job."""
        self._update(job_id, status=status, error_msg=error_msg, updated_at=_utcnow())

    def increment_done(self, job_id: str) -> None:
        """Add one to the job's done counter."""
        self._update(job_id, done=Job.done + 1)

    def increment_failed(self, job_id: str) -> None:
        """Add one to the job's failed counter."""
        self._update(job_id, failed=Job.failed + 1)

    def _update(self, job_id: str, **values: Any) -> None:
        with self._sessions.begin() as session:
            session.execute(
                update(Job).where(Job.id == job_id).values(**values),
                execution_options={"synchronize_session": False},
            )