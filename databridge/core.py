"""Core pipeline types: records, run statistics, errors and stage interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any


class Action(str, Enum):
    """What a sink should do with a record."""

    UPSERT = "upsert"
    DELETE = "delete"


@dataclass
class Record:
    """The unit of data flowing through a pipeline.

    A source emits one record per file with the full file text; transforms
    expand it into chunk records, one per symbol or section.
    """

    id: str = ""
    source_id: str = ""
    path: str = ""
    symbol: str = ""
    symbol_type: str = ""
    language: str = ""
    content: str = ""
    content_hash: str = ""
    embedding: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    action: Action = Action.UPSERT

    @property
    def is_delete(self) -> bool:
        """True when the record asks sinks to remove its file's chunks."""
        return self.action is Action.DELETE


@dataclass
class FlowStats:
    """Summary of a single pipeline run."""

    flow_name: str
    records_in: int = 0
    records_out: int = 0
    records_skipped: int = 0
    records_deleted: int = 0
    records_failed: int = 0
    errors_by_stage: dict[str, int] = field(default_factory=dict)
    duration: timedelta = field(default_factory=timedelta)
    error: str = ""


class SourceExhausted(Exception):
    """A source has no more records to emit."""

    def __init__(self, message: str = "source exhausted") -> None:
        super().__init__(message)


class RecordSkipped(Exception):
    """A transform dropped a record; not a pipeline failure."""

    def __init__(self, message: str = "record skipped") -> None:
        super().__init__(message)


class SinkClosed(Exception):
    """A write was attempted on a closed sink."""

    def __init__(self, message: str = "sink is closed") -> None:
        super().__init__(message)


class Source(ABC):
    """Produces records from an external origin."""

    _opened: bool = False

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def is_open(self) -> bool:
        """True between a call to open and the following close."""
        return self._opened

    def open(self) -> None:
        """Prepare the source and mark it open."""
        self._opened = True

    @abstractmethod
    def records(self) -> Iterator[Record]:
        """Yield every record the source holds."""

    def close(self) -> None:
        """Release resources and mark the source closed."""
        self._opened = False

    def __enter__(self) -> Source:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Transform(ABC):
    """Turns one record into zero or more records."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def apply(self, record: Record) -> list[Record]:
        """Process one record; an empty list drops it."""


class Sink(ABC):
    """Consumes records and writes them to a store."""

    _closed: bool = False

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def closed(self) -> bool:
        """True once close has been called and open has not been called since."""
        return self._closed

    def open(self) -> None:
        """Prepare the sink and make it writable again."""
        self._closed = False

    @abstractmethod
    def write(self, record: Record) -> None:
        """Persist a single record."""

    def close(self) -> None:
        """Flush, release resources and refuse further writes."""
        self._closed = True

    def _ensure_writable(self) -> None:
        if self._closed:
            raise SinkClosed()

    def __enter__(self) -> Sink:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Embedder(ABC):
    """Converts text into dense float vectors."""

    def embed(self, text: str) -> list[float]:
        """Return the vector for a single text."""
        return self.embed_batch([text])[0]

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return vectors for several texts, in the same order."""

    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this embedder produces."""

    def close(self) -> None:
        """Release resources; the default holds none."""

    def __enter__(self) -> Embedder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()