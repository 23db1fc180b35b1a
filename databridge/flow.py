"""Pipeline assembly and execution, plus a registry of named flows."""

from __future__ import annotations

import threading
import time
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import suppress
from datetime import timedelta

from databridge.core import FlowStats, Record, Sink, Source, Transform

_SINK_STAGE = "MultiSink"


class FlowError(Exception):
    """A flow could not be set up or finished with errors.

    When the run itself completed, ``stats`` holds its statistics.
    """

    def __init__(self, message: str, stats: FlowStats | None = None) -> None:
        super().__init__(message)
        self.stats = stats


class _StageError(FlowError):
    def __init__(self, message: str, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


def _root_cause(exc: BaseException) -> BaseException:
    while exc.__cause__ is not None:
        exc = exc.__cause__
    return exc


class Flow:
    """A named pipeline: one source, ordered transforms, and one or more sinks."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._source: Source | None = None
        self._transforms: list[Transform] = []
        self._sinks: list[Sink] = []

    @property
    def name(self) -> str:
        return self._name

    def with_source(self, source: Source) -> Flow:
        """Set the data source and return the flow."""
        self._source = source
        return self

    def add_transform(self, transform: Transform) -> Flow:
        """Append a transform stage; stages run in the order added."""
        self._transforms.append(transform)
        return self

    def add_sink(self, sink: Sink) -> Flow:
        """Append a sink; every sink receives every record."""
        self._sinks.append(sink)
        return self

    def run(self) -> FlowStats:
        """Run the pipeline and return its statistics.

        Raises FlowError when setup fails, or after the run when any stage
        reported an error; in the latter case the error carries the stats.
        """
        if self._source is None:
            raise FlowError(f"flow {self._name}: no source configured")
        if not self._sinks:
            raise FlowError(f"flow {self._name}: no sinks configured")

        source = self._source
        try:
            source.open()
        except Exception as exc:
            raise FlowError(f"flow {self._name}: open source: {exc}") from exc

        opened: list[Sink] = []
        try:
            for sink in self._sinks:
                try:
                    sink.open()
                except Exception as exc:
                    raise FlowError(
                        f"flow {self._name}: open sink {sink.name}: {exc}"
                    ) from exc
                opened.append(sink)
            return self._execute(source)
        finally:
            for sink in opened:
                with suppress(Exception):
                    sink.close()
            with suppress(Exception):
                source.close()

    def _execute(self, source: Source) -> FlowStats:
        start = time.monotonic()
        stats = FlowStats(flow_name=self._name)
        errors: Counter[str] = Counter()
        first_error: list[BaseException] = []

        def fail(exc: _StageError) -> None:
            errors[f"{exc.stage}:{type(_root_cause(exc)).__name__}"] += 1
            stats.records_failed += 1
            if not first_error:
                first_error.append(exc)

        for record in self._drain(source, fail):
            stats.records_in += 1
            try:
                batch = [record]
                for transform in self._transforms:
                    batch = self._apply(transform, batch, stats)
                self._write(batch, stats)
            except _StageError as exc:
                fail(exc)

        stats.errors_by_stage = dict(errors)
        stats.duration = timedelta(seconds=time.monotonic() - start)
        if first_error:
            stats.error = str(first_error[0])
            raise FlowError(f"flow {self._name}: {stats.error}", stats=stats)
        return stats

    @staticmethod
    def _drain(source: Source, fail: Callable[[_StageError], None]) -> Iterator[Record]:
        try:
            yield from source.records()
        except Exception as exc:
            error = _StageError(f"source {source.name}: records: {exc}", source.name)
            error.__cause__ = exc
            fail(error)

    @staticmethod
    def _apply(transform: Transform, batch: list[Record], stats: FlowStats) -> list[Record]:
        out: list[Record] = []
        for record in batch:
            try:
                results = transform.apply(record)
            except Exception as exc:
                raise _StageError(
                    f"transform {transform.name}: apply: {exc}", transform.name
                ) from exc
            if not results:
                stats.records_skipped += 1
            out.extend(results or [])
        return out

    def _write(self, batch: list[Record], stats: FlowStats) -> None:
        failures: list[tuple[str, Exception]] = []
        for record in batch:
            record_ok = True
            for sink in self._sinks:
                try:
                    sink.write(record)
                except Exception as exc:
                    record_ok = False
                    failures.append(
                        (f"sink {sink.name}: write {record.path}#{record.symbol}: {exc}", exc)
                    )
            if record_ok:
                stats.records_out += 1
        if failures:
            error = _StageError("\n".join(message for message, _ in failures), _SINK_STAGE)
            error.__cause__ = failures[0][1]
            raise error


class FlowRegistry:
    """Named flows, run by name. Safe for concurrent use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._flows: dict[str, Flow] = {}

    def register(self, flow: Flow) -> None:
        """Add a flow under its name; a name may be registered only once."""
        with self._lock:
            if flow.name in self._flows:
                raise FlowError(f"flow registry: flow {flow.name!r} already registered")
            self._flows[flow.name] = flow

    def run(self, name: str) -> FlowStats:
        """Run the named flow and return its statistics."""
        with self._lock:
            flow = self._flows.get(name)
        if flow is None:
            raise FlowError(f"flow registry: flow {name!r} not found")
        return flow.run()

    def names(self) -> list[str]:
        """Names of all registered flows, in no guaranteed order."""
        with self._lock:
            return list(self._flows)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._flows

    def __len__(self) -> int:
        with self._lock:
            return len(self._flows)