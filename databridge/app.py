"""HTTP API: health, asynchronous indexing jobs, and named flows."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from contextlib import suppress
from dataclasses import asdict
from datetime import timedelta
from typing import Any, Protocol

from flask import Flask, jsonify, request

from databridge.core import FlowStats
from databridge.factory import build_flow
from databridge.flow import FlowRegistry
from databridge.store import JobNotFoundError, JobStore

THREADS_KEY = "databridge_index_threads"


class _Runnable(Protocol):
    def run(self) -> FlowStats: ...


FlowBuilder = Callable[[str, str, Mapping[str, str]], _Runnable]


def _error(status: int, message: str) -> tuple[Any, int]:
    return jsonify({"error": message}), status


def _stats_dict(stats: FlowStats) -> dict[str, Any]:
    data = asdict(stats)
    data["duration"] = (stats.duration // timedelta(microseconds=1)) * 1000
    return data


def _set_status(jobs: JobStore, job_id: str, status: str, error_msg: str) -> None:
    with suppress(Exception):
        jobs.update_status(job_id, status, error_msg)


def _run_index_job(
    jobs: JobStore,
    builder: FlowBuilder,
    job_id: str,
    workspace_id: str,
    source: str,
    config: dict[str, str],
) -> None:
    try:
        jobs.update_status(job_id, "running", "")
    except Exception:
        return
    try:
        flow = builder(workspace_id, source, config)
    except Exception as exc:
        _set_status(jobs, job_id, "failed", str(exc))
        return
    try:
        flow.run()
    except Exception as exc:
        _set_status(jobs, job_id, "failed", str(exc))
    else:
        _set_status(jobs, job_id, "done", "")


def _parse_index_request() -> tuple[str, str, dict[str, str]]:
    """Return (workspace_id, source, config); raise ValueError on a bad body."""
    if not request.get_data():
        payload: Any = {}
    else:
        payload = request.get_json(force=True, silent=True)
        if payload is None:
            raise ValueError("invalid JSON body")
    if not isinstance(payload, dict):
        raise ValueError("request body must be a JSON object")
    workspace_id = payload.get("workspace_id") or ""
    source = payload.get("source") or ""
    config = payload.get("config") or {}
    if not isinstance(workspace_id, str):
        raise ValueError("workspace_id must be a string")
    if not isinstance(source, str):
        raise ValueError("source must be a string")
    if not isinstance(config, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in config.items()
    ):
        raise ValueError("config must be an object of strings")
    return workspace_id, source, dict(config)


def create_app(
    registry: FlowRegistry,
    jobs: JobStore | None = None,
    flow_builder: FlowBuilder | None = None,
) -> Flask:
    """Create the web application.

    ``flow_builder`` builds the flow for an index request; it defaults to
    build_flow. Background index threads are kept in
    ``app.extensions[THREADS_KEY]``.
    """
    builder: FlowBuilder = flow_builder or build_flow
    app = Flask("databridge")
    threads: list[threading.Thread] = []
    threads_lock = threading.Lock()
    app.extensions[THREADS_KEY] = threads

    @app.get("/v1/health")
    def health() -> Any:
        return jsonify({"status": "ok", "service": "databridge"})

    @app.post("/v1/index")
    def index() -> Any:
        try:
            workspace_id, source, config = _parse_index_request()
        except ValueError as exc:
            return _error(400, str(exc))
        if not workspace_id:
            return _error(400, "workspace_id is required")
        if jobs is None:
            return _error(503, "job store not configured")
        try:
            job = jobs.create(workspace_id, 0)
        except Exception as exc:
            return _error(500, str(exc))

        worker = threading.Thread(
            target=_run_index_job,
            args=(jobs, builder, job.id, workspace_id, source, config),
            daemon=True,
        )
        with threads_lock:
            threads[:] = [t for t in threads if t.is_alive()]
            threads.append(worker)
        worker.start()
        return jsonify({"job_id": job.id}), 202

    @app.get("/v1/jobs/<job_id>")
    def get_job(job_id: str) -> Any:
        if jobs is None:
            return _error(404, "job store not configured")
        try:
            job = jobs.get(job_id)
        except JobNotFoundError:
            return _error(404, "job not found")
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify(job.to_dict())

    @app.get("/v1/flows")
    def list_flows() -> Any:
        return jsonify({"flows": registry.names()})

    @app.post("/v1/flows/<name>/run")
    def run_flow(name: str) -> Any:
        if name not in registry:
            return _error(404, f"flow not found: {name}")
        try:
            stats = registry.run(name)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify(_stats_dict(stats))

    return app