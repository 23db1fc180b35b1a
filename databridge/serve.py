"""Standalone HTTP server entry point with graceful shutdown."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from collections.abc import Mapping, Sequence
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIServer, make_server

from flask import Flask
from sqlalchemy import Engine

from databridge.app import create_app
from databridge.flow import FlowRegistry
from databridge.store import JobStore, auto_migrate, open_database

DEFAULT_PORT = "8080"


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


def resolve_port(environ: Mapping[str, str] | None = None) -> str:
    """Port from FUNCTIONS_CUSTOMHANDLER_PORT, then PORT, else 8080."""
    env = os.environ if environ is None else environ
    return env.get("FUNCTIONS_CUSTOMHANDLER_PORT") or env.get("PORT") or DEFAULT_PORT


def _open_jobs(dsn: str) -> tuple[Engine | None, JobStore | None]:
    if not dsn:
        print("CODEWATCH_DSN not set, job tracking disabled", file=sys.stderr)
        return None, None
    try:
        engine = open_database(dsn)
    except Exception as exc:
        print(f"open db: {exc}", file=sys.stderr)
        return None, None
    try:
        auto_migrate(engine)
    except Exception as exc:
        print(f"auto migrate: {exc}", file=sys.stderr)
        return engine, None
    return engine, JobStore(engine)


def _serve(app: Flask, port: str) -> int:
    try:
        port_number = int(port)
    except ValueError:
        print(f"invalid port {port!r}", file=sys.stderr)
        return 1
    try:
        server = make_server("", port_number, app, server_class=_ThreadingWSGIServer)
    except OSError as exc:
        print(f"listen: {exc}", file=sys.stderr)
        return 1

    stop = threading.Event()

    def _request_stop(signum: int, frame: object) -> None:
        stop.set()

    previous = {
        sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    worker = threading.Thread(target=server.serve_forever, daemon=True)
    worker.start()
    try:
        while not stop.wait(1.0):
            pass
    finally:
        server.shutdown()
        server.server_close()
        worker.join(timeout=10)
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Serve the HTTP API until SIGINT or SIGTERM; return the exit code."""
    argparse.ArgumentParser(
        prog="databridge-server", description="Serve the indexing HTTP API."
    ).parse_args(argv)

    engine, jobs = _open_jobs(os.environ.get("CODEWATCH_DSN", ""))
    try:
        app = create_app(FlowRegistry(), jobs)
        return _serve(app, resolve_port())
    finally:
        if engine is not None:
            engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())