"""Sink that upserts records as points in a Qdrant collection over HTTP."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from databridge.core import Record, Sink

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6334
DEFAULT_COLLECTION = "codewatch"


class QdrantSinkError(RuntimeError):
    """Qdrant could not be configured or rejected a request."""


class QdrantSink(Sink):
    """Writes each embedded record as one Qdrant point."""

    def __init__(
        self,
        collection: str = DEFAULT_COLLECTION,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        use_tls: bool = False,
        client: httpx.Client | None = None,
    ) -> None:
        self.collection = collection
        scheme = "https" if use_tls else "http"
        self.base_url = f"{scheme}://{host}:{port}"
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> QdrantSink:
        """Configure from QDRANT_HOST, QDRANT_PORT, QDRANT_COLLECTION and QDRANT_USE_TLS."""
        env = os.environ if environ is None else environ
        host = env.get("QDRANT_HOST") or DEFAULT_HOST
        port = DEFAULT_PORT
        raw_port = env.get("QDRANT_PORT")
        if raw_port:
            try:
                port = int(raw_port)
            except ValueError as exc:
                raise QdrantSinkError(
                    f"qdrant sink: invalid QDRANT_PORT {raw_port!r}: {exc}"
                ) from exc
        collection = env.get("QDRANT_COLLECTION") or DEFAULT_COLLECTION
        use_tls = env.get("QDRANT_USE_TLS") == "true"
        return cls(collection=collection, host=host, port=port, use_tls=use_tls)

    def open(self) -> None:
        """Mark the sink writable."""
        super().open()

    def write(self, record: Record) -> None:
        """Upsert one point; skip records without an embedding.

        A delete record removes every point of its workspace and file.
        """
        self._ensure_writable()
        if record.is_delete:
            body = {
                "filter": {
                    "must": [
                        {"key": "workspace_id", "match": {"value": record.source_id}},
                        {"key": "file_path", "match": {"value": record.path}},
                    ]
                }
            }
            self._send("POST", "/points/delete", body, f"delete {record.path}")
            return
        if not record.embedding:
            return

        payload = {
            "workspace_id": record.source_id,
            "file_path": record.path,
            "symbol": record.symbol,
            "symbol_type": record.symbol_type,
            "language": record.language,
            "content_hash": record.content_hash,
            "content": record.content,
        }
        body = {
            "points": [
                {"id": record.id, "vector": list(record.embedding), "payload": payload}
            ]
        }
        self._send("PUT", "/points", body, f"upsert {record.path}#{record.symbol}")

    def close(self) -> None:
        """Refuse further writes and close the HTTP client when this sink created it."""
        super().close()
        if self._owns_client:
            self._client.close()

    def _send(self, method: str, suffix: str, body: dict[str, Any], what: str) -> None:
        url = f"{self.base_url}/collections/{quote(self.collection, safe='')}{suffix}"
        try:
            response = self._client.request(method, url, params={"wait": "true"}, json=body)
        except httpx.HTTPError as exc:
            raise QdrantSinkError(f"qdrant sink: {what}: {exc}") from exc
        if response.is_error:
            raise QdrantSinkError(
                f"qdrant sink: {what}: status {response.status_code}: {response.text}"
            )