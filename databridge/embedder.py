"""Text embedders: an OpenAI-compatible HTTP client and an environment-driven factory."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence

import httpx

from databridge.core import Embedder

DEFAULT_API_URL = "https://api.voyageai.com/v1"
DEFAULT_MODEL = "voyage-code-3"
DEFAULT_DIMENSION = 1024


class EmbedderError(RuntimeError):
    """An embedder could not be created or could not produce vectors."""


class APIEmbedder(Embedder):
    """Calls an OpenAI-compatible ``/embeddings`` endpoint.

    ``dim`` must match the output dimension of the model behind the endpoint.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        dim: int,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self._api_key = api_key
        self._dim = dim
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=None)

    def embed(self, text: str) -> list[float]:
        """Return the vector for a single text."""
        vectors = self.embed_batch([text])
        if not vectors:
            raise EmbedderError("api embedder: response contained no embeddings")
        return vectors[0]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Send all texts in one request and return their vectors in input order."""
        body = json.dumps({"input": list(texts), "model": self.model})
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = self._client.post(
                f"{self.base_url}/embeddings", content=body, headers=headers
            )
        except httpx.HTTPError as exc:
            raise EmbedderError(f"api embedder: do request: {exc}") from exc

        if response.status_code != 200:
            raise EmbedderError(
                f"api embedder: status {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise EmbedderError(f"api embedder: decode response: {exc}") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if data is None:
            return []
        if not isinstance(data, list):
            raise EmbedderError("api embedder: decode response: 'data' is not a list")

        vectors: list[list[float]] = [[] for _ in data]
        for item in data:
            if not isinstance(item, dict):
                raise EmbedderError("api embedder: decode response: malformed item")
            index = item.get("index", 0)
            if not isinstance(index, int) or not 0 <= index < len(vectors):
                raise EmbedderError(f"api embedder: embedding index {index!r} out of range")
            vectors[index] = [float(v) for v in item.get("embedding") or []]
        return vectors

    def dimension(self) -> int:
        return self._dim

    def close(self) -> None:
        """Close the HTTP client when this embedder created it."""
        if self._owns_client:
            self._client.close()


def create_embedder(environ: Mapping[str, str] | None = None) -> Embedder:
    """Build an embedder from ``CODEWATCH_EMBEDDER`` and related variables.

    ``api`` (the default) reads CODEWATCH_EMBEDDER_API_URL,
    CODEWATCH_EMBEDDER_API_KEY, CODEWATCH_EMBEDDER_MODEL and
    CODEWATCH_EMBEDDER_DIM. ``hugot`` requires CODEWATCH_MODEL_PATH.
    """
    env = os.environ if environ is None else environ
    provider = env.get("CODEWATCH_EMBEDDER") or "api"

    if provider == "hugot":
        if not env.get("CODEWATCH_MODEL_PATH"):
            raise EmbedderError(
                "embedder factory: CODEWATCH_MODEL_PATH is required for hugot embedder"
            )
        raise EmbedderError(
            "embedder factory: the in-process hugot embedder is not available"
        )

    if provider == "api":
        api_url = env.get("CODEWATCH_EMBEDDER_API_URL") or DEFAULT_API_URL
        api_key = env.get("CODEWATCH_EMBEDDER_API_KEY", "")
        model = env.get("CODEWATCH_EMBEDDER_MODEL") or DEFAULT_MODEL
        dim = DEFAULT_DIMENSION
        raw_dim = env.get("CODEWATCH_EMBEDDER_DIM")
        if raw_dim:
            try:
                dim = int(raw_dim)
            except ValueError as exc:
                raise EmbedderError(
                    f"embedder factory: invalid CODEWATCH_EMBEDDER_DIM {raw_dim!r}: {exc}"
                ) from exc
        return APIEmbedder(api_url, api_key, model, dim)

    raise EmbedderError(
        f"embedder factory: unknown CODEWATCH_EMBEDDER value {provider!r} (want: hugot, api)"
    )