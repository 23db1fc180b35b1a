"""Assemble a ready-to-run indexing flow from a source type, config and environment."""

from __future__ import annotations

import os
from collections.abc import Mapping

from databridge.core import Embedder, Sink, Source
from databridge.embedder import EmbedderError, create_embedder
from databridge.flow import Flow
from databridge.local_source import LocalFileSource
from databridge.merkle import MerkleTree
from databridge.qdrant_sink import QdrantSink, QdrantSinkError
from databridge.transforms import (
    ChunkEmbedder,
    GoASTParser,
    MarkdownChunker,
    MerkleDedup,
    PythonASTParser,
)


class BuildFlowError(ValueError):
    """The flow could not be assembled from the given parameters."""


def _build_source(
    workspace_id: str, source_type: str, config: Mapping[str, str]
) -> Source:
    if source_type in ("", "local"):
        input_dir = config.get("input", "")
        if not input_dir:
            raise BuildFlowError(
                f'build flow: source type {source_type!r} requires config["input"]'
            )
        return LocalFileSource(workspace_id, input_dir)
    if source_type in ("s3", "azure"):
        raise BuildFlowError(
            f"build flow: source type {source_type!r} is not available"
        )
    raise BuildFlowError(
        f"build flow: unknown source type {source_type!r} (want: local, s3, azure)"
    )


def _build_sinks(env: Mapping[str, str]) -> list[Sink]:
    sinks: list[Sink] = []
    if env.get("SMRITEA_API_KEY"):
        raise BuildFlowError("build flow: smritea sink: not available")
    if env.get("QDRANT_HOST"):
        try:
            sinks.append(QdrantSink.from_env(env))
        except QdrantSinkError as exc:
            raise BuildFlowError(f"build flow: qdrant sink: {exc}") from exc
    if not sinks:
        raise BuildFlowError(
            "build flow: no sinks configured (set SMRITEA_API_KEY or QDRANT_HOST)"
        )
    return sinks


def build_flow(
    workspace_id: str,
    source_type: str = "",
    config: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Flow:
    """Build a flow: source, dedup, code and Markdown chunking, embedding, sinks.

    ``source_type`` "" or "local" walks ``config["input"]``. Sinks are chosen
    from the environment; at least one must be configured.
    """
    env = os.environ if environ is None else environ
    settings = config or {}

    source = _build_source(workspace_id, source_type, settings)

    try:
        embedder: Embedder = create_embedder(env)
    except EmbedderError as exc:
        raise BuildFlowError(f"build flow: embedder: {exc}") from exc

    try:
        sinks = _build_sinks(env)
    except BuildFlowError:
        embedder.close()
        raise

    flow = (
        Flow(workspace_id)
        .with_source(source)
        .add_transform(MerkleDedup(MerkleTree()))
        .add_transform(GoASTParser())
        .add_transform(PythonASTParser())
        .add_transform(MarkdownChunker())
        .add_transform(ChunkEmbedder(embedder))
    )
    for sink in sinks:
        flow.add_sink(sink)
    return flow