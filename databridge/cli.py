"""Command line indexer: walk a local directory and index it in one run."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

from databridge.embedder import EmbedderError, create_embedder
from databridge.flow import Flow, FlowError, FlowRegistry
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

FLOW_NAME = "local-index"
USAGE = "Usage: codewatch --input <dir> --workspace <id>"


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codewatch", description="Index a local directory.")
    parser.add_argument("--input", "-input", default="", help="directory to index (required)")
    parser.add_argument(
        "--workspace", "-workspace", default="", help="workspace ID for indexed files (required)"
    )
    parser.add_argument(
        "--source", "-source", default="local", help="source type: local, s3, azure"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the indexer; return the process exit code."""
    args = _parser().parse_args(argv)
    if not args.input or not args.workspace:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        embedder = create_embedder()
    except EmbedderError as exc:
        print(f"create embedder: {exc}", file=sys.stderr)
        return 1

    with embedder:
        if not os.environ.get("QDRANT_HOST"):
            print("create sink: no sink configured (set QDRANT_HOST)", file=sys.stderr)
            return 1
        try:
            sink = QdrantSink.from_env()
        except QdrantSinkError as exc:
            print(f"create sink: {exc}", file=sys.stderr)
            return 1

        flow = (
            Flow(FLOW_NAME)
            .with_source(LocalFileSource(args.workspace, args.input))
            .add_transform(MerkleDedup(MerkleTree()))
            .add_transform(GoASTParser())
            .add_transform(PythonASTParser())
            .add_transform(MarkdownChunker())
            .add_transform(ChunkEmbedder(embedder))
            .add_sink(sink)
        )
        registry = FlowRegistry()
        try:
            registry.register(flow)
        except FlowError as exc:
            print(f"register flow: {exc}", file=sys.stderr)
            return 1

        try:
            stats = registry.run(FLOW_NAME)
        except FlowError as exc:
            print(f"pipeline error: {exc}", file=sys.stderr)
            return 1

    print(
        f"Done. in={stats.records_in} out={stats.records_out} "
        f"failed={stats.records_failed} duration={stats.duration.total_seconds():.3f}s"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())