"""Pipeline transforms: deduplication, code and Markdown chunking, embedding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from databridge.core import Action, Embedder, Record, Transform
from databridge.go_parser import GoParseError, parse_go
from databridge.merkle import MerkleTree, hash_content
from databridge.python_parser import parse_python


def _copy_meta(metadata: dict[str, Any] | None) -> dict[str, Any]:
    return dict(metadata) if metadata else {}


def _as_whole_file(record: Record, symbol: str, symbol_type: str) -> list[Record]:
    record.symbol = symbol
    record.symbol_type = symbol_type
    record.content_hash = hash_content(record.content)
    return [record]


def _chunk_record(
    parent: Record, symbol: str, symbol_type: str, language: str, content: str
) -> Record:
    return Record(
        id=f"{parent.id}#{symbol}",
        source_id=parent.source_id,
        path=parent.path,
        symbol=symbol,
        symbol_type=symbol_type,
        language=language,
        content=content,
        content_hash=hash_content(content),
        action=Action.UPSERT,
        metadata=_copy_meta(parent.metadata),
    )


class ChunkEmbedder(Transform):
    """Fills in each record's embedding using an embedder."""

    def __init__(self, embedder: Embedder) -> None:
        self._embedder = embedder

    def apply(self, record: Record) -> list[Record]:
        """Embed the content; records with no content or an embedding pass unchanged."""
        if record.embedding or record.content == "":
            return [record]
        try:
            vector = self._embedder.embed(record.content)
        except Exception as exc:
            raise RuntimeError(
                f"chunk embedder: embed {record.path}#{record.symbol}: {exc}"
            ) from exc
        record.embedding = list(vector)
        return [record]


class GoASTParser(Transform):
    """Splits Go files into one record per top-level declaration."""

    def apply(self, record: Record) -> list[Record]:
        if record.is_delete or record.language != "go":
            return [record]
        try:
            chunks = parse_go(record.path, record.content)
        except GoParseError:
            return _as_whole_file(record, "_file", "file")
        if not chunks:
            return _as_whole_file(record, "_file", "file")
        return [
            _chunk_record(record, chunk.symbol, chunk.symbol_type, "go", chunk.content)
            for chunk in chunks
            if chunk.content.strip()
        ]


class PythonASTParser(Transform):
    """Splits Python files into one record per top-level function or class."""

    def apply(self, record: Record) -> list[Record]:
        if record.is_delete or record.language != "python":
            return [record]
        try:
            chunks = parse_python(record.content)
        except (SyntaxError, ValueError):
            chunks = []
        if not chunks:
            return _as_whole_file(record, "_file", "file")
        return [
            _chunk_record(record, chunk.symbol, chunk.symbol_type, "python", chunk.content)
            for chunk in chunks
            if chunk.content.strip()
        ]


@dataclass
class MarkdownSection:
    """A heading and the text beneath it."""

    heading: str
    content: str = ""


def split_markdown(text: str) -> list[MarkdownSection]:
    """Split at lines starting with '#'; text before the first heading is '_intro'.

    Sections whose content is blank are dropped.
    """
    sections: list[MarkdownSection] = []
    current = MarkdownSection("_intro")
    for line in text.split("\n"):
        if line.startswith("#"):
            if current.content.strip():
                sections.append(current)
            current = MarkdownSection(line.lstrip("#").strip())
        else:
            current.content += line + "\n"
    if current.content.strip():
        sections.append(current)
    return sections


class MarkdownChunker(Transform):
    """Splits Markdown files into one record per heading section."""

    def apply(self, record: Record) -> list[Record]:
        if record.is_delete or record.language != "markdown":
            return [record]
        sections = split_markdown(record.content)
        if not sections:
            return _as_whole_file(record, "_doc", "section")
        return [
            _chunk_record(record, section.heading, "section", "markdown", section.content)
            for section in sections
            if section.content.strip()
        ]


class MerkleDedup(Transform):
    """Drops records whose content hash matches the one stored for their path."""

    def __init__(self, tree: MerkleTree) -> None:
        self._tree = tree

    def apply(self, record: Record) -> list[Record]:
        """Drop unchanged records; store the hash of new or changed ones."""
        if record.is_delete:
            return [record]
        content_hash = hash_content(record.content)
        if self._tree.get(record.path) == content_hash:
            return []
        self._tree.set(record.path, content_hash)
        record.content_hash = content_hash
        return [record]