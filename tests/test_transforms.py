import pytest

from databridge.core import Action, Embedder, Record
from databridge.merkle import MerkleTree, hash_content
from databridge.transforms import (
    ChunkEmbedder,
    GoASTParser,
    MarkdownChunker,
    MarkdownSection,
    MerkleDedup,
    PythonASTParser,
    split_markdown,
)


class FakeEmbedder(Embedder):
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def embed_batch(self, texts):
        self.calls.extend(texts)
        if self.fail:
            raise ValueError("boom")
        return [[float(len(t)), 1.0] for t in texts]

    def dimension(self):
        return 2


def make(language, content, **kw):
    return Record(
        id="rid", source_id="ws", path="f", language=language,
        content=content, metadata={"k": "v"}, **kw,
    )


# --- split_markdown -----------------------------------------------------


def test_split_markdown_sections():
    sections = split_markdown("intro\n# Title\nbody\n## Sub\nmore")
    assert sections == [
        MarkdownSection("_intro", "intro\n"),
        MarkdownSection("Title", "body\n"),
        MarkdownSection("Sub", "more\n"),
    ]


def test_split_markdown_drops_empty_sections():
    sections = split_markdown("# Empty\n\n# Full\ntext\n")
    assert [s.heading for s in sections] == ["Full"]


def test_split_markdown_blank_gives_nothing():
    assert split_markdown("  \n\n") == []


# --- MarkdownChunker ----------------------------------------------------


def test_markdown_chunker_splits():
    record = make("markdown", "# Title\nbody\n")
    out = MarkdownChunker().apply(record)
    assert len(out) == 1
    chunk = out[0]
    assert chunk.id == "rid#Title"
    assert chunk.symbol == "Title"
    assert chunk.symbol_type == "section"
    assert chunk.content_hash == hash_content(chunk.content)
    assert chunk.metadata == {"k": "v"}
    assert chunk.metadata is not record.metadata


def test_markdown_chunker_whole_doc_when_no_sections():
    record = make("markdown", "   ")
    out = MarkdownChunker().apply(record)
    assert out == [record]
    assert record.symbol == "_doc"
    assert record.symbol_type == "section"


def test_markdown_chunker_passthrough():
    record = make("go", "# not markdown")
    assert MarkdownChunker().apply(record)[0] is record
    deleted = make("markdown", "# x\ny", action=Action.DELETE)
    assert MarkdownChunker().apply(deleted) == [deleted]


# --- GoASTParser --------------------------------------------------------

GO_SRC = "package main\n\nfunc Hello() {}\n\ntype T struct{}\n\nfunc (t *T) M() {}\n"


def test_go_parser_chunks():
    out = GoASTParser().apply(make("go", GO_SRC))
    assert [(r.symbol, r.symbol_type) for r in out] == [
        ("Hello", "func"), ("T", "type"), ("T.M", "method"),
    ]
    assert out[0].content == "func Hello() {}"
    assert out[2].id == "rid#T.M"
    assert all(r.language == "go" and r.source_id == "ws" for r in out)
    assert all(r.content_hash == hash_content(r.content) for r in out)


def test_go_parser_falls_back_on_error():
    record = make("go", "this is not go")
    out = GoASTParser().apply(record)
    assert out == [record]
    assert (record.symbol, record.symbol_type) == ("_file", "file")
    assert record.content_hash == hash_content("this is not go")


def test_go_parser_falls_back_when_empty():
    record = make("go", "package main\n")
    out = GoASTParser().apply(record)
    assert out[0].symbol == "_file"


def test_go_parser_passthrough():
    record = make("python", "x = 1")
    assert GoASTParser().apply(record)[0] is record
    assert record.symbol == ""


# --- PythonASTParser ----------------------------------------------------


def test_python_parser_chunks():
    src = "def f():\n    return 1\n\nclass C:\n    pass\n"
    out = PythonASTParser().apply(make("python", src))
    assert [(r.symbol, r.symbol_type) for r in out] == [("f", "func"), ("C", "class")]
    assert out[0].content == "def f():\n    return 1"
    assert out[1].id == "rid#C"
    assert all(r.language == "python" for r in out)


def test_python_parser_falls_back_on_syntax_error():
    record = make("python", "def (:")
    out = PythonASTParser().apply(record)
    assert out == [record]
    assert (record.symbol, record.symbol_type) == ("_file", "file")


def test_python_parser_delete_passthrough():
    record = make("python", "def f(): pass", action=Action.DELETE)
    assert PythonASTParser().apply(record) == [record]
    assert record.symbol == ""


# --- MerkleDedup --------------------------------------------------------


def test_dedup_first_pass_then_drop():
    tree = MerkleTree()
    dedup = MerkleDedup(tree)
    first = make("go", "abc")
    assert dedup.apply(first) == [first]
    assert first.content_hash == hash_content("abc")
    assert tree.get("f") == hash_content("abc")
    assert dedup.apply(make("go", "abc")) == []


def test_dedup_changed_content_passes():
    tree = MerkleTree()
    dedup = MerkleDedup(tree)
    dedup.apply(make("go", "abc"))
    changed = make("go", "abcd")
    assert dedup.apply(changed) == [changed]
    assert tree.get("f") == hash_content("abcd")


def test_dedup_delete_passthrough():
    tree = MerkleTree()
    record = make("go", "abc", action=Action.DELETE)
    assert MerkleDedup(tree).apply(record) == [record]
    assert len(tree) == 0


# --- ChunkEmbedder ------------------------------------------------------


def test_chunk_embedder_embeds():
    embedder = FakeEmbedder()
    record = make("go", "hello")
    out = ChunkEmbedder(embedder).apply(record)
    assert out == [record]
    assert record.embedding == [5.0, 1.0]
    assert embedder.calls == ["hello"]


def test_chunk_embedder_skips_existing_and_empty():
    embedder = FakeEmbedder()
    existing = make("go", "hello", embedding=[0.5])
    empty = make("go", "")
    transform = ChunkEmbedder(embedder)
    assert transform.apply(existing)[0].embedding == [0.5]
    assert transform.apply(empty)[0].embedding == []
    assert embedder.calls == []


def test_chunk_embedder_wraps_errors():
    with pytest.raises(RuntimeError, match="chunk embedder: embed f#"):
        ChunkEmbedder(FakeEmbedder(fail=True)).apply(make("go", "hello"))