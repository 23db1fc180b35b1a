import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from databridge.core import Action, Record
from databridge.postgres_sink import PostgresSink
from databridge.store import Chunk, auto_migrate, open_database


@pytest.fixture
def engine(tmp_path):
    eng = open_database(f"sqlite:///{tmp_path / 'db.sqlite'}")
    auto_migrate(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def sink(engine):
    s = PostgresSink(engine)
    s.open()
    yield s
    s.close()


def _record(**overrides):
    base = dict(
        id="rid",
        source_id="ws",
        path="pkg/a.go",
        symbol="Login",
        symbol_type="func",
        language="go",
        content="func Login() {}",
        content_hash="hash-1",
        embedding=[0.25, 0.5],
        metadata={"origin": "test"},
    )
    base.update(overrides)
    return Record(**base)


def _chunks(engine):
    with Session(engine) as session:
        return list(session.scalars(select(Chunk).order_by(Chunk.symbol)))


def test_write_inserts_chunk(engine, sink):
    record = _record()
    sink.write(record)
    [chunk] = _chunks(engine)
    assert chunk.workspace_id == record.source_id
    assert chunk.file_path == record.path
    assert chunk.symbol == record.symbol
    assert chunk.content == record.content
    assert chunk.embedding == record.embedding
    assert chunk.metadata_ == record.metadata


def test_write_same_key_updates_in_place(engine, sink):
    sink.write(_record())
    sink.write(_record(content="func Login() { return }", content_hash="hash-2"))
    chunks = _chunks(engine)
    assert len(chunks) == 1
    assert chunks[0].content == "func Login() { return }"
    assert chunks[0].content_hash == "hash-2"


def test_different_symbols_are_separate_rows(engine, sink):
    sink.write(_record(symbol="A"))
    sink.write(_record(symbol="B"))
    assert [c.symbol for c in _chunks(engine)] == ["A", "B"]


def test_empty_embedding_stored_as_null(engine, sink):
    sink.write(_record(embedding=[]))
    [chunk] = _chunks(engine)
    assert chunk.embedding is None


def test_delete_removes_only_that_file(engine, sink):
    sink.write(_record(symbol="A"))
    sink.write(_record(symbol="B"))
    sink.write(_record(path="other.go", symbol="C"))
    sink.write(_record(source_id="ws-2", symbol="D"))
    sink.write(Record(source_id="ws", path="pkg/a.go", action=Action.DELETE))
    remaining = {(c.workspace_id, c.file_path, c.symbol) for c in _chunks(engine)}
    assert remaining == {("ws", "other.go", "C"), ("ws-2", "pkg/a.go", "D")}


def test_unserializable_metadata_raises(sink):
    with pytest.raises(RuntimeError, match="marshal metadata"):
        sink.write(_record(metadata={"bad": object()}))


def test_name_identifies_sink(sink):
    assert sink.name == "PostgresSink"