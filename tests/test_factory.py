import pytest

from databridge.factory import BuildFlowError, build_flow


def test_local_source_requires_input():
    with pytest.raises(BuildFlowError, match="requires"):
        build_flow("ws1", "local", {}, {"QDRANT_HOST": "localhost"})


def test_empty_source_type_means_local_and_requires_input():
    with pytest.raises(BuildFlowError, match="requires"):
        build_flow("ws1", "", {"input": ""}, {"QDRANT_HOST": "localhost"})


def test_unknown_source_type():
    with pytest.raises(BuildFlowError, match="unknown source type"):
        build_flow("ws1", "ftp", {"input": "x"}, {"QDRANT_HOST": "localhost"})


@pytest.mark.parametrize("source_type", ["s3", "azure"])
def test_remote_sources_rejected(source_type):
    with pytest.raises(BuildFlowError, match="not available"):
        build_flow("ws1", source_type, {}, {"QDRANT_HOST": "localhost"})


def test_no_sinks_configured(tmp_path):
    with pytest.raises(BuildFlowError, match="no sinks configured"):
        build_flow("ws1", "local", {"input": str(tmp_path)}, {})


def test_invalid_qdrant_port(tmp_path):
    env = {"QDRANT_HOST": "localhost", "QDRANT_PORT": "abc"}
    with pytest.raises(BuildFlowError, match="qdrant sink"):
        build_flow("ws1", "local", {"input": str(tmp_path)}, env)


def test_smritea_sink_unavailable(tmp_path):
    env = {"SMRITEA_API_KEY": "placeholder"}
    with pytest.raises(BuildFlowError, match="smritea sink"):
        build_flow("ws1", "local", {"input": str(tmp_path)}, env)


def test_embedder_error_is_wrapped(tmp_path):
    env = {"QDRANT_HOST": "localhost", "CODEWATCH_EMBEDDER": "bogus"}
    with pytest.raises(BuildFlowError, match="embedder"):
        build_flow("ws1", "local", {"input": str(tmp_path)}, env)


def test_invalid_embedder_dimension(tmp_path):
    env = {"QDRANT_HOST": "localhost", "CODEWATCH_EMBEDDER_DIM": "big"}
    with pytest.raises(BuildFlowError, match="CODEWATCH_EMBEDDER_DIM"):
        build_flow("ws1", "local", {"input": str(tmp_path)}, env)


def test_built_flow_is_named_after_workspace(tmp_path):
    flow = build_flow("ws1", "local", {"input": str(tmp_path)}, {"QDRANT_HOST": "localhost"})
    assert flow.name == "ws1"


def test_built_flow_runs_over_directory_without_indexed_files(tmp_path):
    (tmp_path / "notes.txt").write_text("plain text\n")
    flow = build_flow("ws2", "local", {"input": str(tmp_path)}, {"QDRANT_HOST": "localhost"})
    stats = flow.run()
    assert stats.flow_name == "ws2"
    assert stats.records_in == 0
    assert stats.records_out == 0