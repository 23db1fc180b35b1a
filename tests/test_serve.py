import pytest

from databridge.serve import main, resolve_port


def test_default_port():
    assert resolve_port({}) == "8080"


def test_port_from_port_variable():
    assert resolve_port({"PORT": "9000"}) == "9000"


def test_functions_port_takes_precedence():
    env = {"FUNCTIONS_CUSTOMHANDLER_PORT": "7071", "PORT": "9000"}
    assert resolve_port(env) == "7071"


def test_empty_functions_port_falls_back():
    assert resolve_port({"FUNCTIONS_CUSTOMHANDLER_PORT": "", "PORT": "9000"}) == "9000"


def test_unknown_argument_rejected():
    with pytest.raises(SystemExit) as info:
        main(["--bogus"])
    assert info.value.code == 2


def test_invalid_port_without_dsn(monkeypatch, capsys):
    monkeypatch.delenv("CODEWATCH_DSN", raising=False)
    monkeypatch.delenv("FUNCTIONS_CUSTOMHANDLER_PORT", raising=False)
    monkeypatch.setenv("PORT", "abc")
    assert main([]) == 1
    err = capsys.readouterr().err
    assert "CODEWATCH_DSN not set, job tracking disabled" in err
    assert "invalid port" in err


def test_bad_dsn_is_reported(monkeypatch, capsys):
    monkeypatch.setenv("CODEWATCH_DSN", "not a url")
    monkeypatch.delenv("FUNCTIONS_CUSTOMHANDLER_PORT", raising=False)
    monkeypatch.setenv("PORT", "abc")
    assert main([]) == 1
    assert "open db:" in capsys.readouterr().err