from unittest.mock import patch

import pytest

from flashhold import __main__ as entrypoint


def test_port_defaults_to_8000(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    assert entrypoint._read_port() == 8000


def test_invalid_port_exits(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(SystemExit):
        entrypoint._read_port()


def test_main_serves_the_app(monkeypatch):
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("HOST", "127.0.0.1")

    with patch.object(entrypoint.uvicorn, "run") as run:
        entrypoint.main()

    run.assert_called_once()
    args, kwargs = run.call_args
    assert args == ("flashhold.main:app",)
    assert kwargs["port"] == 9001
    assert kwargs["host"] == "127.0.0.1"
