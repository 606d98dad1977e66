"""Tests for the command-line entry point."""
from __future__ import annotations

import base64

import pytest

from messaging_auth import __main__ as cli
from messaging_auth.config import get_settings

ENV_NAMES = (
    "NATS_URL",
    "ADMIN_TOKEN",
    "JWT_SIGNER_PRIVATE_KEY",
    "JWT_SIGNER_PRIVATE_KEY_PATH",
    "JWT_SIGNER_PUBLIC_KEY",
    "JWT_SIGNER_PUBLIC_KEY_PATH",
    "HOST",
    "PORT",
    "AUDIT_DIR",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def bare_env(monkeypatch, tmp_path):
    for name in ENV_NAMES:
        monkeypatch.delenv("VECTOR_" + name, raising=False)
    # keep a developer's .env out of the picture
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def served(monkeypatch):
    calls = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


def _configure(monkeypatch, **extra):
    monkeypatch.setenv("VECTOR_NATS_URL", "nats://nats.test:4222")
    monkeypatch.setenv("VECTOR_ADMIN_TOKEN", "connext123")
    monkeypatch.setenv("VECTOR_JWT_SIGNER_PRIVATE_KEY", base64.b64encode(b"\x07" * 32).decode("ascii"))
    monkeypatch.setenv("VECTOR_AUDIT_DIR", "")
    for name, value in extra.items():
        monkeypatch.setenv("VECTOR_" + name, value)


class TestHelp:
    def test_help_without_configuration(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--help"])
        assert exc.value.code == 0
        assert "--port" in capsys.readouterr().out

    def test_bad_flag_fails_before_settings(self):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--port", "not-a-number"])
        assert exc.value.code == 2


class TestServe:
    def test_defaults_from_settings(self, monkeypatch, served):
        _configure(monkeypatch, HOST="127.0.0.1", PORT="6060")
        cli.main([])
        (_, kwargs), = served
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 6060

    def test_flags_override_settings(self, monkeypatch, served):
        _configure(monkeypatch, PORT="6060")
        cli.main(["--host", "10.0.0.5", "--port", "7070"])
        (_, kwargs), = served
        assert kwargs["host"] == "10.0.0.5"
        assert kwargs["port"] == 7070
