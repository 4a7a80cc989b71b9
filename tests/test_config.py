# Tests for environment-driven settings.
# Created: 2026-10-19

import pytest
from pydantic import ValidationError

from wagate.config import Settings, get_config_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PORT", "HOST", "WEBHOOK_URL", "SESSION_START_DELAY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.webhook_url is None
    assert settings.session_start_delay == 2.0
    assert settings.session_db_path.startswith(str(get_config_dir()))


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("PORT", "3000")
    monkeypatch.setenv("WEBHOOK_URL", "https://n8n.example.com/webhook/wa")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings(_env_file=None)
    assert settings.port == 3000
    assert settings.webhook_url == "https://n8n.example.com/webhook/wa"
    assert settings.log_level == "DEBUG"


def test_blank_webhook_url_is_unset(monkeypatch):
    monkeypatch.setenv("WEBHOOK_URL", "  ")
    assert Settings(_env_file=None).webhook_url is None


def test_invalid_port(monkeypatch):
    monkeypatch.setenv("PORT", "70000")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
