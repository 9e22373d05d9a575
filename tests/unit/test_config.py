"""Unit tests for MacSettings."""

from mac_engine.config import MacSettings, get_settings


def test_defaults(monkeypatch):
    for name in (
        "MAC_DEFAULT_TOOL_TIMEOUT_MS",
        "MAC_MAX_ACTION_CHAIN_LENGTH",
        "MAC_OLLAMA_HOST",
        "MAC_OLLAMA_MODEL",
        "MAC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = MacSettings()

    assert settings.default_tool_timeout_ms == 10_000
    assert settings.max_action_chain_length == 10
    assert settings.ollama_host == "http://localhost:11434"
    assert settings.ollama_model == "llama3.2:latest"
    assert settings.log_level == "INFO"


def test_environment_override(monkeypatch):
    monkeypatch.setenv("MAC_DEFAULT_TOOL_TIMEOUT_MS", "2500")
    monkeypatch.setenv("MAC_MAX_ACTION_CHAIN_LENGTH", "3")

    settings = MacSettings()

    assert settings.default_tool_timeout_ms == 2500
    assert settings.max_action_chain_length == 3


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
