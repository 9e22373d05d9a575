"""Configuration module for mac-engine using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class MacSettings(BaseSettings):
    """Main configuration settings for mac-engine.

    All settings can be overridden via environment variables with the MAC_ prefix.
    For example, MAC_DEFAULT_TOOL_TIMEOUT_MS will override default_tool_timeout_ms.
    Per-instance and per-tool arguments take precedence over these values.
    """

    # Execution limits
    default_tool_timeout_ms: int = 10_000
    max_action_chain_length: int = 10

    # Ollama
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:latest"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="MAC_")


@lru_cache
def get_settings() -> MacSettings:
    """Get the process-wide settings instance.

    Returns:
        MacSettings: Settings loaded from MAC_ environment variables.
    """
    return MacSettings()
