"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources, in priority
# order:
#
#   1. **Environment variables** (e.g. ANTHROPIC_API_KEY=sk-ant-...)
#   2. **.env file** in the project root (local development)
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# below apply when neither source sets a value.
#
# ``validate_settings`` is the fail-fast check run by main.py before any
# provider is built.  A service that cannot reach a model or a database
# should refuse to start rather than degrade every request.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from reelcritic.utils.errors import ConfigurationError


class Settings(BaseSettings):
    """reelcritic application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM Providers ===
    # "auto" picks Anthropic -> OpenAI -> Ollama based on which is configured.
    llm_provider: Literal["auto", "openai", "anthropic", "ollama"] = "auto"
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, Groq, ...)
    openai_text_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1"
    ai_timeout_seconds: float = 20.0

    # === Scoring ===
    scoring_strategy: Literal["ai", "heuristic"] = "ai"

    # === Persistence ===
    database_path: str = "data/reelcritic.db"

    # === Moderation job ===
    moderation_scheduler_enabled: bool = True
    moderation_batch_size: int = 50
    moderation_interval_seconds: float = 300.0
    moderation_item_delay_seconds: float = 1.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have credentials or a URL configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers

    def resolve_llm_provider(self) -> str:
        """Return the concrete provider name ``llm_provider`` resolves to."""
        if self.llm_provider != "auto":
            return self.llm_provider
        available = self.get_available_llm_providers()
        return available[0] if available else ""


def validate_settings(settings: Settings) -> None:
    """Raise :class:`ConfigurationError` when the service cannot start.

    Checks that the selected LLM provider has credentials (or a base URL
    for Ollama) and that a database path is configured.
    """
    provider = settings.resolve_llm_provider()
    if not provider:
        raise ConfigurationError(
            message="No LLM provider configured: set ANTHROPIC_API_KEY, OPENAI_API_KEY or OLLAMA_BASE_URL",
        )
    if provider == "anthropic" and not settings.anthropic_api_key:
        raise ConfigurationError(message="ANTHROPIC_API_KEY is required", provider_name="anthropic")
    if provider == "openai" and not settings.openai_api_key:
        raise ConfigurationError(message="OPENAI_API_KEY is required", provider_name="openai")
    if provider == "ollama" and not settings.ollama_base_url:
        raise ConfigurationError(message="OLLAMA_BASE_URL is required", provider_name="ollama")
    if not settings.database_path.strip():
        raise ConfigurationError(message="DATABASE_PATH must not be empty")
    if settings.ai_timeout_seconds <= 0:
        raise ConfigurationError(message="AI_TIMEOUT_SECONDS must be positive")
