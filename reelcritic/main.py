"""reelcritic FastAPI application entry point.

Wires together all providers and services via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, initialises the SQLite stores and starts the periodic
moderation job for the lifetime of the app.

``build_components`` is also used by the CLI so batch moderation from the
command line runs against exactly the same wiring as the web server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from reelcritic import __version__
from reelcritic.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from reelcritic.api.routes import router as api_router
from reelcritic.config.loader import gate_limits_from_config, load_config
from reelcritic.config.settings import Settings, validate_settings
from reelcritic.interfaces.llm_provider import ILLMProvider
from reelcritic.pipeline.moderation_job import ModerationJob
from reelcritic.providers.audit.sqlite_audit_provider import SQLiteAuditProvider
from reelcritic.providers.cache.memory_cache import MemoryCacheProvider
from reelcritic.providers.llm.anthropic_provider import AnthropicLLMProvider
from reelcritic.providers.llm.ollama_provider import OllamaLLMProvider
from reelcritic.providers.llm.openai_provider import OpenAILLMProvider
from reelcritic.providers.persistence.sqlite_review_provider import SQLiteReviewProvider
from reelcritic.providers.persistence.sqlite_user_provider import SQLiteUserProvider
from reelcritic.services.ai_signals import AISignalProvider
from reelcritic.services.moderation_service import ModerationService
from reelcritic.services.review_service import ReviewService
from reelcritic.services.scoring_strategy import build_scoring_strategy
from reelcritic.services.spam_gate import SpamGate
from reelcritic.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)

# Components with an async ``initialize()`` that must run before serving.
_STORE_KEYS = ("review_store", "user_store", "audit_store")


# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Build the provider ``LLM_PROVIDER`` resolves to.

    With ``auto`` the priority is Anthropic -> OpenAI -> Ollama.
    """
    provider = app_settings.resolve_llm_provider()
    if provider == "anthropic":
        return AnthropicLLMProvider(settings=app_settings)
    if provider == "openai":
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    db_path = app_settings.database_path

    # -- Storage --
    review_store = SQLiteReviewProvider(db_path=db_path)
    user_store = SQLiteUserProvider(db_path=db_path)
    audit_store = SQLiteAuditProvider(db_path=db_path)

    # -- LLM + AI signals --
    llm = _build_llm_provider(app_settings)
    signals = AISignalProvider(llm, timeout_seconds=app_settings.ai_timeout_seconds)
    scoring_config = app_config.get("scoring") or {}
    strategy = build_scoring_strategy(scoring_config.get("strategy", app_settings.scoring_strategy), signals)

    # -- Gate --
    limits = gate_limits_from_config(app_config)
    last_action_cache = MemoryCacheProvider(
        max_size=limits.last_action_cache_size,
        ttl=limits.last_action_ttl_seconds,
    )
    gate = SpamGate(review_store, user_store, last_action_cache, limits=limits)

    # -- Moderation --
    moderation_config = app_config.get("moderation") or {}
    moderation = ModerationService(
        review_store,
        user_store,
        audit_store,
        signals,
        duplicate_threshold=float(moderation_config.get("duplicate_threshold", 0.8)),
        duplicate_lookback=int(moderation_config.get("duplicate_lookback", 10)),
    )
    moderation_job = ModerationJob(
        moderation,
        batch_size=int(moderation_config.get("batch_size", app_settings.moderation_batch_size)),
        interval_seconds=float(
            moderation_config.get("interval_seconds", app_settings.moderation_interval_seconds)
        ),
        item_delay_seconds=float(
            moderation_config.get("item_delay_seconds", app_settings.moderation_item_delay_seconds)
        ),
    )

    review_service = ReviewService(review_store, user_store, gate, strategy, moderation)

    _logger.info(
        "components_built",
        llm_provider=llm.get_provider_name(),
        scoring_strategy=strategy.name,
        database_path=db_path,
    )

    return {
        "review_store": review_store,
        "user_store": user_store,
        "audit_store": audit_store,
        "llm": llm,
        "signals": signals,
        "gate": gate,
        "moderation_service": moderation,
        "moderation_job": moderation_job,
        "review_service": review_service,
        "scheduler_enabled": bool(
            moderation_config.get("scheduler_enabled", app_settings.moderation_scheduler_enabled)
        ),
        "provider_registry": {
            "llm": llm.is_available(),
            "llm_provider": llm.get_provider_name(),
            "scoring_strategy": strategy.name,
            "storage": False,
        },
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


def _make_lifespan(
    components: dict[str, Any] | None,
) -> Callable[[FastAPI], Any]:
    @asynccontextmanager
    async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
        """Initialise stores and start the moderation job; stop it on shutdown."""
        if components is None:
            validate_settings(settings)
            built = build_components(settings, config)
        else:
            built = components

        for key, value in built.items():
            setattr(application.state, key, value)

        for key in _STORE_KEYS:
            store = built.get(key)
            if store is not None:
                await store.initialize()
        registry = built.get("provider_registry")
        if isinstance(registry, dict):
            registry["storage"] = True

        job: ModerationJob | None = built.get("moderation_job")
        if job is not None and built.get("scheduler_enabled", False):
            job.start()

        _logger.info(
            "app_startup",
            version=__version__,
            environment=settings.app_env,
            scheduler=bool(job is not None and job.is_scheduled),
        )

        yield

        if job is not None:
            await job.stop()
        _logger.info("app_shutdown")

    return _lifespan


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(components: dict[str, Any] | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    *components* replaces :func:`build_components` (and the startup
    settings check) so tests can run the app against fakes.
    """
    application = FastAPI(
        title="reelcritic API",
        version=__version__,
        description=(
            "Score movie and TV reviews with deterministic heuristics and AI "
            "signals, weight them by reviewer credibility, and moderate them "
            "with an AI bot backed by pattern detectors."
        ),
        lifespan=_make_lifespan(components),
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "reelcritic.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
