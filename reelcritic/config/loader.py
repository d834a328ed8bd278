"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  — static thresholds checked into the repo
#                            (gate limits, moderation batch sizing)
#   2. .env file           — local developer overrides
#   3. Environment vars    — set at deploy time
#
# load_config() reads the YAML file, then deep-merges the Settings-backed
# values on top.  Scoring and moderation keys present in the YAML only
# yield to variables the environment (or .env) actually sets.  ``gate_limits_from_config`` turns the ``gate`` section
# into the typed object SpamGate consumes.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from reelcritic.config.settings import Settings
from reelcritic.models.moderation import GateLimits

_DEFAULT_CONFIG_PATH = "config/config.yaml"

# (section, key, Settings field) pairs that config.yaml may also set.
_YAML_BACKED_SETTINGS = (
    ("scoring", "strategy", "scoring_strategy"),
    ("moderation", "batch_size", "moderation_batch_size"),
    ("moderation", "interval_seconds", "moderation_interval_seconds"),
    ("moderation", "item_delay_seconds", "moderation_item_delay_seconds"),
    ("moderation", "scheduler_enabled", "moderation_scheduler_enabled"),
)


def load_config(path: str = _DEFAULT_CONFIG_PATH, settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to merge; a fresh one is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    _apply_explicit_settings(yaml_config, settings)
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "provider": settings.resolve_llm_provider(),
            "timeout_seconds": settings.ai_timeout_seconds,
            "available_providers": settings.get_available_llm_providers(),
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _apply_explicit_settings(config: dict[str, Any], settings: Settings) -> None:
    """Fill scoring/moderation keys: explicit env values win, then YAML, then Settings defaults."""
    for section, key, field in _YAML_BACKED_SETTINGS:
        values = config.get(section) or {}
        config[section] = values
        if field in settings.model_fields_set or key not in values:
            values[key] = getattr(settings, field)


def gate_limits_from_config(config: dict[str, Any]) -> GateLimits:
    """Build :class:`GateLimits` from the ``gate`` section, keeping defaults for absent keys."""
    section = config.get("gate") or {}
    return GateLimits(**{key: value for key, value in section.items() if key in GateLimits.model_fields})


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
