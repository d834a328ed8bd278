"""Configuration module — exports Settings, load_config and the startup validator."""

from reelcritic.config.loader import gate_limits_from_config, load_config
from reelcritic.config.settings import Settings, validate_settings

__all__ = ["Settings", "gate_limits_from_config", "load_config", "validate_settings"]
