"""Configuration module."""

from puppet_expressions.config.constants import ENGINE, EngineConstants
from puppet_expressions.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "EngineConstants", "ENGINE"]
