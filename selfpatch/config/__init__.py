"""Configuration for SelfPatch."""

from selfpatch.config.settings import EngineSettings, get_settings

__all__ = ["EngineSettings", "get_settings"]
