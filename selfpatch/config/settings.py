"""
Engine Settings for SelfPatch.

Every threshold the analytics and lifecycle engine relies on lives here so
that services never hard-code a window or a count. Defaults are the product
values; deployments may override them through ``SELFPATCH_*`` environment
variables.

Usage:
    from selfpatch.config.settings import get_settings

    settings = get_settings()
    settings.pattern_cooldown_days  # 14
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from functools import lru_cache

from selfpatch.lib.exceptions import ConfigurationError

ENV_PREFIX = "SELFPATCH_"


@dataclass(frozen=True)
class EngineSettings:
    """Thresholds for diagnostics, lifecycle, streak and version bookkeeping."""

    # Diagnostic engine
    pattern_cooldown_days: int = 14
    diagnostics_interval_days: int = 7

    # Bug lifecycle
    weeks_for_stable: int = 4
    regression_crash_threshold: int = 3
    regression_window_days: int = 14

    # Streaks
    freeze_window_days: int = 7

    # Weekly diagnostic rotation
    max_bugs_per_diagnostic: int = 3
    rotation_lookback_diagnostics: int = 4

    # Detectors
    avoidance_window_days: int = 28

    # Versioning
    fixes_per_minor_version: int = 7
    minor_versions_per_major: int = 10

    # Current intensity and trends
    intensity_crash_window_days: int = 7
    intensity_lookback_diagnostics: int = 4
    trend_weeks: int = 8

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineSettings:
        """
        Build settings from ``SELFPATCH_<FIELD>`` environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            EngineSettings with overrides applied

        Raises:
            ConfigurationError: If an override is not a positive integer
        """
        source = os.environ if environ is None else environ
        overrides: dict[str, int] = {}
        for f in fields(cls):
            key = f"{ENV_PREFIX}{f.name.upper()}"
            raw = source.get(key)
            if raw is None or raw == "":
                continue
            try:
                value = int(raw)
            except ValueError as exc:
                raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from exc
            if value <= 0:
                raise ConfigurationError(f"{key} must be positive, got {value}")
            overrides[f.name] = value
        return cls(**overrides)


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Get the process-wide settings, read once from the environment."""
    return EngineSettings.from_env()
