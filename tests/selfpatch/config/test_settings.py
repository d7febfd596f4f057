"""
Tests for EngineSettings.

Tests cover:
- Product defaults
- SELFPATCH_* overrides
- ConfigurationError on bad values
- get_settings caching
"""

from __future__ import annotations

import dataclasses

import pytest

from selfpatch.config import EngineSettings, get_settings
from selfpatch.lib.exceptions import ConfigurationError


def test_defaults():
    settings = EngineSettings()

    assert settings.pattern_cooldown_days == 14
    assert settings.diagnostics_interval_days == 7
    assert settings.weeks_for_stable == 4
    assert settings.regression_crash_threshold == 3
    assert settings.regression_window_days == 14
    assert settings.freeze_window_days == 7
    assert settings.max_bugs_per_diagnostic == 3
    assert settings.rotation_lookback_diagnostics == 4
    assert settings.avoidance_window_days == 28
    assert settings.fixes_per_minor_version == 7
    assert settings.minor_versions_per_major == 10
    assert settings.intensity_crash_window_days == 7
    assert settings.intensity_lookback_diagnostics == 4
    assert settings.trend_weeks == 8


def test_from_env_without_overrides():
    assert EngineSettings.from_env({}) == EngineSettings()


def test_from_env_overrides():
    settings = EngineSettings.from_env(
        {"SELFPATCH_PATTERN_COOLDOWN_DAYS": "21", "SELFPATCH_WEEKS_FOR_STABLE": "6", "OTHER": "x"}
    )

    assert settings.pattern_cooldown_days == 21
    assert settings.weeks_for_stable == 6
    assert settings.regression_crash_threshold == 3


def test_empty_value_is_ignored():
    assert EngineSettings.from_env({"SELFPATCH_FREEZE_WINDOW_DAYS": ""}).freeze_window_days == 7


@pytest.mark.parametrize("raw", ["abc", "1.5", "0", "-3"])
def test_invalid_override_raises(raw):
    with pytest.raises(ConfigurationError, match="SELFPATCH_REGRESSION_WINDOW_DAYS"):
        EngineSettings.from_env({"SELFPATCH_REGRESSION_WINDOW_DAYS": raw})


def test_settings_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        EngineSettings().weeks_for_stable = 2


def test_get_settings_is_cached(monkeypatch):
    get_settings.cache_clear()
    monkeypatch.setenv("SELFPATCH_MAX_BUGS_PER_DIAGNOSTIC", "5")
    try:
        first = get_settings()
        monkeypatch.setenv("SELFPATCH_MAX_BUGS_PER_DIAGNOSTIC", "2")
        assert get_settings() is first
        assert first.max_bugs_per_diagnostic == 5
    finally:
        get_settings.cache_clear()
