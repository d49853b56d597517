"""Tests for pressure profile resolution."""

import pytest

from vecload.common.errors import ConfigurationError
from vecload.performance.profiles import (
    PRESSURE_PROFILES,
    PressureLevel,
    resolve_profile,
)


@pytest.mark.parametrize(
    "level,workers,batch_size",
    [
        ("low", 5, 500),
        ("medium", 20, 2000),
        ("high", 50, 5000),
        ("extreme", 100, 10000),
    ],
)
def test_known_levels(level, workers, batch_size):
    """Each tier maps to its fixed worker count and batch size."""
    profile = resolve_profile(level)
    assert profile.workers == workers
    assert profile.batch_size == batch_size
    assert profile.label == level.upper()


def test_level_names_are_case_insensitive():
    """Level names match regardless of case."""
    assert resolve_profile("HIGH") == resolve_profile("high")
    assert resolve_profile(" Extreme ").level == PressureLevel.EXTREME


@pytest.mark.parametrize("level", ["turbo", "", None])
def test_unknown_level_falls_back_to_medium(level):
    """Unknown or missing levels resolve to MEDIUM with a default label."""
    profile = resolve_profile(level)
    assert profile.level == PressureLevel.MEDIUM
    assert (profile.workers, profile.batch_size) == (20, 2000)
    assert profile.label == "MEDIUM (default)"


def test_overrides_replace_tier_values():
    """Explicit workers and batch size override the tier."""
    profile = resolve_profile("low", workers=3, batch_size=7)
    assert profile.level == PressureLevel.LOW
    assert (profile.workers, profile.batch_size) == (3, 7)


@pytest.mark.parametrize("kwargs", [{"workers": 0}, {"batch_size": 0}, {"workers": -2}])
def test_invalid_overrides_rejected(kwargs):
    """Overrides below one are configuration errors."""
    with pytest.raises(ConfigurationError):
        resolve_profile("low", **kwargs)


def test_profile_table_is_not_mutated_by_overrides():
    """Resolving with overrides leaves the shared table untouched."""
    resolve_profile("medium", workers=1, batch_size=1)
    assert PRESSURE_PROFILES[PressureLevel.MEDIUM].workers == 20
    assert PRESSURE_PROFILES[PressureLevel.MEDIUM].batch_size == 2000
