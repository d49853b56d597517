"""Pressure profiles: named intensity tiers mapped to concrete parallelism.

Levels are data, not branches. Adding a tier means adding one entry to
``PRESSURE_PROFILES``; the scheduler and worker pool only ever see the
resolved ``PressureProfile``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional

import structlog

from vecload.common.errors import ConfigurationError

logger = structlog.get_logger("profiles")


class PressureLevel(Enum):
    """Supported intensity tiers."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


@dataclass(frozen=True)
class PressureProfile:
    """Resolved worker count and batch size for a run."""
    level: PressureLevel
    workers: int
    batch_size: int
    label: str = ""

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", self.level.name)


PRESSURE_PROFILES: Dict[PressureLevel, PressureProfile] = {
    PressureLevel.LOW: PressureProfile(PressureLevel.LOW, workers=5, batch_size=500),
    PressureLevel.MEDIUM: PressureProfile(PressureLevel.MEDIUM, workers=20, batch_size=2000),
    PressureLevel.HIGH: PressureProfile(PressureLevel.HIGH, workers=50, batch_size=5000),
    PressureLevel.EXTREME: PressureProfile(PressureLevel.EXTREME, workers=100, batch_size=10000),
}

DEFAULT_LEVEL = PressureLevel.MEDIUM


def resolve_profile(
    level: Optional[str] = None,
    workers: Optional[int] = None,
    batch_size: Optional[int] = None,
    profiles: Optional[Dict[PressureLevel, PressureProfile]] = None,
) -> PressureProfile:
    """Resolve a level name (case-insensitive) into a ``PressureProfile``.

    Unknown or missing levels fall back to ``MEDIUM`` labelled
    ``"MEDIUM (default)"`` instead of failing. Explicit ``workers`` /
    ``batch_size`` override the tier's values and must be at least 1.
    """
    table = profiles if profiles is not None else PRESSURE_PROFILES

    profile = None
    if level:
        try:
            profile = table.get(PressureLevel(level.strip().lower()))
        except ValueError:
            profile = None

    if profile is None:
        profile = replace(table[DEFAULT_LEVEL], label=f"{DEFAULT_LEVEL.name} (default)")
        if level:
            logger.warning("Unknown pressure level, using default", requested=level, default=DEFAULT_LEVEL.value)

    if workers is not None:
        if workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {workers}")
        profile = replace(profile, workers=workers)
    if batch_size is not None:
        if batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}")
        profile = replace(profile, batch_size=batch_size)

    return profile
