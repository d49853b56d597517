"""Configuration management for load-test runs.

This module centralizes environment-driven configuration for the harness. It
builds on ``pydantic_settings.BaseSettings`` so a run can be configured via
environment variables (prefix ``VECLOAD_``), a ``.env`` file, or defaults, with
CLI flags layered on top as init overrides.

Highlights
- Strongly-typed settings with defaults sized for a local Milvus standalone
- Durations accept seconds or Go-style strings (``30s``, ``2m``, ``1m30s``)
- Invalid values are rejected at construction, before any phase starts

Usage
- ``config = LoadTestConfig()`` for env/defaults only
- ``config = load_config(duration_seconds=60, pressure="high")`` with overrides
"""

import os
import re
from typing import Any, Optional, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Union[str, int, float]) -> float:
    """Parse a duration into seconds.

    Accepts plain numbers (seconds) and Go-style duration strings made of one
    or more ``<number><unit>`` parts, e.g. ``"30s"``, ``"2m"``, ``"1h"``,
    ``"1m30s"``, ``"500ms"``.

    Raises
    - ``ConfigurationError`` for anything else, including an empty string
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        raise ConfigurationError("Invalid duration: empty string")

    try:
        return float(text)
    except ValueError:
        pass

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    return total


def format_duration(seconds: float) -> str:
    """Render seconds in the compact style used by the CLI (``1m30s``)."""
    seconds = round(seconds, 3)
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(int(minutes), 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs:.3f}".rstrip("0").rstrip(".") + "s")
    return "".join(parts)


class LoadTestConfig(BaseSettings):
    """Configuration for a single load-test run.

    Parameters are read from the process environment with the ``VECLOAD_``
    prefix (``VECLOAD_MILVUS_ADDR``, ``VECLOAD_DURATION_SECONDS``...).

    Notes
    - ``workers`` and ``batch_size`` override the pressure profile when set.
    - ``seed`` makes generated vectors reproducible across runs.
    """

    model_config = SettingsConfigDict(
        env_prefix="VECLOAD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Target service
    milvus_addr: str = Field(default="localhost:19530")
    milvus_token: str = Field(default="")
    store_type: str = Field(default="milvus")

    # Load shape
    duration_seconds: float = Field(default=30.0, gt=0)
    pressure: str = Field(default="medium")
    workers: Optional[int] = Field(default=None, ge=1)
    batch_size: Optional[int] = Field(default=None, ge=1)
    ramp_up: bool = Field(default=False)
    search_duration_fraction: float = Field(default=0.25, gt=0, le=1)
    seed: int = Field(default=42, ge=0)

    # Real-time reporting
    real_time: bool = Field(default=False)
    real_time_interval_seconds: float = Field(default=1.0, gt=0)

    # Collection layout
    collection_name: str = Field(default="vecload_high_throughput_collection")
    primary_key_field: str = Field(default="id")
    embedding_field: str = Field(default="embedding")
    embedding_dim: int = Field(default=8, ge=1)
    shards_num: int = Field(default=1, ge=1)

    # Index and search
    index_type: str = Field(default="IVF_FLAT")
    metric_type: str = Field(default="L2")
    index_nlist: int = Field(default=16, ge=1)
    search_nprobe: int = Field(default=10, ge=1)
    search_top_k: int = Field(default=3, ge=1)

    # Observability
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")
    metrics_port: Optional[int] = Field(default=None, ge=1, le=65535)
    system_stats: bool = Field(default=False)
    output_path: Optional[str] = Field(default=None)

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return parse_duration(value)
            except ConfigurationError as e:
                raise ValueError(str(e)) from e
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @field_validator("output_path")
    @classmethod
    def _check_output_path(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if os.path.isdir(value):
            raise ValueError(f"output_path is a directory: {value}")
        directory = os.path.dirname(os.path.abspath(value))
        if not os.path.isdir(directory):
            raise ValueError(f"output_path directory does not exist: {directory}")
        if not os.access(directory, os.W_OK):
            raise ValueError(f"output_path directory is not writable: {directory}")
        return value

    @property
    def search_duration_seconds(self) -> float:
        """Search phase duration derived from the insertion duration."""
        return self.duration_seconds * self.search_duration_fraction

    @property
    def index_params(self) -> dict:
        return {
            "index_type": self.index_type,
            "metric_type": self.metric_type,
            "params": {"nlist": self.index_nlist},
        }

    @property
    def search_params(self) -> dict:
        return {
            "metric_type": self.metric_type,
            "params": {"nprobe": self.search_nprobe},
        }


def load_config(**overrides: Any) -> LoadTestConfig:
    """Build a ``LoadTestConfig`` from env/defaults plus explicit overrides.

    ``None`` overrides are ignored so unset CLI flags fall through to the
    environment. Validation failures surface as ``ConfigurationError``.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return LoadTestConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
