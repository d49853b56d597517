"""Linear ramp-up scheduling, like a dynamometer run.

Load starts at a 10% floor of the configured maximum and grows linearly to
100% by the end of the phase. The effective worker count is advisory: the
pool is launched at full size, so in practice only the batch size ramps.
"""

from typing import NamedTuple

MIN_START_WORKERS = 1
MIN_START_BATCH_SIZE = 100
START_FRACTION_DIVISOR = 10


class RampState(NamedTuple):
    """Effective load at a point in time."""
    workers: int
    batch_size: int


def _start_value(maximum: int, floor: int) -> int:
    # Never start above the maximum, or the curve would descend.
    return min(maximum, max(floor, maximum // START_FRACTION_DIVISOR))


def calculate_dynamic_load(
    elapsed: float,
    total: float,
    max_workers: int,
    max_batch_size: int
) -> RampState:
    """Compute the current load for a linearly increasing curve.

    Parameters
    - elapsed: Seconds since the phase started (negative is treated as 0)
    - total: Phase duration in seconds, must be positive
    - max_workers / max_batch_size: Full-intensity values, at least 1

    Returns ``(max_workers, max_batch_size)`` exactly once ``elapsed >= total``.

    The start is ``max(floor, maximum // 10)`` capped at the maximum, so for a
    ``max_batch_size`` below 100 the batch starts at, and stays at, the maximum
    (e.g. ``max_batch_size=50`` gives 50 at t=0, not 100).
    """
    if total <= 0:
        raise ValueError(f"total must be positive, got {total}")
    if max_workers < 1 or max_batch_size < 1:
        raise ValueError("max_workers and max_batch_size must be >= 1")

    if elapsed >= total:
        return RampState(max_workers, max_batch_size)

    progress = min(max(elapsed / total, 0.0), 1.0)

    start_workers = _start_value(max_workers, MIN_START_WORKERS)
    start_batch = _start_value(max_batch_size, MIN_START_BATCH_SIZE)

    current_workers = start_workers + int((max_workers - start_workers) * progress)
    current_batch = start_batch + int((max_batch_size - start_batch) * progress)

    return RampState(current_workers, current_batch)
