"""Race-free accumulation of phase metrics.

``MetricsAggregator`` is the only state shared by the workers of a phase.
Increments are serialized by a mutex; reads take no lock and may be slightly
stale, which is fine because the counters only ever grow. Since merging is a
plain sum, the order in which workers report never matters.

``RealTimeReporter`` samples an aggregator from a background thread at a fixed
wall-clock interval so live throughput can be shown without slowing workers.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional

import structlog

from .ramp import RampState

logger = structlog.get_logger("aggregator")


def compute_throughput(total_ops: int, elapsed_seconds: float) -> float:
    """Operations per second; ``0.0`` when no time has elapsed."""
    if elapsed_seconds <= 0:
        return 0.0
    return total_ops / elapsed_seconds


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time view of a phase's aggregate metrics."""
    phase: str
    total_ops: int
    errors: int
    elapsed_seconds: float
    throughput: float
    batch_size: Optional[int] = None
    workers: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MetricsAggregator:
    """Thread-safe counters for one phase.

    Parameters
    - phase: Phase name used in snapshots
    - clock: Monotonic time source (injectable for tests)
    """

    def __init__(self, phase: str, clock: Callable[[], float] = time.monotonic):
        self.phase = phase
        self._clock = clock
        self._lock = threading.Lock()
        self._total_ops = 0
        self._errors = 0
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    def start(self) -> None:
        """Mark the beginning of the phase."""
        self._started_at = self._clock()
        self._stopped_at = None

    def stop(self) -> float:
        """Mark the end of the phase and return its elapsed seconds."""
        self._stopped_at = self._clock()
        return self.elapsed_seconds

    def add(self, ops: int) -> int:
        """Count ``ops`` completed units; returns the new total."""
        if ops < 0:
            raise ValueError(f"ops must be non-negative, got {ops}")
        with self._lock:
            self._total_ops += ops
            return self._total_ops

    def record_error(self) -> None:
        with self._lock:
            self._errors += 1

    @property
    def total_ops(self) -> int:
        return self._total_ops

    @property
    def errors(self) -> int:
        return self._errors

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return max(0.0, end - self._started_at)

    @property
    def throughput(self) -> float:
        return compute_throughput(self._total_ops, self.elapsed_seconds)

    def snapshot(self, load: Optional[RampState] = None) -> MetricsSnapshot:
        """Read the current values without blocking writers."""
        total_ops = self._total_ops
        elapsed = self.elapsed_seconds
        return MetricsSnapshot(
            phase=self.phase,
            total_ops=total_ops,
            errors=self._errors,
            elapsed_seconds=elapsed,
            throughput=compute_throughput(total_ops, elapsed),
            batch_size=load.batch_size if load else None,
            workers=load.workers if load else None,
        )


class RealTimeReporter:
    """Periodically emits throughput snapshots for a running phase.

    Spawns a daemon thread that wakes every ``interval`` seconds, reads the
    aggregator, and emits a snapshot whenever throughput changed since the
    last emission. A bounded history is kept for the final report.
    """

    def __init__(
        self,
        aggregator: MetricsAggregator,
        interval: float = 1.0,
        load_fn: Optional[Callable[[float], RampState]] = None,
        emit: Optional[Callable[[MetricsSnapshot], None]] = None,
        max_snapshots: int = 1000,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.aggregator = aggregator
        self.interval = interval
        self.load_fn = load_fn
        self.emit = emit or self._log_snapshot
        self.snapshots: deque = deque(maxlen=max_snapshots)
        self._last_throughput: Optional[float] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the reporting thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._report_loop,
            name=f"reporter-{self.aggregator.phase}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the reporting thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 5)
            self._thread = None

    def _report_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.tick()

    def tick(self) -> Optional[MetricsSnapshot]:
        """Take one sample; returns it if it was emitted."""
        load = None
        if self.load_fn is not None:
            load = self.load_fn(self.aggregator.elapsed_seconds)
        snapshot = self.aggregator.snapshot(load)

        if snapshot.throughput == self._last_throughput:
            return None
        self._last_throughput = snapshot.throughput
        self.snapshots.append(snapshot)
        self.emit(snapshot)
        return snapshot

    @staticmethod
    def _log_snapshot(snapshot: MetricsSnapshot) -> None:
        logger.info(
            "Real-time throughput",
            phase=snapshot.phase,
            elapsed_s=round(snapshot.elapsed_seconds),
            batch_size=snapshot.batch_size,
            effective_workers=snapshot.workers,
            total_ops=snapshot.total_ops,
            errors=snapshot.errors,
            throughput_ops=round(snapshot.throughput, 1),
        )
