"""Resource profiling of the harness process itself.

A load generator that saturates its own CPU reports the client's limit, not
the server's. ``SystemProfiler`` samples this process with ``psutil`` on a
background thread so the report can show whether that happened.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import psutil
import structlog

logger = structlog.get_logger("profiler")


@dataclass
class ResourceSample:
    """One sample of process resource usage."""
    timestamp: float
    cpu_percent: float
    memory_mb: float
    threads: int


class SystemProfiler:
    """Profiles process resource usage.

    Spawns a lightweight background thread that samples the current process
    and records a bounded history for summary statistics.
    """

    def __init__(self, interval: float = 1.0, max_samples: int = 3600):
        self.interval = interval
        self.samples: deque = deque(maxlen=max_samples)
        self.process = psutil.Process()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start_profiling(self) -> None:
        """Start continuous sampling."""
        if self._thread is not None:
            return

        # Prime the counter; the first cpu_percent() call always returns 0.0.
        self.process.cpu_percent()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._profile_loop, name="system-profiler", daemon=True)
        self._thread.start()

        logger.info("System profiling started", interval=self.interval)

    def stop_profiling(self) -> None:
        """Stop sampling and wait for the thread to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 5)
            self._thread = None

        logger.info("System profiling stopped", samples_collected=len(self.samples))

    def _profile_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.samples.append(self.collect_sample())
            except psutil.Error as e:
                logger.warning("Error collecting process metrics", error=str(e))

    def collect_sample(self) -> ResourceSample:
        """Collect current process metrics."""
        with self.process.oneshot():
            return ResourceSample(
                timestamp=time.time(),
                cpu_percent=self.process.cpu_percent(),
                memory_mb=self.process.memory_info().rss / 1024 / 1024,
                threads=self.process.num_threads(),
            )

    def get_summary_stats(self) -> Dict[str, Any]:
        """Mean/max summary of the collected samples."""
        if not self.samples:
            return {}

        samples = list(self.samples)

        def calc_stats(values):
            return {
                "mean": float(np.mean(values)),
                "max": float(np.max(values)),
            }

        return {
            "sample_count": len(samples),
            "duration_seconds": samples[-1].timestamp - samples[0].timestamp,
            "cpu_percent": calc_stats([s.cpu_percent for s in samples]),
            "memory_mb": calc_stats([s.memory_mb for s in samples]),
            "threads": calc_stats([s.threads for s in samples]),
        }
