"""Prometheus metrics for load-test runs.

Provides a thin convenience wrapper around ``prometheus_client`` so the worker
pool and orchestrator record operations, errors, and phase timings with a
consistent label set.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- Each collector owns its registry so concurrent runs (and tests) never clash
- Counters are thread-safe; workers may record without extra locking
"""

from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest, start_http_server

logger = structlog.get_logger("metrics")


class LoadTestMetrics:
    """Centralized metrics collection for a load-test run.

    Parameters
    - run_name: Logical name of the run, kept for log context
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, run_name: str = "vecload", registry: Optional[CollectorRegistry] = None):
        self.run_name = run_name
        self.registry = registry or CollectorRegistry()

        self.operations = Counter(
            'vecload_operations_total',
            'Units of work completed (vectors inserted or searches issued)',
            ['phase'],
            registry=self.registry
        )

        self.operation_errors = Counter(
            'vecload_operation_errors_total',
            'Failed insert/search calls',
            ['phase'],
            registry=self.registry
        )

        self.phase_duration = Gauge(
            'vecload_phase_duration_seconds',
            'Wall-clock duration of a load phase',
            ['phase'],
            registry=self.registry
        )

        self.phase_throughput = Gauge(
            'vecload_phase_throughput_ops',
            'Completed operations per second for a load phase',
            ['phase'],
            registry=self.registry
        )

        self.step_duration = Gauge(
            'vecload_step_duration_seconds',
            'Duration of setup and teardown steps',
            ['step'],
            registry=self.registry
        )

        self.active_workers = Gauge(
            'vecload_active_workers',
            'Workers currently running in the active phase',
            registry=self.registry
        )

    def record_operations(self, phase: str, count: int) -> None:
        """Record completed units for a phase."""
        self.operations.labels(phase=phase).inc(count)

    def record_error(self, phase: str) -> None:
        """Record one failed operation for a phase."""
        self.operation_errors.labels(phase=phase).inc()

    def record_phase(self, phase: str, duration: float, throughput: float) -> None:
        """Record the final timing of a phase.

        duration is expected in seconds.
        """
        self.phase_duration.labels(phase=phase).set(duration)
        self.phase_throughput.labels(phase=phase).set(throughput)

    def record_step(self, step: str, duration: float) -> None:
        """Record the duration of a setup/teardown step in seconds."""
        self.step_duration.labels(step=step).set(duration)

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:
        """Expose the registry over HTTP for the lifetime of the process."""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info("Metrics exporter started", port=port, run=self.run_name)
