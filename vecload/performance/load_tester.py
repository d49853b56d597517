"""Deadline-bound worker pool that drives one load phase.

Each phase runs a fixed number of worker threads. Every worker loops
"size the unit -> call the operation -> record the outcome" until the shared
deadline passes. The deadline is checked at the top of the loop, so a call in
flight when time runs out is allowed to finish.

Failures of a single operation (``VectorStoreError``) are logged, counted, and
skipped; they lower throughput but never stop a worker or the phase.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import structlog

from vecload.common.metrics import LoadTestMetrics
from vecload.vector_store.base import VectorStoreError

from .aggregator import MetricsAggregator, MetricsSnapshot, RealTimeReporter, compute_throughput
from .ramp import RampState, calculate_dynamic_load
from .vectors import worker_rng

logger = structlog.get_logger("load_tester")

# One unit of work: receives the worker's RNG and the current batch size,
# performs the call, and returns the number of units completed.
Operation = Callable[[np.random.Generator, int], int]


class OperationKind(Enum):
    """Kind of work a phase performs."""
    INSERT = "insert"
    SEARCH = "search"


@dataclass(frozen=True)
class PhaseSpec:
    """Static description of a load phase."""
    name: str
    duration: float
    operation_kind: OperationKind
    workers: int
    batch_size: int
    ramp_up: bool = False
    index: int = 0

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"Phase {self.name}: duration must be positive")
        if self.workers < 1 or self.batch_size < 1:
            raise ValueError(f"Phase {self.name}: workers and batch_size must be >= 1")

    def load_at(self, elapsed: float) -> RampState:
        """Effective load ``elapsed`` seconds into the phase."""
        if not self.ramp_up:
            return RampState(self.workers, self.batch_size)
        return calculate_dynamic_load(elapsed, self.duration, self.workers, self.batch_size)


@dataclass
class WorkerOutcome:
    """Per-worker tally, owned by its worker until the pool joins."""
    worker_id: int
    ops_completed: int = 0
    errors: int = 0
    iterations: int = 0

    @property
    def successful_iterations(self) -> int:
        return self.iterations - self.errors


@dataclass
class WorkerTask:
    """Everything a worker needs, passed explicitly at spawn time."""
    worker_id: int
    phase: PhaseSpec
    rng: np.random.Generator
    aggregator: MetricsAggregator


@dataclass
class PhaseResult:
    """Merged outcome of a finished phase."""
    phase: PhaseSpec
    total_ops: int
    errors: int
    elapsed_seconds: float
    outcomes: List[WorkerOutcome] = field(default_factory=list)
    snapshots: List[MetricsSnapshot] = field(default_factory=list)

    @property
    def throughput(self) -> float:
        return compute_throughput(self.total_ops, self.elapsed_seconds)

    @property
    def iterations(self) -> int:
        return sum(outcome.iterations for outcome in self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.phase.name,
            "operation": self.phase.operation_kind.value,
            "configured_duration_seconds": self.phase.duration,
            "elapsed_seconds": self.elapsed_seconds,
            "workers": self.phase.workers,
            "batch_size": self.phase.batch_size,
            "ramp_up": self.phase.ramp_up,
            "total_ops": self.total_ops,
            "errors": self.errors,
            "iterations": self.iterations,
            "throughput_ops": self.throughput,
            "per_worker": [
                {
                    "worker_id": outcome.worker_id,
                    "ops_completed": outcome.ops_completed,
                    "errors": outcome.errors,
                    "iterations": outcome.iterations,
                }
                for outcome in self.outcomes
            ],
        }


class LoadTester:
    """Runs phases against an abstract operation.

    Parameters
    - seed: Run seed; worker RNGs derive from ``(seed, phase.index, worker_id)``
    - metrics: Optional Prometheus collector fed as operations complete
    - real_time: Emit periodic throughput snapshots while a phase runs
    - real_time_interval: Seconds between snapshots
    - clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        seed: int = 42,
        metrics: Optional[LoadTestMetrics] = None,
        real_time: bool = False,
        real_time_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.seed = seed
        self.metrics = metrics
        self.real_time = real_time
        self.real_time_interval = real_time_interval
        self.clock = clock

    def run_phase(self, phase: PhaseSpec, operation: Operation) -> PhaseResult:
        """Run ``phase.workers`` workers until ``phase.duration`` elapses.

        Blocks until every worker has returned, then reports the merged
        totals and the wall-clock time the phase actually took.
        """
        logger.info(
            "Starting phase",
            phase=phase.name,
            workers=phase.workers,
            batch_size=phase.batch_size,
            duration_seconds=phase.duration,
            ramp_up=phase.ramp_up,
        )

        aggregator = MetricsAggregator(phase.name, clock=self.clock)
        reporter = None
        if self.real_time:
            reporter = RealTimeReporter(
                aggregator,
                interval=self.real_time_interval,
                load_fn=phase.load_at,
            )

        tasks = [
            WorkerTask(
                worker_id=worker_id,
                phase=phase,
                rng=worker_rng(self.seed, phase.index, worker_id),
                aggregator=aggregator,
            )
            for worker_id in range(phase.workers)
        ]

        aggregator.start()
        deadline = self.clock() + phase.duration
        if reporter:
            reporter.start()

        try:
            with ThreadPoolExecutor(
                max_workers=phase.workers,
                thread_name_prefix=f"{phase.name}-worker",
            ) as executor:
                futures = [
                    executor.submit(self._run_worker, task, operation, deadline)
                    for task in tasks
                ]
                outcomes = [future.result() for future in futures]
        finally:
            elapsed = aggregator.stop()
            if reporter:
                reporter.stop()

        result = PhaseResult(
            phase=phase,
            total_ops=aggregator.total_ops,
            errors=aggregator.errors,
            elapsed_seconds=elapsed,
            outcomes=outcomes,
            snapshots=list(reporter.snapshots) if reporter else [],
        )

        if self.metrics:
            self.metrics.record_phase(phase.name, result.elapsed_seconds, result.throughput)

        logger.info(
            "Phase completed",
            phase=phase.name,
            elapsed_seconds=round(result.elapsed_seconds, 3),
            total_ops=result.total_ops,
            errors=result.errors,
            throughput_ops=round(result.throughput, 2),
        )
        return result

    def _run_worker(self, task: WorkerTask, operation: Operation, deadline: float) -> WorkerOutcome:
        """Worker loop; never lets an operational failure escape."""
        phase = task.phase
        log = logger.bind(phase=phase.name, worker=task.worker_id)
        outcome = WorkerOutcome(worker_id=task.worker_id)
        log.debug("Worker starting")

        if self.metrics:
            self.metrics.active_workers.inc()
        try:
            while self.clock() < deadline:
                load = phase.load_at(task.aggregator.elapsed_seconds)
                iteration = outcome.iterations
                outcome.iterations += 1

                try:
                    units = operation(task.rng, load.batch_size)
                except VectorStoreError as e:
                    outcome.errors += 1
                    task.aggregator.record_error()
                    if self.metrics:
                        self.metrics.record_error(phase.name)
                    log.warning(
                        "Operation failed",
                        iteration=iteration,
                        batch_size=load.batch_size,
                        error=str(e),
                    )
                    continue

                task.aggregator.add(units)
                outcome.ops_completed += units
                if self.metrics:
                    self.metrics.record_operations(phase.name, units)
        finally:
            if self.metrics:
                self.metrics.active_workers.dec()

        log.info(
            "Worker finished",
            iterations=outcome.iterations,
            ops_completed=outcome.ops_completed,
            errors=outcome.errors,
        )
        return outcome
