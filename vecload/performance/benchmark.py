"""Phase orchestrator for vector-store load tests.

Runs one test end to end, strictly in this order:

    connect -> ensure_clean_collection -> create_collection -> insert_phase ->
    flush -> create_index -> load_collection -> search_phase -> cleanup -> report

Setup and teardown steps are fatal: any ``VectorStoreError`` raised there
becomes a ``FatalStepError`` and the run stops without a report. The two load
phases tolerate individual operation failures (see ``load_tester``).
"""

import time
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np
import structlog

from vecload.common.config import LoadTestConfig
from vecload.common.errors import FatalStepError, LoadTestError
from vecload.common.metrics import LoadTestMetrics
from vecload.vector_store.base import VectorStore, VectorStoreError

from .load_tester import LoadTester, Operation, OperationKind, PhaseResult, PhaseSpec
from .profiler import SystemProfiler
from .profiles import PressureProfile, resolve_profile
from .report import LoadTestReport, build_report
from .vectors import generate_vectors

logger = structlog.get_logger("benchmark")


class RunState(Enum):
    """Stages of a run, in execution order."""
    CONNECT = "connect"
    ENSURE_CLEAN_COLLECTION = "ensure_clean_collection"
    CREATE_COLLECTION = "create_collection"
    INSERT_PHASE = "insert_phase"
    FLUSH = "flush"
    CREATE_INDEX = "create_index"
    LOAD_COLLECTION = "load_collection"
    SEARCH_PHASE = "search_phase"
    CLEANUP = "cleanup"
    REPORT = "report"


RUN_ORDER = tuple(RunState)


class LoadTestBenchmark:
    """Drives one load test against a vector store.

    Parameters
    - config: Run configuration
    - store: Target store; the benchmark connects and closes it
    - metrics: Optional Prometheus collector (a private one is created otherwise)
    - load_tester: Optional pre-built worker pool runner
    - clock: Monotonic time source used for step timings
    """

    def __init__(
        self,
        config: LoadTestConfig,
        store: VectorStore,
        metrics: Optional[LoadTestMetrics] = None,
        load_tester: Optional[LoadTester] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.store = store
        self.profile: PressureProfile = resolve_profile(config.pressure, config.workers, config.batch_size)
        self.metrics = metrics or LoadTestMetrics()
        self.clock = clock
        self.load_tester = load_tester or LoadTester(
            seed=config.seed,
            metrics=self.metrics,
            real_time=config.real_time,
            real_time_interval=config.real_time_interval_seconds,
            clock=clock,
        )
        self.system_profiler = SystemProfiler(interval=1.0) if config.system_stats else None

        self.state: Optional[RunState] = None
        self.completed: List[RunState] = []
        self.step_timings: Dict[str, float] = {}
        self.phase_results: Dict[str, PhaseResult] = {}
        self.report: Optional[LoadTestReport] = None

    def run(self) -> LoadTestReport:
        """Run every stage in order and return the report.

        Raises ``FatalStepError`` if a setup or teardown step fails; in that
        case no report is produced and later stages never start.
        """
        config = self.config
        name = config.collection_name

        logger.info(
            "Starting load test",
            milvus_addr=config.milvus_addr,
            pressure=self.profile.label,
            workers=self.profile.workers,
            batch_size=self.profile.batch_size,
            duration_seconds=config.duration_seconds,
            ramp_up=config.ramp_up,
        )

        started = self.clock()
        if self.system_profiler:
            self.system_profiler.start_profiling()

        try:
            self._step(RunState.CONNECT, self.store.connect)
            self._step(RunState.ENSURE_CLEAN_COLLECTION, self._ensure_clean_collection)
            self._step(RunState.CREATE_COLLECTION, lambda: self.store.create_collection(name, config.embedding_dim))

            self._phase(RunState.INSERT_PHASE, self.insert_phase_spec(), self._insert_unit)

            self._step(RunState.FLUSH, lambda: self.store.flush(name))
            self._step(
                RunState.CREATE_INDEX,
                lambda: self.store.create_index(name, config.embedding_field, config.index_params),
            )
            self._step(RunState.LOAD_COLLECTION, lambda: self.store.load_collection(name))

            self._phase(RunState.SEARCH_PHASE, self.search_phase_spec(), self._search_unit)

            self._step(RunState.CLEANUP, lambda: self.store.drop_collection(name))
        finally:
            self.store.close()
            if self.system_profiler:
                self.system_profiler.stop_profiling()

        self._advance(RunState.REPORT)
        self.report = build_report(
            config=config,
            profile=self.profile,
            phases=self.phase_results,
            step_timings=self.step_timings,
            total_elapsed_seconds=self.clock() - started,
            system_stats=self.system_profiler.get_summary_stats() if self.system_profiler else None,
        )
        self.completed.append(RunState.REPORT)

        logger.info(
            "Load test completed",
            vectors_inserted=self.report.vectors_inserted,
            searches_performed=self.report.searches_performed,
            errors=self.report.total_errors,
            total_elapsed_seconds=round(self.report.total_elapsed_seconds, 3),
        )
        return self.report

    def insert_phase_spec(self) -> PhaseSpec:
        return PhaseSpec(
            name="insert",
            duration=self.config.duration_seconds,
            operation_kind=OperationKind.INSERT,
            workers=self.profile.workers,
            batch_size=self.profile.batch_size,
            ramp_up=self.config.ramp_up,
            index=0,
        )

    def search_phase_spec(self) -> PhaseSpec:
        # One query vector per search call; the search phase never ramps.
        return PhaseSpec(
            name="search",
            duration=self.config.search_duration_seconds,
            operation_kind=OperationKind.SEARCH,
            workers=self.profile.workers,
            batch_size=1,
            ramp_up=False,
            index=1,
        )

    def _advance(self, state: RunState) -> None:
        if self.state is not None and RUN_ORDER.index(state) <= RUN_ORDER.index(self.state):
            raise LoadTestError(f"Cannot move from {self.state.value} back to {state.value}")
        self.state = state

    def _step(self, state: RunState, action: Callable[[], None]) -> None:
        """Run a fatal setup/teardown step and record its duration."""
        self._advance(state)
        logger.info("Step starting", step=state.value)

        step_start = self.clock()
        try:
            action()
        except VectorStoreError as e:
            logger.error("Step failed, aborting run", step=state.value, error=str(e))
            raise FatalStepError(state.value, e) from e
        duration = self.clock() - step_start

        self.step_timings[state.value] = duration
        self.metrics.record_step(state.value, duration)
        self.completed.append(state)
        logger.info("Step completed", step=state.value, duration_seconds=round(duration, 3))

    def _phase(self, state: RunState, spec: PhaseSpec, operation: Operation) -> None:
        self._advance(state)
        self.phase_results[spec.name] = self.load_tester.run_phase(spec, operation)
        self.completed.append(state)

    def _ensure_clean_collection(self) -> None:
        name = self.config.collection_name
        if self.store.has_collection(name):
            logger.info("Collection already exists, dropping it", collection=name)
            self.store.drop_collection(name)
        else:
            logger.info("Collection does not exist, proceeding", collection=name)

    def _insert_unit(self, rng: np.random.Generator, batch_size: int) -> int:
        vectors = generate_vectors(rng, batch_size, self.config.embedding_dim)
        self.store.insert(self.config.collection_name, vectors)
        return batch_size

    def _search_unit(self, rng: np.random.Generator, batch_size: int) -> int:
        queries = generate_vectors(rng, batch_size, self.config.embedding_dim)
        self.store.search(
            self.config.collection_name,
            queries,
            self.config.search_top_k,
            self.config.search_params,
        )
        return batch_size
