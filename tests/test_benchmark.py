"""Tests for the phase orchestrator."""

import pytest

from vecload.common.errors import FatalStepError, LoadTestError
from vecload.performance.benchmark import RUN_ORDER, LoadTestBenchmark, RunState

from .conftest import FakeVectorStore


def test_full_run_visits_every_state_in_order(fast_config, fake_store, metrics):
    """A clean run walks the whole state machine and produces a report."""
    benchmark = LoadTestBenchmark(fast_config, fake_store, metrics=metrics)
    report = benchmark.run()

    assert benchmark.completed == list(RUN_ORDER)
    assert benchmark.state == RunState.REPORT
    assert benchmark.report is report
    assert fake_store.calls == [
        "connect",
        "has_collection",
        "create_collection",
        "flush",
        "create_index",
        "load_collection",
        "drop_collection",
    ]
    assert fake_store.closed


def test_report_totals_match_store(fast_config, fake_store, metrics):
    """Reported insert and search totals equal what the store received."""
    report = LoadTestBenchmark(fast_config, fake_store, metrics=metrics).run()

    assert report.vectors_inserted == fake_store.vectors_inserted
    assert report.vectors_inserted > 0
    assert set(fake_store.inserted_batches) == {10}
    assert report.searches_performed == len(fake_store.search_batches)
    assert set(fake_store.search_batches) == {1}
    assert report.total_errors == 0


def test_search_phase_runs_for_a_quarter_of_insert(fast_config, fake_store):
    """The search phase is configured at a quarter of the insert duration."""
    benchmark = LoadTestBenchmark(fast_config, fake_store)
    benchmark.run()

    insert = benchmark.phase_results["insert"]
    search = benchmark.phase_results["search"]
    assert search.phase.duration == pytest.approx(insert.phase.duration * 0.25)
    assert search.phase.batch_size == 1
    assert not search.phase.ramp_up


def test_existing_collection_is_dropped_first(fast_config, metrics):
    """A leftover collection from an earlier run is dropped before creation."""
    store = FakeVectorStore(existing={fast_config.collection_name})
    LoadTestBenchmark(fast_config, store, metrics=metrics).run()

    assert store.calls[:4] == ["connect", "has_collection", "drop_collection", "create_collection"]


def test_step_timings_recorded(fast_config, fake_store, metrics):
    """Every setup and teardown step has a recorded duration."""
    benchmark = LoadTestBenchmark(fast_config, fake_store, metrics=metrics)
    benchmark.run()

    assert set(benchmark.step_timings) == {
        "connect",
        "ensure_clean_collection",
        "create_collection",
        "flush",
        "create_index",
        "load_collection",
        "cleanup",
    }
    assert 'vecload_step_duration_seconds{step="flush"}' in metrics.get_metrics()


@pytest.mark.parametrize(
    "failing,expected_step",
    [
        ("connect", "connect"),
        ("has_collection", "ensure_clean_collection"),
        ("create_collection", "create_collection"),
        ("flush", "flush"),
        ("create_index", "create_index"),
        ("load_collection", "load_collection"),
        ("drop_collection", "cleanup"),
    ],
)
def test_fatal_step_stops_the_run(fast_config, failing, expected_step):
    """A failing setup or teardown step aborts the run without a report."""
    store = FakeVectorStore(fail_on={failing})
    benchmark = LoadTestBenchmark(fast_config, store)

    with pytest.raises(FatalStepError) as exc_info:
        benchmark.run()

    assert exc_info.value.step == expected_step
    assert benchmark.state == RunState(expected_step)
    assert benchmark.report is None
    assert RunState.REPORT not in benchmark.completed
    assert store.closed


def test_index_failure_never_starts_search(fast_config):
    """Nothing after the failing step runs."""
    store = FakeVectorStore(fail_on={"create_index"})

    with pytest.raises(FatalStepError):
        LoadTestBenchmark(fast_config, store).run()

    assert store.search_batches == []
    assert "load_collection" not in store.calls
    assert store.vectors_inserted > 0


def test_connect_failure_inserts_nothing(fast_config):
    """A refused connection stops the run before any data moves."""
    store = FakeVectorStore(fail_on={"connect"})

    with pytest.raises(FatalStepError) as exc_info:
        LoadTestBenchmark(fast_config, store).run()

    assert store.insert_attempts == 0
    assert "connection refused" in str(exc_info.value)


def test_insert_failures_do_not_abort(fast_config, metrics):
    """Failed inserts are counted and the run still completes."""
    store = FakeVectorStore(fail_every_nth_insert=3)
    report = LoadTestBenchmark(fast_config, store, metrics=metrics).run()

    insert = report.phases["insert"]
    assert insert.errors == store.insert_attempts // 3
    assert report.vectors_inserted == store.vectors_inserted
    assert report.total_errors >= insert.errors


def test_search_failures_do_not_abort(fast_config):
    """Failed searches are counted and the run still completes."""
    store = FakeVectorStore(fail_on={"search"})
    report = LoadTestBenchmark(fast_config, store).run()

    assert report.searches_performed == 0
    assert report.phases["search"].errors > 0
    assert store.calls[-1] == "drop_collection"


def test_states_never_move_backwards(fast_config, fake_store):
    """The state machine refuses to revisit an earlier state."""
    benchmark = LoadTestBenchmark(fast_config, fake_store)
    benchmark._advance(RunState.FLUSH)

    with pytest.raises(LoadTestError):
        benchmark._advance(RunState.INSERT_PHASE)
    with pytest.raises(LoadTestError):
        benchmark._advance(RunState.FLUSH)


def test_ramp_up_applies_to_insert_only(fast_config, fake_store):
    """Ramp-up shapes the insert phase; search stays at one query per call."""
    config = fast_config.model_copy(update={"ramp_up": True})
    benchmark = LoadTestBenchmark(config, fake_store)

    assert benchmark.insert_phase_spec().ramp_up
    assert not benchmark.search_phase_spec().ramp_up
