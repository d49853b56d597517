"""Tests for the command-line entry point."""

import json
import socket

import pytest

from vecload import cli

from .conftest import FakeVectorStore


@pytest.fixture
def store(monkeypatch):
    """Route the CLI to an in-memory store."""
    fake = FakeVectorStore()
    monkeypatch.setattr(cli, "create_vector_store_from_config", lambda config: fake)
    return fake


def test_parser_reads_flags():
    """Flags parse into typed values; unset flags stay None."""
    args = cli.build_parser().parse_args(
        ["--milvus-addr", "10.0.0.1:19530", "--duration", "2m", "--pressure", "high", "--ramp-up"]
    )
    assert args.milvus_addr == "10.0.0.1:19530"
    assert args.duration == 120.0
    assert args.pressure == "high"
    assert args.ramp_up is True
    assert args.real_time is None
    assert args.workers is None


@pytest.mark.parametrize("value", ["later", "0s", "-1m"])
def test_parser_rejects_bad_duration(value, capsys):
    """Invalid durations are usage errors."""
    with pytest.raises(SystemExit) as exc_info:
        cli.build_parser().parse_args(["--duration", value])
    assert exc_info.value.code == 2


def test_help_lists_pressure_levels(capsys):
    """The help text describes the levels and examples."""
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["-h"])
    out = capsys.readouterr().out
    assert "extreme" in out
    assert "100 workers, 10000 vectors/batch" in out
    assert "--ramp-up" in out


def test_successful_run_exits_zero(store, capsys, tmp_path):
    """A clean run prints the summary, writes JSON and returns 0."""
    output = tmp_path / "report.json"
    code = cli.main([
        "--duration", "200ms",
        "--pressure", "low",
        "--batch-size", "10",
        "--output", str(output),
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert ">> Starting Milvus Load Test: LOW intensity for 200ms <<" in out
    assert "LOAD TEST PERFORMANCE SUMMARY" in out
    assert json.loads(output.read_text())["totals"]["vectors_inserted"] == store.vectors_inserted
    assert store.closed


def test_unknown_pressure_runs_with_default(store, capsys):
    """An unknown level is not an error."""
    code = cli.main(["--duration", "100ms", "--pressure", "turbo", "--workers", "2", "--batch-size", "5"])

    assert code == 0
    assert "MEDIUM (default)" in capsys.readouterr().out


def test_fatal_step_exits_one(monkeypatch, capsys):
    """A failing setup step prints the error and returns 1."""
    fake = FakeVectorStore(fail_on={"connect"})
    monkeypatch.setattr(cli, "create_vector_store_from_config", lambda config: fake)

    code = cli.main(["--duration", "100ms", "--pressure", "low"])

    assert code == 1
    captured = capsys.readouterr()
    assert "connect failed" in captured.err
    assert "LOAD TEST PERFORMANCE SUMMARY" not in captured.out


@pytest.mark.parametrize(
    "argv",
    [
        ["--workers", "0"],
        ["--batch-size", "-3"],
        ["--log-level", "LOUD"],
    ],
)
def test_configuration_errors_exit_two(store, argv, capsys):
    """Rejected configuration returns 2 before anything connects."""
    code = cli.main(["--duration", "100ms"] + argv)

    assert code == 2
    assert "Configuration error" in capsys.readouterr().err
    assert store.calls == []


def test_missing_output_directory_exits_two(store, capsys, tmp_path):
    """An output path that cannot be written is rejected before connecting."""
    code = cli.main(["--duration", "100ms", "--output", str(tmp_path / "missing" / "r.json")])

    assert code == 2
    assert "output_path" in capsys.readouterr().err
    assert store.calls == []


def test_report_write_failure_exits_one(store, monkeypatch, capsys, tmp_path):
    """A report that fails to write after the run is reported, not raised."""
    def fail(report, path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(cli, "save_report", fail)
    code = cli.main(["--duration", "100ms", "--pressure", "low", "--output", str(tmp_path / "r.json")])

    assert code == 1
    captured = capsys.readouterr()
    assert "LOAD TEST PERFORMANCE SUMMARY" in captured.out
    assert "could not write report" in captured.err


def test_busy_metrics_port_exits_two(store, capsys):
    """A metrics port already in use is a configuration error."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("0.0.0.0", 0))
        listener.listen(1)
        port = listener.getsockname()[1]

        code = cli.main(["--duration", "100ms", "--metrics-port", str(port)])

    assert code == 2
    assert "Configuration error" in capsys.readouterr().err
    assert store.calls == []
