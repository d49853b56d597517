"""Command-line entry point for vecload.

This is the single place that decides the process exit status:
- 0 after a clean run and the printed report
- 1 when a setup/teardown step fails or the JSON report cannot be written
  (the error is printed)
- 2 when the configuration is rejected (including an unusable output path
  or metrics port), before any phase starts
"""

import argparse
import sys
from typing import List, Optional

import structlog

from vecload import __version__
from vecload.common.config import format_duration, load_config, parse_duration
from vecload.common.errors import ConfigurationError, FatalStepError
from vecload.common.logging import configure_logging
from vecload.common.metrics import LoadTestMetrics
from vecload.performance.benchmark import LoadTestBenchmark
from vecload.performance.profiles import PRESSURE_PROFILES
from vecload.performance.report import render_summary, save_report
from vecload.vector_store.factory import create_vector_store_from_config

logger = structlog.get_logger("cli")

EXAMPLES = """\
pressure levels:
{levels}

examples:
  # Basic 30-second medium load test
  vecload

  # High load test for 2 minutes
  vecload --duration 2m --pressure high

  # Gradual load increase with real-time monitoring
  vecload --duration 1m --pressure high --ramp-up --real-time

  # Extreme endurance test
  vecload --duration 1h --pressure extreme --real-time

  # Custom Milvus server
  vecload --milvus-addr 192.168.1.100:19530 --duration 5m
"""


def _duration(value: str) -> float:
    try:
        seconds = parse_duration(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e))
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {value!r}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    levels = "\n".join(
        f"  {profile.level.value:<8} {profile.workers} workers, {profile.batch_size} vectors/batch"
        for profile in PRESSURE_PROFILES.values()
    )
    parser = argparse.ArgumentParser(
        prog="vecload",
        description="Milvus load testing tool: timed concurrent insert and search phases.",
        epilog=EXAMPLES.format(levels=levels),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--milvus-addr", help="Milvus server address (default: localhost:19530)")
    parser.add_argument(
        "--duration",
        type=_duration,
        help="Insertion phase duration, e.g. 30s, 2m, 1h (default: 30s); search runs for a quarter of it",
    )
    parser.add_argument("--pressure", help="Load intensity: low, medium, high, extreme (default: medium)")
    parser.add_argument(
        "--ramp-up",
        action="store_true",
        default=None,
        help="Gradually increase load from 10%% to 100%% over the duration",
    )
    parser.add_argument(
        "--real-time",
        action="store_true",
        default=None,
        help="Display real-time throughput metrics during the test",
    )
    parser.add_argument("--workers", type=int, help="Override the profile's worker count")
    parser.add_argument("--batch-size", type=int, help="Override the profile's vectors per insert")
    parser.add_argument("--seed", type=int, help="Seed for generated vectors (default: 42)")
    parser.add_argument("--output", help="Also write the report as JSON to this path")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    parser.add_argument(
        "--system-stats",
        action="store_true",
        default=None,
        help="Sample CPU and memory of this process during the run",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR (default: INFO)")
    parser.add_argument("--log-format", choices=["console", "json"], help="Log output format (default: console)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(
            milvus_addr=args.milvus_addr,
            duration_seconds=args.duration,
            pressure=args.pressure,
            ramp_up=args.ramp_up,
            real_time=args.real_time,
            workers=args.workers,
            batch_size=args.batch_size,
            seed=args.seed,
            output_path=args.output,
            metrics_port=args.metrics_port,
            system_stats=args.system_stats,
            log_level=args.log_level,
            log_format=args.log_format,
        )
        configure_logging("vecload", config.log_level, config.log_format)
        metrics = LoadTestMetrics()
        benchmark = LoadTestBenchmark(config, create_vector_store_from_config(config), metrics=metrics)
        if config.metrics_port:
            metrics.serve(config.metrics_port)
    except (ConfigurationError, ValueError, OSError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    print(
        f">> Starting Milvus Load Test: {benchmark.profile.label} intensity "
        f"for {format_duration(config.duration_seconds)} <<"
    )

    try:
        report = benchmark.run()
    except FatalStepError as e:
        logger.error("Load test aborted", step=e.step, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(render_summary(report))
    if config.output_path:
        try:
            save_report(report, config.output_path)
        except OSError as e:
            logger.error("Could not write report", path=config.output_path, error=str(e))
            print(f"Error: could not write report: {e}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
