"""Final report assembly and rendering.

``build_report`` folds the configuration echo, per-phase results, and step
timings into an immutable ``LoadTestReport``. Rendering is kept separate:
``render_summary`` produces the human-readable table, ``save_report`` writes
the structured JSON form.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import structlog

from vecload.common.config import LoadTestConfig, format_duration

from .load_tester import OperationKind, PhaseResult
from .profiles import PressureProfile
from .vectors import vectors_size_mb

logger = structlog.get_logger("report")

TABLE_WIDTH = 80
LABEL_WIDTH = 25
VALUE_WIDTH = 50


@dataclass(frozen=True)
class LoadTestReport:
    """Read-only summary of a completed run."""
    config: Dict[str, Any]
    profile: PressureProfile
    phases: Dict[str, PhaseResult]
    step_timings: Dict[str, float]
    total_elapsed_seconds: float
    embedding_dim: int
    system_stats: Dict[str, Any] = field(default_factory=dict)
    generated_at: float = field(default_factory=time.time)

    def phases_of(self, kind: OperationKind) -> List[PhaseResult]:
        return [p for p in self.phases.values() if p.phase.operation_kind == kind]

    @property
    def vectors_inserted(self) -> int:
        return sum(p.total_ops for p in self.phases_of(OperationKind.INSERT))

    @property
    def searches_performed(self) -> int:
        return sum(p.total_ops for p in self.phases_of(OperationKind.SEARCH))

    @property
    def total_errors(self) -> int:
        return sum(p.errors for p in self.phases.values())

    @property
    def data_size_mb(self) -> float:
        return vectors_size_mb(self.vectors_inserted, self.embedding_dim)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "config": dict(self.config),
            "profile": {
                "level": self.profile.level.value,
                "label": self.profile.label,
                "workers": self.profile.workers,
                "batch_size": self.profile.batch_size,
            },
            "totals": {
                "vectors_inserted": self.vectors_inserted,
                "searches_performed": self.searches_performed,
                "errors": self.total_errors,
                "data_size_mb": self.data_size_mb,
                "total_elapsed_seconds": self.total_elapsed_seconds,
            },
            "phases": {name: result.to_dict() for name, result in self.phases.items()},
            "step_timings": dict(self.step_timings),
            "system_stats": dict(self.system_stats),
        }


def config_echo(config: LoadTestConfig, profile: PressureProfile) -> Dict[str, Any]:
    """The configuration fields worth repeating in a report."""
    return {
        "milvus_addr": config.milvus_addr,
        "duration_seconds": config.duration_seconds,
        "search_duration_seconds": config.search_duration_seconds,
        "pressure": profile.label,
        "workers": profile.workers,
        "batch_size": profile.batch_size,
        "ramp_up": config.ramp_up,
        "real_time": config.real_time,
        "seed": config.seed,
        "collection_name": config.collection_name,
        "embedding_dim": config.embedding_dim,
        "index_type": config.index_type,
        "metric_type": config.metric_type,
    }


def build_report(
    config: LoadTestConfig,
    profile: PressureProfile,
    phases: Mapping[str, PhaseResult],
    step_timings: Mapping[str, float],
    total_elapsed_seconds: float,
    system_stats: Optional[Dict[str, Any]] = None,
) -> LoadTestReport:
    """Assemble the final report once all phases are done."""
    return LoadTestReport(
        config=config_echo(config, profile),
        profile=profile,
        phases=dict(phases),
        step_timings=dict(step_timings),
        total_elapsed_seconds=total_elapsed_seconds,
        embedding_dim=config.embedding_dim,
        system_stats=dict(system_stats or {}),
    )


def save_report(report: LoadTestReport, output_path: str) -> None:
    """Write the report as JSON."""
    with open(output_path, "w") as f:
        json.dump(report.to_dict(), f, indent=2, default=str)

    logger.info("Report saved", path=output_path)


def _row(label: str, value: Any) -> str:
    return f"│ {label:<{LABEL_WIDTH}} │ {str(value):<{VALUE_WIDTH}} │"


def _section(title: str, rows: List[tuple]) -> List[str]:
    separator = "├" + "─" * (LABEL_WIDTH + 2) + "┼" + "─" * (VALUE_WIDTH + 2) + "┤"
    lines = [_row(title, "Value"), separator]
    lines.extend(_row(label, value) for label, value in rows)
    lines.append(separator)
    return lines


def render_summary(report: LoadTestReport) -> str:
    """Render the human-readable performance summary table."""
    insert = next(iter(report.phases_of(OperationKind.INSERT)), None)
    search = next(iter(report.phases_of(OperationKind.SEARCH)), None)
    steps = report.step_timings

    def step(name: str) -> str:
        return format_duration(steps[name]) if name in steps else "-"

    configuration = [
        ("Test Duration", format_duration(report.config["duration_seconds"])),
        ("Pressure Level", report.profile.label),
        ("Milvus Address", report.config["milvus_addr"]),
        ("Concurrent Workers", report.profile.workers),
        ("Batch Size", report.profile.batch_size),
        ("Ramp-Up", "enabled" if report.config["ramp_up"] else "disabled"),
        ("Vectors Inserted", report.vectors_inserted),
        ("Data Size Inserted", f"{report.data_size_mb:.2f} MB"),
        ("Searches Performed", report.searches_performed),
        ("Failed Operations", report.total_errors),
    ]

    performance = [
        ("Total Elapsed Time", format_duration(report.total_elapsed_seconds)),
        ("Connection Time", step("connect")),
        ("Data Insertion Time", format_duration(insert.elapsed_seconds) if insert else "-"),
        ("Insert Throughput", f"{insert.throughput:.2f}" if insert else "-"),
        ("Flush Time", step("flush")),
        ("Index Creation Time", step("create_index")),
        ("Collection Load Time", step("load_collection")),
        ("Search Execution Time", format_duration(search.elapsed_seconds) if search else "-"),
        ("Search Throughput", f"{search.throughput:.2f}" if search else "-"),
        ("Cleanup Time", step("cleanup")),
    ]

    lines = [
        "",
        "=" * TABLE_WIDTH,
        "LOAD TEST PERFORMANCE SUMMARY".center(TABLE_WIDTH),
        "=" * TABLE_WIDTH,
    ]
    lines.extend(_section("Configuration", configuration))
    lines.extend(_section("Performance Metrics", performance))

    if report.system_stats:
        cpu = report.system_stats.get("cpu_percent", {})
        memory = report.system_stats.get("memory_mb", {})
        lines.extend(_section("Harness Process", [
            ("CPU % (mean / max)", f"{cpu.get('mean', 0):.1f} / {cpu.get('max', 0):.1f}"),
            ("Memory MB (mean / max)", f"{memory.get('mean', 0):.1f} / {memory.get('max', 0):.1f}"),
        ]))

    lines.append("=" * TABLE_WIDTH)
    return "\n".join(lines)
