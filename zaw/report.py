"""Backup summary report: dataset table plus run statistics."""
from __future__ import annotations

import os
from datetime import datetime
from typing import TYPE_CHECKING

from zaw.models import RunStatus

if TYPE_CHECKING:
    from zaw.models import Inventory, RunStatistics, Snapshot
    from zaw.runlog import RunLog

# ANSI color codes (respect NO_COLOR convention: https://no-color.org)
if os.environ.get("NO_COLOR") is not None:
    GREEN = RED = YELLOW = RESET = ""
else:
    GREEN = "\033[32m"
    RED = "\033[31m"
    YELLOW = "\033[33m"
    RESET = "\033[0m"

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATASET_WIDTHS = (32, 16, 32, 15)
DATASET_HEADERS = ("Dataset", "Total Snaps", "Last Snapshot", "Space Used")
STATS_WIDTHS = (24, 15)


def format_duration(seconds: float) -> str:
    """42 -> '42s', 125 -> '2m 5s'"""
    seconds = int(seconds)
    minutes, remaining = divmod(seconds, 60)
    if minutes == 0:
        return f"{seconds}s"
    return f"{minutes}m {remaining}s"


def truncate(value: str, width: int) -> str:
    """Fit value into a column of the given width, marking cuts with '...'."""
    if len(value) > width - 4:
        return value[:width - 7] + "..."
    return value


def _border(widths: tuple[int, ...]) -> str:
    return "+" + "+".join("-" * w for w in widths) + "+"


def _row(values, widths: tuple[int, ...]) -> str:
    return "|" + "|".join(f" {str(v):<{w - 2}} " for v, w in zip(values, widths)) + "|"


def dataset_table(inventory: "Inventory") -> list[str]:
    w_name, _, w_snap, _ = DATASET_WIDTHS
    lines = [
        _border(DATASET_WIDTHS),
        _row(DATASET_HEADERS, DATASET_WIDTHS),
        _border(DATASET_WIDTHS),
    ]
    for ds in inventory.datasets:
        lines.append(_row(
            (
                truncate(ds.name, w_name),
                ds.snapshot_count,
                truncate(ds.last_snapshot or "N/A", w_snap),
                ds.space_used,
            ),
            DATASET_WIDTHS,
        ))
    lines.append(_border(DATASET_WIDTHS))
    return lines


def stats_table(stats: "RunStatistics") -> list[str]:
    rows = [
        ("Total Datasets", stats.total_datasets),
        ("Total Snapshots", stats.total_snapshots),
        ("Snapshots Created", stats.snapshots_created),
        ("Snapshots Deleted", stats.snapshots_deleted),
        ("Operation Duration", format_duration(stats.duration)),
    ]
    lines = [
        _border(STATS_WIDTHS),
        _row(("Metric", "Value"), STATS_WIDTHS),
        _border(STATS_WIDTHS),
    ]
    lines.extend(_row(r, STATS_WIDTHS) for r in rows)
    lines.append(_border(STATS_WIDTHS))
    return lines


def render_report(
    pool: str,
    status: RunStatus,
    inventory: "Inventory",
    stats: "RunStatistics",
    log_path: str = "",
    now: datetime | None = None,
    skipped_by: "Snapshot | None" = None,
) -> str:
    """Render the whole report once; the result is what both sinks get."""
    stamp = (now or datetime.now()).strftime(TIME_FORMAT)
    lines = [
        "",
        f"===== BACKUP SUMMARY ({stamp}) =====",
        f"POOL: {pool}  |  Status: {status.label}  |  Last backup: {stamp}",
    ]
    if log_path:
        lines.append(f"Log file: {log_path}")
    lines.append("")

    if status is RunStatus.SKIPPED:
        lines.append("SKIPPED DUE TO RECENT SNAPSHOT:")
        if skipped_by is not None:
            created = datetime.fromtimestamp(skipped_by.creation).strftime(TIME_FORMAT)
            lines.append(f"  Recent snapshot: {skipped_by.full_name}")
            lines.append(f"  Created at: {created}")
    else:
        lines.append("DATASETS SUMMARY:")
        lines.extend(dataset_table(inventory))

    lines.append("")
    lines.append("STATISTICS:")
    lines.extend(stats_table(stats))
    return "\n".join(lines) + "\n"


def write_report(text: str, run_log: "RunLog") -> None:
    """Write an already rendered report to the console and the run's log file."""
    run_log.tee(text)


def status_color(status: RunStatus) -> str:
    return {
        RunStatus.COMPLETED: GREEN,
        RunStatus.FAILED: RED,
        RunStatus.SKIPPED: YELLOW,
    }[status]
