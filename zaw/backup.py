"""Backup run orchestration: one pool at a time, invoke -> report -> clean logs."""
from __future__ import annotations

import enum
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, TextIO

from zaw import zfs
from zaw.autobackup import run_autobackup
from zaw.executor import ExecutorError
from zaw.inventory import PoolNotFound, collect_inventory
from zaw.models import ParseResult, RunStatistics, RunStatus
from zaw.parser import parse_log_file
from zaw.report import RESET, TIME_FORMAT, render_report, status_color, write_report
from zaw.retention import reconcile_logs
from zaw.runlog import RunLog

if TYPE_CHECKING:
    from zaw.executor import Executor
    from zaw.models import ReconcileResult, Snapshot, WrapperConfig

log = logging.getLogger(__name__)


class Stage(enum.Enum):
    INVOKING = "invoking"
    COLLECTING = "collecting"
    REPORTING = "reporting"
    RECONCILING = "reconciling"
    DONE = "done"


@dataclass
class PoolResult:
    """Outcome of one pool's run. stage is where it stopped (DONE if it didn't)."""
    pool: str
    log_path: str = ""
    status: RunStatus = RunStatus.COMPLETED
    stage: Stage = Stage.INVOKING
    statistics: RunStatistics | None = None
    reconciliation: "ReconcileResult | None" = None
    skipped_by: "Snapshot | None" = None
    error: str = ""
    finished_at: datetime | None = None


def validate_pools(pools: list[str], executor: "Executor") -> list[str]:
    """Return an error message per pool that can't be backed up."""
    errors = []
    for pool in pools:
        if not zfs.dataset_exists(pool, executor):
            errors.append(f"Pool {pool} does not exist")
        elif not zfs.get_autobackup_property(pool, executor):
            errors.append(f"autobackup:{pool} property not set to true for pool {pool}")
    return errors


def find_recent_snapshot(
    pool: str,
    executor: "Executor",
    hours: float,
    now: datetime,
) -> "Snapshot | None":
    """Newest snapshot of the pool's root dataset younger than `hours`, if any."""
    window = hours * 3600
    for snap in reversed(zfs.list_snapshots(pool, executor)):
        if now.timestamp() - snap.creation < window:
            return snap
    return None


def _fail(result: PoolResult, message: str) -> PoolResult:
    log.error(message)
    result.status = RunStatus.FAILED
    result.error = message
    return result


def run_pool(
    pool: str,
    config: "WrapperConfig",
    executor: "Executor",
    now: datetime | None = None,
    console: TextIO | None = None,
) -> PoolResult:
    """
    Run one pool through INVOKING -> COLLECTING -> REPORTING -> RECONCILING.

    A failed zfs-autobackup run only sets status FAILED; the report and log
    cleanup still happen. A pool that can't be listed ends the run early
    without a report.
    """
    started = time.monotonic()
    now = now or datetime.now()
    run_log = RunLog.for_pool(config.log_dir, pool, now, console=console)
    result = PoolResult(pool=pool, log_path=run_log.path)

    with run_log:
        log.info("Processing pool: %s", pool)

        recent = None
        if config.skip_if_recent_hours > 0:
            log.info("- Checking for recent snapshots...")
            try:
                recent = find_recent_snapshot(pool, executor, config.skip_if_recent_hours, now)
            except ExecutorError as e:
                log.warning("Could not check for recent snapshots: %s", e)

        # --- Invoking ---
        parsed = ParseResult()
        if recent is not None:
            log.info("- Recent snapshot found, skipping backup: %s", recent.full_name)
            result.status = RunStatus.SKIPPED
            result.skipped_by = recent
        else:
            log.info("- Starting backup")
            log.info("- Log file: %s", run_log.path)
            offset = run_log.tell()
            if not run_autobackup(pool, config, executor, run_log):
                result.status = RunStatus.FAILED
            parsed = parse_log_file(run_log.path, offset)
            log.info(
                "Detected %d snapshots created and %d snapshots deleted",
                parsed.snapshots_created, parsed.snapshots_deleted,
            )

        # --- Collecting ---
        result.stage = Stage.COLLECTING
        try:
            inventory = collect_inventory(pool, executor)
        except PoolNotFound as e:
            return _fail(result, f"{e}; no report generated")
        except ExecutorError as e:
            return _fail(result, f"Could not collect dataset information for {pool}: {e}")

        # --- Reporting ---
        result.stage = Stage.REPORTING
        result.statistics = RunStatistics.build(inventory, parsed, time.monotonic() - started)
        result.finished_at = datetime.now()
        text = render_report(
            pool,
            result.status,
            inventory,
            result.statistics,
            log_path=run_log.path,
            now=result.finished_at,
            skipped_by=recent,
        )
        write_report(text, run_log)

        # --- Reconciling ---
        result.stage = Stage.RECONCILING
        run_log.tee("\nLOG ROTATION:\n")
        try:
            result.reconciliation = reconcile_logs(
                pool, config.log_dir, executor, today=now.date(),
            )
        except ExecutorError as e:
            return _fail(result, f"Log cleanup failed for {pool}: {e}")

        result.stage = Stage.DONE
    return result


def run_all(
    config: "WrapperConfig",
    pools: list[str],
    executor: "Executor",
    sleep: Callable[[float], None] = time.sleep,
    console: TextIO | None = None,
) -> list[PoolResult]:
    """Run each pool in turn, pausing between pools, then print a summary."""
    out = console if console is not None else sys.stdout
    log.info("Starting ZFS backup process")

    results: list[PoolResult] = []
    for i, pool in enumerate(pools):
        if i:
            sleep(config.pause_seconds)
        try:
            results.append(run_pool(pool, config, executor, console=console))
        except OSError as e:
            results.append(_fail(
                PoolResult(pool=pool),
                f"Could not write run log for {pool}: {e}",
            ))

    log.info("Backup process completed")
    print(file=out)
    for r in results:
        stamp = (r.finished_at or datetime.now()).strftime(TIME_FORMAT)
        print(
            f"POOL: {r.pool}  |  Remote: {config.destination.host}  |  "
            f"Status: {status_color(r.status)}{r.status.label}{RESET}  |  Last backup: {stamp}",
            file=out,
        )
        if r.log_path:
            print(f"Log file: {r.log_path}", file=out)

    failed = [r.pool for r in results if r.status is RunStatus.FAILED]
    if failed:
        log.warning("Some pools failed: %s", " ".join(failed))
    return results


def exit_code(results: list[PoolResult]) -> int:
    """0 if nothing failed, otherwise the number of failed pools."""
    return sum(1 for r in results if r.status is RunStatus.FAILED)
