"""Log retention: remove per-run logs whose date no longer has a snapshot."""
from __future__ import annotations

import glob
import logging
import os
import re
from datetime import date, datetime
from typing import TYPE_CHECKING

from zaw import zfs
from zaw.models import LogDecision, LogFile, ReconcileResult, Snapshot

if TYPE_CHECKING:
    from zaw.executor import Executor

log = logging.getLogger(__name__)


def snapshot_dates(snapshot_names: list[str]) -> set[str]:
    """YYYYMMDD dates of all <prefix>-<14 digit> snapshots in the list."""
    dates = set()
    for full_name in snapshot_names:
        if "@" not in full_name:
            continue
        d = Snapshot.parse(full_name).date
        if d:
            dates.add(d)
    return dates


def _log_date(pool: str, filename: str) -> str | None:
    m = re.match(re.escape(pool) + r"_backup_([0-9]{8})", filename)
    if not m:
        return None
    try:
        datetime.strptime(m.group(1), "%Y%m%d")
    except ValueError:
        return None
    return m.group(1)


def find_log_files(log_dir: str, pool: str) -> list[LogFile]:
    """All <pool>_backup_*.log files in log_dir, sorted by name."""
    pattern = os.path.join(glob.escape(log_dir), glob.escape(pool) + "_backup_*.log")
    return [
        LogFile(pool=pool, path=path, date=_log_date(pool, os.path.basename(path)))
        for path in sorted(glob.glob(pattern))
        if os.path.isfile(path)
    ]


def _decide(
    logfile: LogFile,
    dates: set[str],
    today: str,
    dry_run: bool,
) -> LogDecision:
    if logfile.date is None:
        msg = f"Could not extract date from log filename: {logfile.path}"
        log.warning(msg)
        return LogDecision(logfile.path, "warned", None, msg)

    if logfile.date == today:
        msg = f"Keeping current day log: {logfile.path}"
        log.info(msg)
        return LogDecision(logfile.path, "kept", logfile.date, msg)

    if logfile.date in dates:
        msg = f"Keeping log that matches snapshot date {logfile.date}: {logfile.path}"
        log.info(msg)
        return LogDecision(logfile.path, "kept", logfile.date, msg)

    msg = f"Removing old log without matching snapshot for date {logfile.date}: {logfile.path}"
    if dry_run:
        msg = "[dry-run] " + msg
        log.info(msg)
        return LogDecision(logfile.path, "removed", logfile.date, msg)

    try:
        os.remove(logfile.path)
    except OSError as e:
        msg = f"Failed to remove {logfile.path}: {e}"
        log.warning(msg)
        return LogDecision(logfile.path, "warned", logfile.date, msg)
    log.info(msg)
    return LogDecision(logfile.path, "removed", logfile.date, msg)


def reconcile_logs(
    pool: str,
    log_dir: str,
    executor: "Executor",
    today: date | None = None,
    dry_run: bool = False,
) -> ReconcileResult:
    """
    Keep a pool's log if it is from today or its date matches a snapshot
    anywhere in the pool (any child dataset counts); remove it otherwise.

    Each file is decided on its own: a file whose date can't be read, or
    that can't be removed, is reported as a warning and left alone.
    Raises ExecutorError if the pool's snapshots can't be listed.
    """
    today_str = (today or date.today()).strftime("%Y%m%d")
    log.info("Cleaning logs for %s using match_snapshots policy", pool)

    names = zfs.list_snapshot_names(pool, executor)
    dates = snapshot_dates(names)
    log.info("Found %d unique snapshot dates for %s (recursive search)", len(dates), pool)
    if dates:
        ordered = sorted(dates)
        log.info("Sample extracted dates: %s", " ".join(ordered[:5]))
        log.info("Date range: %s to %s", ordered[0], ordered[-1])
    else:
        log.warning("No valid snapshot dates found with expected pattern")
        log.info("Sample snapshot names found: %s", " ".join(names[:5]) or "none")

    decisions = tuple(
        _decide(logfile, dates, today_str, dry_run)
        for logfile in find_log_files(log_dir, pool)
    )
    result = ReconcileResult(pool=pool, decisions=decisions)
    log.info(
        "Log cleanup completed for %s: processed=%d, removed=%d, kept=%d",
        pool, result.processed, result.removed, result.kept,
    )
    return result
