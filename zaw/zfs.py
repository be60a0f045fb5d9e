"""ZFS queries using an Executor for dependency injection."""
from __future__ import annotations

import shlex
from typing import TYPE_CHECKING, NamedTuple

from zaw.executor import ExecutorError
from zaw.models import Snapshot

if TYPE_CHECKING:
    from zaw.executor import Executor

DATASET_TYPES = ("filesystem", "volume")


class Record(NamedTuple):
    """One line of `zfs list -t all`."""
    name: str
    type: str
    used: str
    creation: int


def list_all(pool: str, executor: "Executor") -> list[Record]:
    """
    Return every dataset and snapshot under pool (pool root included).

    zfs lists each dataset followed by its own snapshots, oldest first, so a
    single pass over the result sees a dataset before its snapshots.
    """
    output = executor.run([
        "zfs", "list", "-H", "-p", "-r", "-t", "all",
        "-o", "name,type,used,creation", pool,
    ])
    records = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) != 4:
            continue
        name, type_, used, creation = parts
        try:
            created = int(creation)
        except ValueError:
            created = 0
        records.append(Record(name=name, type=type_, used=used, creation=created))
    return records


def list_snapshot_names(pool: str, executor: "Executor") -> list[str]:
    """Return full names of all snapshots under pool, across all its datasets."""
    output = executor.run(["zfs", "list", "-H", "-o", "name", "-t", "snapshot", "-r", pool])
    return [line.strip() for line in output.splitlines() if line.strip()]


def list_snapshots(dataset: str, executor: "Executor") -> list[Snapshot]:
    """Return snapshots for a dataset with their creation time, oldest first."""
    output = executor.run([
        "zfs", "list", "-H", "-p", "-o", "name,creation", "-t", "snapshot", "-r", dataset,
    ])
    results = []
    for line in output.splitlines():
        name, _, creation = line.strip().partition("\t")
        if not name:
            continue
        # Only include snapshots directly on this dataset (not children)
        if "@" in name and name.split("@")[0] == dataset:
            try:
                created = int(creation)
            except ValueError:
                created = 0
            results.append(Snapshot.parse(name, creation=created))
    return results


def dataset_exists(dataset: str, executor: "Executor") -> bool:
    """Return True if the dataset exists."""
    try:
        executor.run(["zfs", "list", "-H", "-o", "name", dataset])
        return True
    except ExecutorError:
        return False


def get_autobackup_property(pool: str, executor: "Executor") -> bool:
    """Return True if autobackup:<pool> is set to true on the pool."""
    try:
        output = executor.run([
            "zfs", "get", "-H", "-o", "value", f"autobackup:{pool}", pool,
        ])
        return output.strip() == "true"
    except ExecutorError:
        return False


def list_holds(snapshot: str, executor: "Executor") -> list[str]:
    """Return the user hold tags on a snapshot."""
    output = executor.run(["zfs", "holds", "-H", snapshot])
    tags = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) >= 2 and parts[1].strip():
            tags.append(parts[1].strip())
    return tags


def release_hold(
    tag: str,
    snapshot: str,
    executor: "Executor",
    dry_run: bool = False,
    verbose: bool = False,
) -> None:
    """Release a single user hold."""
    cmd = ["zfs", "release", tag, snapshot]
    if dry_run or verbose:
        print(f"  [release] {shlex.join(cmd)}")
    if dry_run:
        return
    executor.run(cmd)
