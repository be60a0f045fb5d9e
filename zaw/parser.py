"""Parse zfs-autobackup output for snapshots created and destroyed.

Only [Source] lines count. zfs-autobackup logs the same events for the
[Target] side of a replication; those are not changes to the local pool.

Line formats this depends on:

    [Source] Creating snapshots zlhome01-20250929190001 in pool zlhome01
    [Source] zlhome01/HOME.user@zlhome01-20250829214228: Destroying
"""
from __future__ import annotations

import re
from typing import Iterable

from zaw.models import ParseResult

CREATED_RE = re.compile(r"\[Source\] Creating snapshots .*?([A-Za-z0-9_-]+-[0-9]{14}) in pool ")
DESTROYED_RE = re.compile(r"\[Source\] .+@\S+: Destroying")


def parse_autobackup_output(output: str | Iterable[str]) -> ParseResult:
    """Count created/destroyed snapshots in captured output. No matches means zero."""
    if isinstance(output, str):
        output = output.splitlines()

    created: list[str] = []
    deleted = 0
    for line in output:
        m = CREATED_RE.search(line)
        if m:
            created.append(m.group(1))
        elif DESTROYED_RE.search(line):
            deleted += 1

    return ParseResult(
        snapshots_created=len(created),
        snapshots_deleted=deleted,
        created_names=tuple(created),
    )


def parse_log_file(path: str, offset: int = 0) -> ParseResult:
    """Parse a run's log file line by line, starting at byte offset."""
    with open(path, "rb") as f:
        f.seek(offset)
        return parse_autobackup_output(
            raw.decode("utf-8", errors="replace") for raw in f
        )
