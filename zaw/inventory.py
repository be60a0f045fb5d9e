"""Inventory: per-dataset snapshot counts from one pass over the pool listing."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from zaw import zfs
from zaw.executor import ExecutorError
from zaw.models import DatasetInfo, Inventory

if TYPE_CHECKING:
    from zaw.executor import Executor

log = logging.getLogger(__name__)


class PoolNotFound(Exception):
    """The pool does not exist (any more)."""
    def __init__(self, pool: str):
        self.pool = pool
        super().__init__(f"Pool {pool} does not exist")


def collect_inventory(pool: str, executor: "Executor") -> Inventory:
    """
    Build the inventory of a pool from a single `zfs list -r -t all` call.

    The last snapshot of a dataset is simply the last one seen for it, which
    is only the newest if zfs lists each dataset's snapshots in creation
    order. Listings that break that order give an undefined last snapshot.
    """
    try:
        records = zfs.list_all(pool, executor)
    except ExecutorError as e:
        if not zfs.dataset_exists(pool, executor):
            raise PoolNotFound(pool) from e
        raise

    # name -> [snapshot_count, last_snapshot, space_used]
    rows: dict[str, list] = {}
    for rec in records:
        if rec.type in zfs.DATASET_TYPES:
            rows[rec.name] = [0, None, rec.used]
        elif rec.type == "snapshot":
            dataset, _, snap_name = rec.name.partition("@")
            row = rows.setdefault(dataset, [0, None, "-"])
            row[0] += 1
            row[1] = snap_name

    inventory = Inventory(
        pool=pool,
        datasets=tuple(
            DatasetInfo(name=name, snapshot_count=count, last_snapshot=last, space_used=used)
            for name, (count, last, used) in rows.items()
        ),
    )
    log.info(
        "Collected %d datasets and %d snapshots for %s",
        inventory.total_datasets, inventory.total_snapshots, pool,
    )
    return inventory
