"""Data models for zfs-autobackup-wrapper."""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field

# <prefix>-<YYYYMMDDHHMMSS>, e.g. zlhome01-20250929190001
SNAPSHOT_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+-([0-9]{14})$")


@dataclass(frozen=True, order=True)
class Snapshot:
    """A ZFS snapshot: pool/dataset@name."""
    dataset: str
    name: str  # just the snapshot name after '@'
    creation: int = 0  # epoch seconds, as reported by zfs

    @property
    def full_name(self) -> str:
        return f"{self.dataset}@{self.name}"

    @property
    def timestamp(self) -> str | None:
        """The 14-digit timestamp suffix, or None if the name doesn't carry one."""
        m = SNAPSHOT_NAME_RE.match(self.name)
        return m.group(1) if m else None

    @property
    def date(self) -> str | None:
        """YYYYMMDD portion of the name's timestamp."""
        ts = self.timestamp
        return ts[:8] if ts else None

    @classmethod
    def parse(cls, full_name: str, creation: int = 0) -> "Snapshot":
        dataset, _, name = full_name.partition("@")
        if not name:
            raise ValueError(f"Not a snapshot: {full_name!r}")
        return cls(dataset=dataset, name=name, creation=creation)


@dataclass(frozen=True)
class DatasetInfo:
    """One row of the inventory."""
    name: str  # e.g. zlhome01/HOME.user
    snapshot_count: int = 0
    last_snapshot: str | None = None
    space_used: str = "-"  # opaque, display only


@dataclass(frozen=True)
class Inventory:
    """Datasets of a pool in listing order, plus pool-wide totals."""
    pool: str
    datasets: tuple[DatasetInfo, ...] = ()

    @property
    def total_datasets(self) -> int:
        return len(self.datasets)

    @property
    def total_snapshots(self) -> int:
        return sum(ds.snapshot_count for ds in self.datasets)

    def get(self, name: str) -> DatasetInfo | None:
        for ds in self.datasets:
            if ds.name == name:
                return ds
        return None


@dataclass(frozen=True)
class ParseResult:
    """What one zfs-autobackup run did on the source side."""
    snapshots_created: int = 0
    snapshots_deleted: int = 0
    created_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class RunStatistics:
    total_datasets: int = 0
    total_snapshots: int = 0
    snapshots_created: int = 0
    snapshots_deleted: int = 0
    duration: float = 0.0  # seconds

    @classmethod
    def build(
        cls,
        inventory: Inventory,
        parsed: ParseResult,
        duration: float,
    ) -> "RunStatistics":
        return cls(
            total_datasets=inventory.total_datasets,
            total_snapshots=inventory.total_snapshots,
            snapshots_created=parsed.snapshots_created,
            snapshots_deleted=parsed.snapshots_deleted,
            duration=duration,
        )


class RunStatus(enum.Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

    @property
    def label(self) -> str:
        mark = "✓" if self is RunStatus.COMPLETED else "✗"
        return f"{mark} {self.value}"


@dataclass(frozen=True)
class LogFile:
    """A per-run log: <pool>_backup_<YYYYMMDD>_<HHMM>.log"""
    pool: str
    path: str
    date: str | None  # YYYYMMDD, None if the name doesn't carry a usable date


@dataclass(frozen=True)
class LogDecision:
    path: str
    action: str  # "kept", "removed", "warned"
    date: str | None = None
    message: str = ""


@dataclass(frozen=True)
class ReconcileResult:
    pool: str
    decisions: tuple[LogDecision, ...] = ()

    def _count(self, action: str) -> int:
        return sum(1 for d in self.decisions if d.action == action)

    @property
    def processed(self) -> int:
        return len(self.decisions)

    @property
    def removed(self) -> int:
        return self._count("removed")

    @property
    def kept(self) -> int:
        return self._count("kept")

    @property
    def warnings(self) -> int:
        return self._count("warned")


@dataclass
class DestinationConfig:
    host: str  # ssh target handed to zfs-autobackup (~/.ssh/config name or IP)
    path: str  # base path on the target, e.g. WD181KFGX/BACKUPS


@dataclass
class AutobackupConfig:
    command: str = "zfs-autobackup"
    options: list[str] = field(
        default_factory=lambda: ["-v", "--clear-mountpoint", "--force"]
    )


@dataclass
class WrapperConfig:
    pools: list[str]
    destination: DestinationConfig
    log_dir: str = "/root/logs"
    pause_seconds: float = 5
    skip_if_recent_hours: float = 0
    syslog: bool = False
    autobackup: AutobackupConfig = field(default_factory=AutobackupConfig)
