"""MockExecutor and shared fixtures for testing."""
from __future__ import annotations

import io
import subprocess
from unittest.mock import MagicMock

import pytest

from zaw.models import AutobackupConfig, DestinationConfig, WrapperConfig


class MockExecutor:
    """
    Executor that returns pre-scripted responses for commands.

    responses: dict mapping tuple(cmd) -> stdout string (or an Exception to raise)
    If the command isn't found, raises KeyError (to catch unexpected calls in tests).

    popen_output / popen_returncode script what a streamed command (zfs-autobackup)
    prints and how it exits. Set popen_error to make launching it fail.
    """

    def __init__(
        self,
        responses: dict | None = None,
        popen_output: str = "",
        popen_returncode: int = 0,
        popen_error: Exception | None = None,
        label: str = "mock",
    ):
        self.responses: dict = responses or {}
        self.popen_output = popen_output
        self.popen_returncode = popen_returncode
        self.popen_error = popen_error
        self._label = label
        self.calls: list[list[str]] = []  # record of all commands run
        self.popen_calls: list[list[str]] = []

    @property
    def label(self) -> str:
        return self._label

    def run(self, cmd: list[str]) -> str:
        self.calls.append(cmd)
        key = tuple(cmd)
        if key not in self.responses:
            raise KeyError(f"MockExecutor: unexpected command: {cmd}")
        result = self.responses[key]
        if isinstance(result, Exception):
            raise result
        return result

    def popen(self, cmd: list[str], **_kwargs) -> subprocess.Popen:
        self.calls.append(cmd)
        self.popen_calls.append(cmd)
        if self.popen_error is not None:
            raise self.popen_error

        mock_proc = MagicMock(spec=subprocess.Popen)
        mock_proc.stdout = io.BytesIO(self.popen_output.encode("utf-8"))
        mock_proc.returncode = self.popen_returncode
        mock_proc.wait.return_value = self.popen_returncode
        return mock_proc


# ---------------------------------------------------------------------------
# Listings shaped like real `zfs list -H -p` output
# ---------------------------------------------------------------------------

POOL = "p1"

# name, type, used, creation
P1_ALL = [
    ("p1", "filesystem", "1048576", "1748000000"),
    ("p1@p1-20250601120000", "snapshot", "0", "1748779200"),
    ("p1/data", "filesystem", "524288", "1748000100"),
    ("p1/data@p1-20250601120000", "snapshot", "4096", "1748779200"),
    ("p1/data@p1-20250602090000", "snapshot", "8192", "1748854800"),
]

AUTOBACKUP_OUTPUT = """\
  #### Source settings
  [Source] Datasets are selected by user property: autobackup:p1
  [Source] Creating snapshots p1-20250603090000 in pool p1
  [Target] Creating snapshots p1-20250603090000 in pool p1
  [Source] p1/data@p1-20250501120000: Destroying
  [Target] backup/p1/data@p1-20250401120000: Destroying
  #### All operations completed successfully
"""


def all_listing_cmd(pool: str = POOL) -> tuple:
    return ("zfs", "list", "-H", "-p", "-r", "-t", "all", "-o", "name,type,used,creation", pool)


def snapshot_names_cmd(pool: str = POOL) -> tuple:
    return ("zfs", "list", "-H", "-o", "name", "-t", "snapshot", "-r", pool)


def snapshots_cmd(dataset: str = POOL) -> tuple:
    return ("zfs", "list", "-H", "-p", "-o", "name,creation", "-t", "snapshot", "-r", dataset)


def exists_cmd(dataset: str = POOL) -> tuple:
    return ("zfs", "list", "-H", "-o", "name", dataset)


def all_listing_output(records) -> str:
    return "".join("\t".join(r) + "\n" for r in records)


def snap_list_output(full_names: list[str]) -> str:
    return "\n".join(full_names) + "\n"


def make_pool_responses(pool: str = POOL, records=None) -> dict:
    """Responses for inventory collection and log cleanup of one pool."""
    if records is None:
        records = P1_ALL
    return {
        all_listing_cmd(pool): all_listing_output(records),
        snapshot_names_cmd(pool): snap_list_output(
            [r[0] for r in records if r[1] == "snapshot"]
        ),
        exists_cmd(pool): pool + "\n",
    }


def make_config(log_dir, pools=None, **overrides) -> WrapperConfig:
    config = WrapperConfig(
        pools=pools or [POOL],
        destination=DestinationConfig(host="zima01", path="WD181KFGX/BACKUPS"),
        log_dir=str(log_dir),
        pause_seconds=0,
        autobackup=AutobackupConfig(),
    )
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


@pytest.fixture
def log_dir(tmp_path):
    d = tmp_path / "logs"
    d.mkdir()
    return d
