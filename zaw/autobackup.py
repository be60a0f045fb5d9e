"""Run zfs-autobackup for a pool, streaming its output to console and run log."""
from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zaw.executor import Executor
    from zaw.models import WrapperConfig
    from zaw.runlog import RunLog

log = logging.getLogger(__name__)


def build_command(pool: str, config: "WrapperConfig") -> list[str]:
    """
    zfs-autobackup <options> --ssh-target <host> <pool> <path>

    zfs-autobackup selects what to send by the autobackup:<pool> property
    and handles snapshot creation, thinning and --min-change itself.
    """
    ab = config.autobackup
    return [
        ab.command, *ab.options,
        "--ssh-target", config.destination.host,
        pool, config.destination.path,
    ]


def is_installed(command: str) -> bool:
    return shutil.which(command) is not None


def run_autobackup(
    pool: str,
    config: "WrapperConfig",
    executor: "Executor",
    run_log: "RunLog",
) -> bool:
    """
    Run the backup, copying each output line to both sinks as it arrives.

    Returns True if zfs-autobackup exited 0. There is no timeout: if the
    tool hangs, so does the run.
    """
    cmd = build_command(pool, config)
    log.debug("Running (%s): %s", executor.label, shlex.join(cmd))
    try:
        proc = executor.popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except OSError as e:
        log.error("- Could not start %s: %s", cmd[0], e)
        return False

    try:
        for raw in proc.stdout:
            line = raw.decode("utf-8", errors="replace")
            if not line.endswith("\n"):
                line += "\n"
            run_log.tee(line)
    finally:
        # close before wait; a child blocked on a full pipe never exits
        proc.stdout.close()
        rc = proc.wait()

    if rc != 0:
        log.error("- Backup failed (%s exited %d)", cmd[0], rc)
        return False
    log.info("- Backup completed successfully")
    return True
