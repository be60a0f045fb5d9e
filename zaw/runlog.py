"""Per-run log files and logging setup.

Every pool run gets its own log file. Log records, streamed tool output and
the rendered report are all appended to it through one handle, in the order
they happen.
"""
from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import TextIO

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
SYSLOG_IDENT = "zfs-backup"

log = logging.getLogger("zaw")

# handlers added by setup_logging, so a second call replaces them
_installed: list[logging.Handler] = []


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(verbose: bool = False, syslog: bool = False) -> None:
    """Console handler on stderr, plus syslog if asked for."""
    log.setLevel(logging.DEBUG if verbose else logging.INFO)
    while _installed:
        log.removeHandler(_installed.pop())

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter())
    log.addHandler(console)
    _installed.append(console)

    if syslog:
        try:
            handler = logging.handlers.SysLogHandler(address="/dev/log")
        except OSError as e:
            log.warning("Syslog unavailable, continuing without it: %s", e)
            return
        handler.setFormatter(logging.Formatter(f"{SYSLOG_IDENT}: %(message)s"))
        log.addHandler(handler)
        _installed.append(handler)


def log_file_name(pool: str, when: datetime) -> str:
    """<pool>_backup_<YYYYMMDD>_<HHMM>.log"""
    return f"{pool}_backup_{when:%Y%m%d_%H%M}.log"


def ensure_log_dir(log_dir: str) -> None:
    """Create the log directory. Raises OSError if that isn't possible."""
    os.makedirs(log_dir, exist_ok=True)


class RunLog:
    """
    The log file of one pool run, attached to the `zaw` logger while open.

    write() appends to the file only; tee() writes to stdout and the file.
    """

    def __init__(self, path: str, console: TextIO | None = None):
        self.path = path
        self._console = console
        self._file: TextIO | None = None
        self._handler: logging.Handler | None = None

    @property
    def console(self) -> TextIO:
        return self._console if self._console is not None else sys.stdout

    @classmethod
    def for_pool(cls, log_dir: str, pool: str, when: datetime, **kwargs) -> "RunLog":
        return cls(os.path.join(log_dir, log_file_name(pool, when)), **kwargs)

    def open(self) -> "RunLog":
        self._file = open(self.path, "a", encoding="utf-8")
        self._handler = logging.StreamHandler(self._file)
        self._handler.setFormatter(_formatter())
        if log.level == logging.NOTSET:
            log.setLevel(logging.INFO)
        log.addHandler(self._handler)
        return self

    def close(self) -> None:
        if self._handler is not None:
            log.removeHandler(self._handler)
            self._handler = None
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "RunLog":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def tell(self) -> int:
        """Current size of the log file in bytes."""
        if self._file is not None:
            self._file.flush()
        return os.path.getsize(self.path)

    def write(self, text: str) -> None:
        if self._file is None:
            raise ValueError(f"Run log is not open: {self.path}")
        self._file.write(text)
        self._file.flush()

    def tee(self, text: str) -> None:
        self.console.write(text)
        self.console.flush()
        self.write(text)
