"""Load and validate YAML wrapper configuration files."""
from __future__ import annotations

import yaml

from zaw.models import AutobackupConfig, DestinationConfig, WrapperConfig


class ConfigError(Exception):
    pass


def _non_negative(raw: dict, key: str, default: float) -> float:
    value = raw.get(key, default)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    if value < 0:
        raise ConfigError(f"'{key}' must be >= 0, got {value:g}")
    return value


def load_config(path: str) -> WrapperConfig:
    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping: {path}")

    # --- pools ---
    pools_raw = raw.get("pools") or []
    if not pools_raw:
        raise ConfigError("'pools' list is required")
    if not isinstance(pools_raw, list):
        raise ConfigError(f"'pools' must be a list, got {pools_raw!r}")
    pools = []
    for p in pools_raw:
        name = str(p).strip() if p is not None else ""
        if not name:
            raise ConfigError(f"Invalid pool entry: {p!r}")
        pools.append(name)

    # --- destination ---
    dst_raw = raw.get("destination")
    if not isinstance(dst_raw, dict):
        raise ConfigError("'destination' section is required")
    if not dst_raw.get("host"):
        raise ConfigError("destination.host is required")
    if not dst_raw.get("path"):
        raise ConfigError("destination.path is required")
    destination = DestinationConfig(host=str(dst_raw["host"]), path=str(dst_raw["path"]))

    # --- autobackup ---
    ab_raw = raw.get("autobackup") or {}
    if not isinstance(ab_raw, dict):
        raise ConfigError("'autobackup' must be a mapping")
    autobackup = AutobackupConfig()
    if "command" in ab_raw:
        if not ab_raw["command"]:
            raise ConfigError("autobackup.command must not be empty")
        autobackup.command = str(ab_raw["command"])
    if "options" in ab_raw:
        options = ab_raw["options"] or []
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            raise ConfigError("autobackup.options must be a list of strings")
        autobackup.options = options

    log_dir = raw.get("log_dir", "/root/logs")
    if not log_dir:
        raise ConfigError("log_dir must not be empty")

    return WrapperConfig(
        pools=pools,
        destination=destination,
        log_dir=str(log_dir),
        pause_seconds=_non_negative(raw, "pause_seconds", 5),
        skip_if_recent_hours=_non_negative(raw, "skip_if_recent_hours", 0),
        syslog=bool(raw.get("syslog", False)),
        autobackup=autobackup,
    )
