"""CLI entry point for zfs-autobackup-wrapper."""
from __future__ import annotations

import argparse
import logging
import os
import sys

from zaw.config import ConfigError, load_config
from zaw.executor import ExecutorError, LocalExecutor

log = logging.getLogger("zaw")

# prepended to PATH; cron only provides /usr/bin:/bin
EXTRA_PATH = [
    "/root/.local/bin", "/usr/local/sbin", "/usr/local/bin",
    "/usr/sbin", "/usr/bin", "/sbin", "/bin",
]


def _extend_path() -> None:
    current = os.environ.get("PATH", "").split(os.pathsep)
    missing = [p for p in EXTRA_PATH if p not in current]
    os.environ["PATH"] = os.pathsep.join(missing + [p for p in current if p])


def _load(args):
    try:
        return load_config(args.config)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return None


def _select_pools(config, pool: str | None) -> list[str]:
    return [pool] if pool else list(config.pools)


def cmd_backup(args) -> int:
    from zaw.autobackup import is_installed
    from zaw.backup import exit_code, run_all, validate_pools
    from zaw.runlog import ensure_log_dir, setup_logging

    config = _load(args)
    if config is None:
        return 1
    setup_logging(verbose=args.verbose, syslog=config.syslog)

    if hasattr(os, "geteuid") and os.geteuid() != 0:
        log.error("Error: This script must be run as root")
        return 1

    _extend_path()
    log.info("Checking dependencies...")
    if not is_installed(config.autobackup.command):
        log.error("Error: %s is not installed", config.autobackup.command)
        return 1
    log.info("Dependencies OK")

    try:
        ensure_log_dir(config.log_dir)
    except OSError as e:
        log.error("Error: Could not create log directory %s: %s", config.log_dir, e)
        return 1

    executor = LocalExecutor()
    pools = _select_pools(config, args.pool)
    errors = validate_pools(pools, executor)
    if errors:
        for msg in errors:
            log.error("Error: %s", msg)
        return 1

    results = run_all(config, pools, executor)
    return exit_code(results)


def cmd_inventory(args) -> int:
    """Print datasets, snapshot counts and space used for a pool."""
    from zaw.inventory import PoolNotFound, collect_inventory
    from zaw.report import dataset_table

    try:
        inventory = collect_inventory(args.pool, LocalExecutor())
    except (PoolNotFound, ExecutorError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("\n".join(dataset_table(inventory)))
    print(f"{inventory.total_datasets} dataset(s), {inventory.total_snapshots} snapshot(s)")
    return 0


def cmd_clean_logs(args) -> int:
    """Remove orphaned run logs without doing a backup."""
    from zaw.retention import reconcile_logs
    from zaw.runlog import setup_logging

    config = _load(args)
    if config is None:
        return 1
    setup_logging(verbose=args.verbose, syslog=config.syslog)

    executor = LocalExecutor()
    rc = 0
    for pool in _select_pools(config, args.pool):
        try:
            reconcile_logs(pool, config.log_dir, executor, dry_run=args.dry_run)
        except ExecutorError as e:
            log.error("Log cleanup failed for %s: %s", pool, e)
            rc = 1
    return rc


def cmd_release_holds(args) -> int:
    """Release every user hold on every snapshot under a dataset."""
    from zaw import zfs

    executor = LocalExecutor()
    try:
        snapshots = zfs.list_snapshot_names(args.dataset, executor)
    except ExecutorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    released = 0
    rc = 0
    for snapshot in snapshots:
        try:
            tags = zfs.list_holds(snapshot, executor)
        except ExecutorError as e:
            print(f"  ERROR listing holds on {snapshot}: {e}", file=sys.stderr)
            rc = 1
            continue
        for tag in tags:
            print(f"Releasing hold '{tag}' on {snapshot}")
            try:
                zfs.release_hold(tag, snapshot, executor, dry_run=args.dry_run, verbose=args.verbose)
                released += 1
            except ExecutorError as e:
                print(f"  ERROR releasing {tag} on {snapshot}: {e}", file=sys.stderr)
                rc = 1

    prefix = "[dry-run] " if args.dry_run else ""
    print(f"{prefix}Released {released} hold(s) across {len(snapshots)} snapshot(s).")
    return rc


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        prog="zaw",
        description="zfs-autobackup wrapper: run logs, log rotation and backup reports",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_backup = sub.add_parser("backup", help="Back up pools and report on each run")
    p_backup.add_argument("config", help="Path to YAML config file")
    p_backup.add_argument("pool", nargs="?", help="Back up only this pool")
    p_backup.add_argument("--verbose", "-v", action="store_true",
                          help="Show debug output")
    p_backup.set_defaults(func=cmd_backup)

    p_inventory = sub.add_parser("inventory", help="List datasets and snapshot counts of a pool")
    p_inventory.add_argument("pool", help="Pool to list")
    p_inventory.set_defaults(func=cmd_inventory)

    p_clean = sub.add_parser("clean-logs", help="Remove run logs with no matching snapshot")
    p_clean.add_argument("config", help="Path to YAML config file")
    p_clean.add_argument("pool", nargs="?", help="Clean logs of only this pool")
    p_clean.add_argument("--dry-run", "-n", action="store_true",
                         help="Show what would be removed without removing it")
    p_clean.add_argument("--verbose", "-v", action="store_true",
                         help="Show debug output")
    p_clean.set_defaults(func=cmd_clean_logs)

    p_release = sub.add_parser("release-holds", help="Release all holds on a dataset's snapshots")
    p_release.add_argument("dataset", help="Dataset (snapshots are searched recursively)")
    p_release.add_argument("--dry-run", "-n", action="store_true",
                           help="Show what would be released without releasing")
    p_release.add_argument("--verbose", "-v", action="store_true",
                           help="Show the zfs commands")
    p_release.set_defaults(func=cmd_release_holds)

    args = parser.parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
