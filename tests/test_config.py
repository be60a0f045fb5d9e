"""Tests for zaw.config module."""
from __future__ import annotations

import textwrap

import pytest

from zaw.config import ConfigError, load_config


def _write_config(tmp_path, yaml_text: str) -> str:
    p = tmp_path / "wrapper.yaml"
    p.write_text(textwrap.dedent(yaml_text))
    return str(p)


def _minimal_yaml(**overrides) -> str:
    """Return a valid minimal config, with optional section overrides."""
    sections = {
        "pools": "pools:\n  - zlhome01",
        "destination": "destination:\n  host: zima01\n  path: WD181KFGX/BACKUPS",
        "extra": "",
    }
    sections.update(overrides)
    return "\n".join(v for v in sections.values() if v)


class TestLoadConfigValid:
    def test_minimal(self, tmp_path):
        config = load_config(_write_config(tmp_path, _minimal_yaml()))
        assert config.pools == ["zlhome01"]
        assert config.destination.host == "zima01"
        assert config.destination.path == "WD181KFGX/BACKUPS"
        assert config.log_dir == "/root/logs"
        assert config.pause_seconds == 5
        assert config.skip_if_recent_hours == 0
        assert config.syslog is False
        assert config.autobackup.command == "zfs-autobackup"
        assert config.autobackup.options == ["-v", "--clear-mountpoint", "--force"]

    def test_everything(self, tmp_path):
        path = _write_config(tmp_path, _minimal_yaml(extra=(
            "log_dir: /var/log/zaw\n"
            "pause_seconds: 0\n"
            "skip_if_recent_hours: 24\n"
            "syslog: true\n"
            "autobackup:\n"
            "  command: /opt/bin/zfs-autobackup\n"
            "  options: ['-v', '--no-holds']\n"
        )))
        config = load_config(path)
        assert config.log_dir == "/var/log/zaw"
        assert config.pause_seconds == 0
        assert config.skip_if_recent_hours == 24
        assert config.syslog is True
        assert config.autobackup.command == "/opt/bin/zfs-autobackup"
        assert config.autobackup.options == ["-v", "--no-holds"]


class TestLoadConfigInvalid:
    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="YAML mapping"):
            load_config(_write_config(tmp_path, "- just\n- a list\n"))

    def test_missing_pools(self, tmp_path):
        with pytest.raises(ConfigError, match="pools"):
            load_config(_write_config(tmp_path, _minimal_yaml(pools="pools: []")))

    def test_pools_scalar(self, tmp_path):
        with pytest.raises(ConfigError, match="'pools' must be a list"):
            load_config(_write_config(tmp_path, _minimal_yaml(pools="pools: zlhome01")))

    def test_null_pool(self, tmp_path):
        with pytest.raises(ConfigError, match="Invalid pool"):
            load_config(_write_config(tmp_path, _minimal_yaml(pools="pools:\n  - ~")))

    def test_missing_destination(self, tmp_path):
        with pytest.raises(ConfigError, match="destination"):
            load_config(_write_config(tmp_path, _minimal_yaml(destination="")))

    def test_missing_host(self, tmp_path):
        path = _write_config(tmp_path, _minimal_yaml(destination="destination:\n  path: X"))
        with pytest.raises(ConfigError, match="destination.host"):
            load_config(path)

    def test_missing_path(self, tmp_path):
        path = _write_config(tmp_path, _minimal_yaml(destination="destination:\n  host: zima01"))
        with pytest.raises(ConfigError, match="destination.path"):
            load_config(path)

    def test_negative_pause(self, tmp_path):
        path = _write_config(tmp_path, _minimal_yaml(extra="pause_seconds: -1"))
        with pytest.raises(ConfigError, match="pause_seconds.*>= 0"):
            load_config(path)

    def test_non_numeric_skip_window(self, tmp_path):
        path = _write_config(tmp_path, _minimal_yaml(extra="skip_if_recent_hours: soon"))
        with pytest.raises(ConfigError, match="skip_if_recent_hours"):
            load_config(path)

    def test_options_not_a_list(self, tmp_path):
        path = _write_config(tmp_path, _minimal_yaml(extra="autobackup:\n  options: -v"))
        with pytest.raises(ConfigError, match="options"):
            load_config(path)
