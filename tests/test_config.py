"""Tests for sysmon_tui.config."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from sysmon_tui import config as config_mod
from sysmon_tui.config import (
    DEFAULT_CONFIG,
    _deep_merge,
    dump_default_config,
    load_config,
    resolve_log_dir,
)


@pytest.fixture(autouse=True)
def _no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep a real ~/.config/sysmon-tui/config.toml out of the tests.
    monkeypatch.setattr(config_mod, "_DEFAULT_PATH", tmp_path / "absent.toml")


class TestLoadConfigDefaults:
    def test_defaults_returned_when_no_file(self) -> None:
        cfg = load_config(None)
        assert cfg["tick_rate_ms"] == 250
        assert cfg["history_size"] == 60
        assert cfg["scan_interval_ms"] == 1000
        assert cfg["scan_ladder_ms"] == [250, 500, 1000, 2000, 5000]
        assert cfg["thresholds"]["cpu_percent"] == {"warning": 60.0, "critical": 85.0}

    def test_all_default_keys_present(self) -> None:
        cfg = load_config(None)
        assert set(cfg.keys()) == set(DEFAULT_CONFIG.keys())

    def test_default_location_used(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        default = tmp_path / "config.toml"
        default.write_text("history_size = 30\n")
        monkeypatch.setattr(config_mod, "_DEFAULT_PATH", default)
        assert load_config(None)["history_size"] == 30

    def test_invalid_default_file_ignored(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        default = tmp_path / "config.toml"
        default.write_text("this is [not valid toml\n")
        monkeypatch.setattr(config_mod, "_DEFAULT_PATH", default)
        cfg = load_config(None)
        assert cfg["history_size"] == 60
        assert "ignoring invalid TOML" in capsys.readouterr().err


class TestTomlOverlay:
    def test_overrides_threshold(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text(
            "[thresholds.cpu_percent]\nwarning = 70.0\ncritical = 90.0\n"
        )
        cfg = load_config(toml_file)
        assert cfg["thresholds"]["cpu_percent"]["warning"] == 70.0
        assert cfg["thresholds"]["cpu_percent"]["critical"] == 90.0
        # Other thresholds remain at defaults
        assert cfg["thresholds"]["temperature"]["warning"] == 60.0

    def test_overrides_scalar(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("tick_rate_ms = 500\nscan_interval_ms = 2000\n")
        cfg = load_config(toml_file)
        assert cfg["tick_rate_ms"] == 500
        assert cfg["scan_interval_ms"] == 2000
        assert cfg["history_size"] == 60

    def test_log_dir_passed_through(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text(f'log_dir = "{tmp_path / "snaps"}"\n')
        cfg = load_config(toml_file)
        assert cfg["log_dir"] == str(tmp_path / "snaps")


class TestExplicitPath:
    def test_missing_explicit_path_errors(self, tmp_path: Path) -> None:
        missing = tmp_path / "nonexistent.toml"
        with pytest.raises(SystemExit):
            load_config(missing)

    def test_invalid_toml_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)

    def test_interval_not_on_ladder_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("scan_interval_ms = 750\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)

    def test_unsorted_ladder_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("scan_ladder_ms = [1000, 250]\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)

    def test_zero_history_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("history_size = 0\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)

    def test_non_numeric_value_errors(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text('history_size = "x"\n')
        with pytest.raises(SystemExit) as exc:
            load_config(bad_file)
        assert exc.value.code == 1
        assert "sysmon-tui: history_size must be an integer" in capsys.readouterr().err


class TestResolveLogDir:
    def test_env_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SYSMON_LOG_DIR", str(tmp_path / "env"))
        cfg = {**DEFAULT_CONFIG, "log_dir": str(tmp_path / "cfg")}
        assert resolve_log_dir(cfg) == tmp_path / "env"

    def test_config_value(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SYSMON_LOG_DIR", raising=False)
        cfg = {**DEFAULT_CONFIG, "log_dir": str(tmp_path / "cfg")}
        assert resolve_log_dir(cfg) == tmp_path / "cfg"

    def test_temp_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SYSMON_LOG_DIR", raising=False)
        monkeypatch.setattr(config_mod.tempfile, "gettempdir", lambda: str(tmp_path))
        assert resolve_log_dir(dict(DEFAULT_CONFIG)) == tmp_path / "sysmon-tui"

    def test_empty_env_ignored(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SYSMON_LOG_DIR", "")
        monkeypatch.setattr(config_mod.tempfile, "gettempdir", lambda: str(tmp_path))
        assert resolve_log_dir(dict(DEFAULT_CONFIG)) == tmp_path / "sysmon-tui"


class TestDumpDefaultConfig:
    def test_is_valid_toml(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert "tick_rate_ms" in parsed
        assert "thresholds" in parsed

    def test_roundtrips_defaults(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert parsed["scan_ladder_ms"] == DEFAULT_CONFIG["scan_ladder_ms"]
        assert parsed["scan_interval_ms"] == DEFAULT_CONFIG["scan_interval_ms"]
        assert parsed["thresholds"]["temperature"]["critical"] == 85.0
        assert "log_dir" not in parsed


class TestDeepMerge:
    def test_scalar_overwrite(self) -> None:
        result = _deep_merge({"a": 1, "b": 2}, {"a": 10})
        assert result == {"a": 10, "b": 2}

    def test_nested_dict_merge(self) -> None:
        base = {"x": {"a": 1, "b": 2}}
        overlay = {"x": {"b": 3, "c": 4}}
        result = _deep_merge(base, overlay)
        assert result["x"] == {"a": 1, "b": 3, "c": 4}

    def test_new_key_added(self) -> None:
        result = _deep_merge({"a": 1}, {"b": 2})
        assert result == {"a": 1, "b": 2}
