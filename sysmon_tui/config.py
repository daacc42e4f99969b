"""Configuration loading for sysmon-tui.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sysmon-tui/config.toml → defaults only.
The snapshot directory additionally honours $SYSMON_LOG_DIR, which wins over the file.
"""

from __future__ import annotations

import os
import sys
import tempfile
import tomllib
from pathlib import Path
from typing import Any

LOG_DIR_ENV = "SYSMON_LOG_DIR"

DEFAULT_CONFIG: dict[str, Any] = {
    "tick_rate_ms": 250,
    "history_size": 60,
    "scan_interval_ms": 1000,
    "scan_ladder_ms": [250, 500, 1000, 2000, 5000],
    "status_ttl_ticks": 12,
    "thresholds": {
        "cpu_percent": {"warning": 60.0, "critical": 85.0},
        "ram_percent": {"warning": 60.0, "critical": 85.0},
        "temperature": {"warning": 60.0, "critical": 85.0},
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "sysmon-tui" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _validate(config: dict[str, Any], source: Path) -> None:
    ladder = config["scan_ladder_ms"]
    if not ladder or sorted(ladder) != list(ladder) or min(ladder) <= 0:
        print(
            f"sysmon-tui: scan_ladder_ms must be ascending positive values ({source})",
            file=sys.stderr,
        )
        raise SystemExit(1)
    if config["scan_interval_ms"] not in ladder:
        print(
            f"sysmon-tui: scan_interval_ms {config['scan_interval_ms']} "
            f"is not one of {ladder} ({source})",
            file=sys.stderr,
        )
        raise SystemExit(1)
    for key in ("tick_rate_ms", "history_size", "status_ttl_ticks"):
        try:
            value = int(config[key])
        except (TypeError, ValueError):
            print(
                f"sysmon-tui: {key} must be an integer, got {config[key]!r} ({source})",
                file=sys.stderr,
            )
            raise SystemExit(1) from None
        if value < 1:
            print(f"sysmon-tui: {key} must be >= 1 ({source})", file=sys.stderr)
            raise SystemExit(1)


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sysmon-tui/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist, can't be parsed, or
            holds invalid values.
    """
    if path is not None:
        if not path.is_file():
            print(f"sysmon-tui: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"sysmon-tui: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        merged = _deep_merge(DEFAULT_CONFIG, user_config)
        _validate(merged, path)
        return merged

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            merged = _deep_merge(DEFAULT_CONFIG, user_config)
            _validate(merged, _DEFAULT_PATH)
            return merged
        except tomllib.TOMLDecodeError:
            print(
                f"sysmon-tui: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def resolve_log_dir(config: dict[str, Any]) -> Path:
    """Directory for CSV snapshots: $SYSMON_LOG_DIR, then ``log_dir``, then a temp dir."""
    env = os.environ.get(LOG_DIR_ENV)
    if env:
        return Path(env).expanduser()
    configured = config.get("log_dir")
    if configured:
        return Path(str(configured)).expanduser()
    return Path(tempfile.gettempdir()) / "sysmon-tui"


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    ladder = ", ".join(str(v) for v in DEFAULT_CONFIG["scan_ladder_ms"])
    lines = [
        "# sysmon-tui configuration",
        "# Place this file at ~/.config/sysmon-tui/config.toml",
        "",
        f"tick_rate_ms = {DEFAULT_CONFIG['tick_rate_ms']}",
        f"history_size = {DEFAULT_CONFIG['history_size']}",
        f"scan_interval_ms = {DEFAULT_CONFIG['scan_interval_ms']}",
        f"scan_ladder_ms = [{ladder}]",
        f"status_ttl_ticks = {DEFAULT_CONFIG['status_ttl_ticks']}",
        f'# log_dir = "/var/tmp/sysmon-tui"   # ${LOG_DIR_ENV} takes precedence',
        "",
    ]

    for metric, levels in DEFAULT_CONFIG["thresholds"].items():
        lines.append(f"[thresholds.{metric}]")
        lines.append(f"warning = {levels['warning']}")
        lines.append(f"critical = {levels['critical']}")
        lines.append("")

    return "\n".join(lines) + "\n"
