"""Curses panel renderers.

Each panel is a small frozen dataclass holding just the data it shows.
``render()`` looks the renderer up by the widget's type and draws inside
the given region. Renderers keep no state between frames.
"""

from __future__ import annotations

import curses
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sysmon_tui.layout import Rect
from sysmon_tui.models import (
    CpuCoreUsage,
    ProcessInfo,
    RamSwapUsage,
    SortOrder,
    ThermalReading,
)

# ── Constants ──────────────────────────────────────────────────────────────

SPARK = " ▁▂▃▄▅▆▇█"
BAR_FILL = "█"
BAR_EMPTY = "░"

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_BLUE = 6
C_MAGENTA = 7


def init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_BLUE, curses.COLOR_BLUE, -1)
    curses.init_pair(C_MAGENTA, curses.COLOR_MAGENTA, -1)


# ── Severity bands ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Bands:
    """Green below ``warning``, yellow up to ``critical``, red at or above it."""

    warning: float = 60.0
    critical: float = 85.0

    @classmethod
    def from_config(cls, levels: dict[str, Any] | None) -> Bands:
        levels = levels or {}
        return cls(
            warning=float(levels.get("warning", cls.warning)),
            critical=float(levels.get("critical", cls.critical)),
        )


def _severity_color(value: float, warn: float, crit: float) -> int:
    if value >= crit:
        return C_CRITICAL
    if value >= warn:
        return C_WARNING
    return C_NORMAL


def thermal_color(reading: ThermalReading, bands: Bands) -> int:
    """Colour a temperature using the sensor's own limits when it reports them.

    A sensor reporting a single limit is red at that limit and yellow from the
    same fraction of it as the default bands.
    """
    high, crit = reading.high_celsius, reading.critical_celsius
    if high and crit and high < crit:
        return _severity_color(reading.temp_celsius, high, crit)
    limit = crit or high
    if not limit:
        return _severity_color(reading.temp_celsius, bands.warning, bands.critical)
    return _severity_color(
        reading.temp_celsius, limit * bands.warning / bands.critical, limit
    )


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def fmt_rate(bps: float) -> str:
    """Human-readable transfer rate."""
    if bps < 1024:
        return f"{bps:.0f} B/s"
    if bps < 1024 * 1024:
        return f"{bps / 1024:.1f} KB/s"
    if bps < 1024**3:
        return f"{bps / 1024 ** 2:.1f} MB/s"
    return f"{bps / 1024 ** 3:.1f} GB/s"


def sparkline_rows(values: Sequence[float], width: int, height: int = 1) -> list[str]:
    """Block-character sparkline, top row first.

    Uses the newest *width* values, oldest on the left, scaled so the largest
    visible value fills the full *height*.
    """
    if width < 1 or height < 1:
        return []
    shown = list(values)[-width:]
    peak = max(shown, default=0.0)
    steps = len(SPARK) - 1
    levels = [
        int(round(min(v / peak, 1.0) * height * steps)) if peak > 0 else 0
        for v in shown
    ]
    rows = []
    for r in range(height - 1, -1, -1):
        rows.append(
            "".join(SPARK[max(0, min(level - r * steps, steps))] for level in levels)
        )
    return rows


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_box(win: curses.window, region: Rect, title: str = "") -> curses.window | None:
    """Draw a bordered box over *region* and return it as a sub-window."""
    max_y, max_x = win.getmaxyx()
    h = min(region.height, max_y - region.y)
    w = min(region.width, max_x - region.x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.subwin(h, w, region.y, region.x)
        sub.box()
        if title and len(title) + 4 < w:
            sub.addstr(
                0, 2, f" {title} ", curses.color_pair(C_TITLE) | curses.A_BOLD
            )
        return sub
    except curses.error:
        return None


def _draw_bar(
    win: curses.window,
    y: int,
    x: int,
    width: int,
    pct: float,
    label: str = "",
    color: int = C_NORMAL,
    suffix: str | None = None,
) -> None:
    """Render ``label ████░░░░ suffix`` on one line."""
    max_y, max_x = win.getmaxyx()
    if y >= max_y - 1 or x >= max_x - 1:
        return

    cx = x
    if label:
        _safe(win, y, cx, f"{label:>5s} ", curses.color_pair(C_DIM))
        cx += 6

    if suffix is None:
        suffix = f" {pct:5.1f}%"

    bar_w = min(width - (cx - x) - len(suffix), max_x - cx - len(suffix) - 1)
    if bar_w < 3:
        _safe(win, y, cx, suffix.strip(), curses.color_pair(color) | curses.A_BOLD)
        return

    filled = int(bar_w * min(max(pct, 0.0), 100.0) / 100.0)
    empty = bar_w - filled

    _safe(win, y, cx, BAR_FILL * filled, curses.color_pair(color) | curses.A_BOLD)
    _safe(win, BAR_EMPTY * empty, curses.color_pair(C_DIM))
    _safe(win, suffix, curses.color_pair(color) | curses.A_BOLD)


def _draw_sparkline(
    win: curses.window,
    y: int,
    x: int,
    width: int,
    height: int,
    values: Sequence[float],
    color: int = C_BLUE,
) -> None:
    max_y, max_x = win.getmaxyx()
    width = min(width, max_x - x - 1)
    height = min(height, max_y - y - 1)
    for i, line in enumerate(sparkline_rows(values, width, height)):
        _safe(win, y + i, x, line, curses.color_pair(color))


# ── Widgets ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CpuBars:
    cores: tuple[CpuCoreUsage, ...]
    bands: Bands = Bands()


@dataclass(frozen=True)
class RamGauge:
    ram: RamSwapUsage
    swap: RamSwapUsage
    bands: Bands = Bands()


@dataclass(frozen=True)
class ThermalTable:
    readings: tuple[ThermalReading, ...]
    bands: Bands = Bands()


@dataclass(frozen=True)
class NetworkSparkline:
    rx: tuple[float, ...]
    tx: tuple[float, ...]


@dataclass(frozen=True)
class DiskSparkline:
    read: tuple[float, ...]
    write: tuple[float, ...]


@dataclass(frozen=True)
class ProcessTable:
    processes: tuple[ProcessInfo, ...]
    sort_order: SortOrder
    bands: Bands = Bands()


@dataclass(frozen=True)
class StatusBar:
    scan_interval: str
    sort_order: SortOrder
    message: str | None = None
    recording: bool = False


Widget = (
    CpuBars
    | RamGauge
    | ThermalTable
    | NetworkSparkline
    | DiskSparkline
    | ProcessTable
    | StatusBar
)


def _render_cpu(win: curses.window, region: Rect, widget: CpuBars) -> None:
    cores = widget.cores
    avg = sum(c.usage_percent for c in cores) / len(cores) if cores else 0.0
    box = _draw_box(win, region, f"CPU ({len(cores)} cores)")
    if not box:
        return
    warn, crit = widget.bands.warning, widget.bands.critical
    w, h = region.width, region.height
    row = 1

    _draw_bar(box, row, 1, w - 3, avg, "Avg", _severity_color(avg, warn, crit))
    row += 1

    # Per-core bars (capped to available space)
    room = max(0, h - 1 - row)
    max_cores = len(cores) if len(cores) <= room else max(0, room - 1)
    for core in cores[:max_cores]:
        pct = core.usage_percent
        _draw_bar(
            box, row, 1, w - 3, pct, f"#{core.core_id}", _severity_color(pct, warn, crit)
        )
        row += 1
    if len(cores) > max_cores and row < h - 1:
        _safe(
            box,
            row,
            2,
            f"... +{len(cores) - max_cores} cores",
            curses.color_pair(C_DIM),
        )


def _render_ram(win: curses.window, region: Rect, widget: RamGauge) -> None:
    box = _draw_box(win, region, "Memory")
    if not box:
        return
    warn, crit = widget.bands.warning, widget.bands.critical
    w = region.width
    row = 1
    for label, usage in (("RAM", widget.ram), ("Swap", widget.swap)):
        pct = usage.percent
        _draw_bar(box, row, 1, w - 3, pct, label, _severity_color(pct, warn, crit))
        row += 1
        detail = f"      {fmt_bytes(usage.used_bytes)} / {fmt_bytes(usage.total_bytes)}"
        _safe(box, row, 1, detail[: w - 3], curses.color_pair(C_DIM))
        row += 2


def _render_thermal(win: curses.window, region: Rect, widget: ThermalTable) -> None:
    box = _draw_box(win, region, "Thermals")
    if not box:
        return
    w, h = region.width, region.height
    if not widget.readings:
        _safe(box, 1, 2, "No sensors found", curses.color_pair(C_DIM))
        return
    name_w = max(4, w - 20)
    for row, reading in enumerate(widget.readings[: h - 2], start=1):
        crit = (
            f"/{reading.critical_celsius:.0f}°C"
            if reading.critical_celsius is not None
            else ""
        )
        _safe(box, row, 2, f"{reading.label[:name_w]:<{name_w}s}", curses.color_pair(C_DIM))
        _safe(
            box,
            f" {reading.temp_celsius:5.1f}°C{crit}",
            curses.color_pair(thermal_color(reading, widget.bands)) | curses.A_BOLD,
        )


def _draw_series_pair(
    box: curses.window,
    region: Rect,
    series: Sequence[tuple[str, Sequence[float], int]],
) -> None:
    inner_h = region.height - 2
    inner_w = region.width - 4
    per_series = max(1, inner_h // len(series))
    row = 1
    for label, values, color in series:
        if row >= region.height - 1:
            break
        current = values[-1] if values else 0.0
        _safe(box, row, 2, f"{label} ", curses.color_pair(C_DIM))
        _safe(box, fmt_rate(current), curses.color_pair(color) | curses.A_BOLD)
        _draw_sparkline(box, row + 1, 2, inner_w, per_series - 1, values, color)
        row += per_series


def _render_network(win: curses.window, region: Rect, widget: NetworkSparkline) -> None:
    box = _draw_box(win, region, "Network")
    if not box:
        return
    _draw_series_pair(box, region, (("RX", widget.rx, C_NORMAL), ("TX", widget.tx, C_WARNING)))


def _render_disk(win: curses.window, region: Rect, widget: DiskSparkline) -> None:
    box = _draw_box(win, region, "Disk I/O")
    if not box:
        return
    _draw_series_pair(
        box, region, (("Read", widget.read, C_BLUE), ("Write", widget.write, C_MAGENTA))
    )


def _render_processes(win: curses.window, region: Rect, widget: ProcessTable) -> None:
    title = "Processes (by CPU)" if widget.sort_order is SortOrder.CPU else "Processes (by MEM)"
    box = _draw_box(win, region, title)
    if not box:
        return
    w, h = region.width, region.height
    row = 1

    cpu_hdr = "CPU%▼" if widget.sort_order is SortOrder.CPU else "CPU%"
    mem_hdr = "MEM▼" if widget.sort_order is SortOrder.MEM else "MEM"
    hdr = f" {'PID':>7s}  {cpu_hdr:>6s}  {mem_hdr:>10s}  NAME"
    _safe(box, row, 1, hdr[: w - 3], curses.color_pair(C_TITLE) | curses.A_BOLD)
    row += 1

    max_rows = max(0, min(len(widget.processes), h - 3))
    for p in widget.processes[:max_rows]:
        line = (
            f" {p.pid:>7d}  {p.cpu_percent:>5.1f}%"
            f"  {fmt_bytes(p.mem_bytes):>10s}  {p.name}"
        )
        color = _severity_color(p.cpu_percent, widget.bands.warning, widget.bands.critical)
        _safe(box, row, 1, line[: w - 3], curses.color_pair(color))
        row += 1


def _render_status(win: curses.window, region: Rect, widget: StatusBar) -> None:
    w = region.width
    if w < 2:
        return
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    parts = [f" Scan: {widget.scan_interval}", f"Sort: {widget.sort_order.name}"]
    if widget.recording:
        parts.append("REC")
    if widget.message:
        parts.append(widget.message)
    parts.append("[/] scan  l:snap  L:rec  c/m:sort  q:quit")
    text = " | ".join(parts)
    _safe(win, region.y, region.x, f"{text:<{w - 1}s}"[: w - 1], attr)


_RENDERERS: dict[type, Callable[[Any, Rect, Any], None]] = {
    CpuBars: _render_cpu,
    RamGauge: _render_ram,
    ThermalTable: _render_thermal,
    NetworkSparkline: _render_network,
    DiskSparkline: _render_disk,
    ProcessTable: _render_processes,
    StatusBar: _render_status,
}


def render(win: curses.window, region: Rect, widget: Widget) -> None:
    """Draw *widget* inside *region* of *win*."""
    if region.empty:
        return
    _RENDERERS[type(widget)](win, region, widget)
