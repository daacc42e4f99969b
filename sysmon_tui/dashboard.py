"""Interactive terminal dashboard: sysmon-tui's main loop.

Displays live per-core CPU, RAM/swap, thermal sensors, network and disk I/O
sparklines and a sortable process table using curses. A background thread
turns key presses and timer ticks into events; the main thread owns all
state and redraws after every event.

Usage:
    sysmon-tui
    sysmon-tui --tick-rate 500 --config path/to/config.toml --log-file /tmp/sysmon-tui.log

Keys: q quit, c/m sort by CPU/memory, [ ] scan interval, l snapshot, L record.
"""

from __future__ import annotations

import argparse
import curses
import logging
import os
from pathlib import Path
from typing import Any

from sysmon_tui.app import AppState, fmt_interval
from sysmon_tui.collector import Collector
from sysmon_tui.config import dump_default_config, load_config, resolve_log_dir
from sysmon_tui.errors import ChannelClosed
from sysmon_tui.events import EventSource, Input, StdinKeyPoller, Tick
from sysmon_tui.layout import Rect, Regions, compute
from sysmon_tui.widgets import (
    Bands,
    CpuBars,
    DiskSparkline,
    NetworkSparkline,
    ProcessTable,
    RamGauge,
    StatusBar,
    ThermalTable,
    Widget,
    init_colors,
    render,
)

logger = logging.getLogger(__name__)

MIN_WIDTH = 40
MIN_HEIGHT = 10


# ── Frame ──────────────────────────────────────────────────────────────────


def view(
    state: AppState, regions: Regions, thresholds: dict[str, Any]
) -> list[tuple[Rect, Widget]]:
    """Map the current state onto one widget per region. Reads state only."""
    m = state.metrics
    h = state.history
    return [
        (regions.cpu, CpuBars(m.cpu_cores, Bands.from_config(thresholds.get("cpu_percent")))),
        (regions.ram, RamGauge(m.ram, m.swap, Bands.from_config(thresholds.get("ram_percent")))),
        (
            regions.thermal,
            ThermalTable(
                tuple(m.thermal.values()), Bands.from_config(thresholds.get("temperature"))
            ),
        ),
        (regions.network, NetworkSparkline(tuple(h.net_rx), tuple(h.net_tx))),
        (regions.disk, DiskSparkline(tuple(h.disk_read), tuple(h.disk_write))),
        (
            regions.process,
            ProcessTable(
                m.processes, state.sort_order, Bands.from_config(thresholds.get("cpu_percent"))
            ),
        ),
        (
            regions.status,
            StatusBar(
                fmt_interval(state.scan_interval_ms),
                state.sort_order,
                state.status,
                state.recorder.active,
            ),
        ),
    ]


def _sync_size(stdscr: curses.window) -> None:
    # Keys are read from the fd directly, so curses never sees KEY_RESIZE.
    try:
        cols, lines = os.get_terminal_size()
    except OSError:
        return
    if curses.is_term_resized(lines, cols):
        curses.resize_term(lines, cols)
        stdscr.clear()


def draw(stdscr: curses.window, state: AppState, thresholds: dict[str, Any]) -> None:
    _sync_size(stdscr)
    max_y, max_x = stdscr.getmaxyx()
    stdscr.erase()
    if max_y < MIN_HEIGHT or max_x < MIN_WIDTH:
        try:
            stdscr.addstr(0, 0, f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)")
        except curses.error:
            pass
    else:
        for region, widget in view(state, compute(Rect(0, 0, max_x, max_y)), thresholds):
            render(stdscr, region, widget)
    stdscr.refresh()


# ── Main loop ──────────────────────────────────────────────────────────────


def run(
    stdscr: curses.window,
    state: AppState,
    events: EventSource,
    thresholds: dict[str, Any],
) -> None:
    """Draw, wait for the next event, apply it; until quit or the event source dies."""
    while not state.quit:
        draw(stdscr, state, thresholds)
        try:
            event = events.recv()
        except ChannelClosed:
            logger.error("event source closed, exiting")
            return
        if isinstance(event, Tick):
            state.update_metrics()
        elif isinstance(event, Input):
            state.handle_input(event.key)


def _dashboard_loop(stdscr: curses.window, config: dict[str, Any], log_dir: Path) -> None:
    init_colors()
    curses.curs_set(0)

    collector = Collector()
    collector.prime()
    state = AppState(collector, config, log_dir)
    events = EventSource(StdinKeyPoller(), config["tick_rate_ms"] / 1000.0)
    thresholds: dict[str, Any] = config["thresholds"]

    logger.info(
        "starting: tick %dms, scan %s, snapshots in %s",
        config["tick_rate_ms"],
        fmt_interval(state.scan_interval_ms),
        log_dir,
    )
    events.start()
    try:
        run(stdscr, state, events, thresholds)
    finally:
        events.stop()
        state.close()


# ── CLI entry point ────────────────────────────────────────────────────────


def _setup_logging(log_file: Path | None, level: str) -> None:
    # curses owns the screen, so without a file nothing is emitted.
    handlers: list[logging.Handler]
    if log_file is None:
        handlers = [logging.NullHandler()]
    else:
        handlers = [logging.FileHandler(log_file, encoding="utf-8")]
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Live terminal system monitor with sparklines and a sortable process table.",
    )
    parser.add_argument(
        "--tick-rate",
        type=int,
        default=None,
        metavar="MS",
        help="Milliseconds between ticks (default: 250)",
    )
    parser.add_argument(
        "--history",
        type=int,
        default=None,
        metavar="N",
        help="Samples kept per sparkline (default: 60)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write diagnostic logs to this file",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
        help="Log level for --log-file (default: INFO)",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args()

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    if args.tick_rate is not None:
        if args.tick_rate < 1:
            parser.error("--tick-rate must be >= 1")
        config["tick_rate_ms"] = args.tick_rate
    if args.history is not None:
        if args.history < 1:
            parser.error("--history must be >= 1")
        config["history_size"] = args.history

    _setup_logging(args.log_file, args.log_level)
    log_dir = resolve_log_dir(config)
    try:
        curses.wrapper(_dashboard_loop, config, log_dir)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
