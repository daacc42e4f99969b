"""Application state: the single owner of everything the dashboard shows.

Only the main thread touches an AppState, so nothing here is locked.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

from sysmon_tui.collector import Collector
from sysmon_tui.config import DEFAULT_CONFIG, resolve_log_dir
from sysmon_tui.errors import CollectionError, SnapshotWriteError
from sysmon_tui.history import SparklineHistory
from sysmon_tui.models import SortOrder, SystemMetrics, sort_processes
from sysmon_tui.snapshot import SnapshotRecorder, write_snapshot

logger = logging.getLogger(__name__)


def fmt_interval(ms: int) -> str:
    if ms >= 1000:
        return f"{ms / 1000:g}s"
    return f"{ms}ms"


class AppState:
    def __init__(
        self,
        collector: Collector,
        config: dict[str, Any] | None = None,
        log_dir: Path | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        config = config if config is not None else DEFAULT_CONFIG
        self.collector = collector
        self.metrics = SystemMetrics.empty()
        self.history = SparklineHistory(int(config["history_size"]))
        self.sort_order = SortOrder.CPU
        self.ladder: tuple[int, ...] = tuple(config["scan_ladder_ms"])
        self._scan_index = self.ladder.index(config["scan_interval_ms"])
        self.log_dir = log_dir if log_dir is not None else resolve_log_dir(config)
        self.recorder = SnapshotRecorder(self.log_dir)
        self.status: str | None = None
        self.status_ttl_ticks = int(config["status_ttl_ticks"])
        self._status_ttl = 0
        self.quit = False
        self._clock = clock
        self._now = now
        self._last_scan: float | None = None

        self._bindings: dict[str, Callable[[], None]] = {
            "q": self.request_quit,
            "Q": self.request_quit,
            "c": lambda: self.set_sort_order(SortOrder.CPU),
            "C": lambda: self.set_sort_order(SortOrder.CPU),
            "m": lambda: self.set_sort_order(SortOrder.MEM),
            "M": lambda: self.set_sort_order(SortOrder.MEM),
            "[": self.scan_faster,
            "]": self.scan_slower,
            "l": self.take_snapshot,
            "L": self.toggle_recording,
        }

    # ── Scan interval ladder ───────────────────────────────────────────────

    @property
    def scan_interval_ms(self) -> int:
        return self.ladder[self._scan_index]

    @property
    def scan_interval(self) -> float:
        """Seconds between process/thermal scans."""
        return self.scan_interval_ms / 1000.0

    def scan_faster(self) -> None:
        self._scan_index = max(0, self._scan_index - 1)

    def scan_slower(self) -> None:
        self._scan_index = min(len(self.ladder) - 1, self._scan_index + 1)

    # ── Status line ────────────────────────────────────────────────────────

    def set_status(self, message: str) -> None:
        self.status = message
        self._status_ttl = self.status_ttl_ticks

    def _age_status(self) -> None:
        if self._status_ttl > 0:
            self._status_ttl -= 1
            if self._status_ttl == 0:
                self.status = None

    # ── Tick ───────────────────────────────────────────────────────────────

    def _scan_due(self, now: float) -> bool:
        # A scan that overran the interval is not made up for: the next tick
        # after the interval has elapsed simply scans again.
        return self._last_scan is None or now - self._last_scan >= self.scan_interval

    def update_metrics(self) -> bool:
        """Collect a new snapshot. Returns False if this tick's collection failed."""
        self._age_status()
        now = self._clock()
        scan = self._scan_due(now)
        try:
            metrics = self.collector.collect(scan_processes=scan)
        except CollectionError as e:
            logger.warning("collection failed, keeping previous snapshot: %s", e)
            self.set_status(str(e))
            return False

        if scan:
            self._last_scan = now
            processes = metrics.processes
            thermal = metrics.thermal
        else:
            processes = self.metrics.processes
            thermal = self.metrics.thermal

        self.metrics = replace(
            metrics,
            processes=sort_processes(processes, self.sort_order),
            thermal=thermal,
        )
        self.history.push(self.metrics.network, self.metrics.disk)
        self._record()
        return True

    def _record(self) -> None:
        if not self.recorder.active:
            return
        try:
            self.recorder.record(self.metrics.processes, self._now())
        except SnapshotWriteError as e:
            logger.warning("recording stopped: %s", e)
            self.set_status(f"REC stopped: {e}")

    # ── Input ──────────────────────────────────────────────────────────────

    def handle_input(self, key: str) -> None:
        action = self._bindings.get(key)
        if action is not None:
            action()

    def request_quit(self) -> None:
        self.quit = True

    def set_sort_order(self, order: SortOrder) -> None:
        self.sort_order = order
        self.metrics = replace(
            self.metrics, processes=sort_processes(self.metrics.processes, order)
        )

    def take_snapshot(self) -> Path | None:
        try:
            path = write_snapshot(self.metrics.processes, self.log_dir, self._now())
        except SnapshotWriteError as e:
            logger.warning("snapshot failed: %s", e)
            self.set_status(f"snapshot failed: {e.cause}")
            return None
        self.set_status(f"SNAP: {path}")
        return path

    def toggle_recording(self) -> None:
        if self.recorder.active:
            self.recorder.stop()
            self.set_status("REC stopped")
            return
        try:
            path = self.recorder.start(self._now())
        except SnapshotWriteError as e:
            logger.warning("cannot start recording: %s", e)
            self.set_status(f"REC failed: {e.cause}")
            return
        self.set_status(f"REC: {path}")

    def close(self) -> None:
        self.recorder.stop()
