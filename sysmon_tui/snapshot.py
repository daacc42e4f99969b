"""CSV export of the process table.

One-off snapshots (``l``) go to their own timestamped file; continuous
recording (``L``) appends every tick's table to a single file. Both use::

    timestamp,pid,name,cpu_percent,mem_bytes
    2026-02-10T05:15:30.123,150627,python3,407.5,26755072000
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import TextIO

from sysmon_tui.errors import SnapshotWriteError
from sysmon_tui.models import ProcessInfo

logger = logging.getLogger(__name__)

HEADER = ("timestamp", "pid", "name", "cpu_percent", "mem_bytes")
FILENAME_FORMAT = "sysmon-%Y-%m-%d_%H-%M-%S.csv"
RECORDING_FORMAT = "sysmon-rec-%Y-%m-%d_%H-%M-%S.csv"


def snapshot_filename(now: datetime) -> str:
    return now.strftime(FILENAME_FORMAT)


def format_timestamp(now: datetime) -> str:
    """ISO-8601 local time to the millisecond, e.g. ``2026-02-10T05:15:30.123``."""
    return now.isoformat(timespec="milliseconds")


def _rows(processes: Iterable[ProcessInfo], stamp: str) -> Iterable[list[str]]:
    for p in processes:
        yield [stamp, str(p.pid), p.name, f"{p.cpu_percent:.1f}", str(int(p.mem_bytes))]


def write_snapshot(
    processes: Iterable[ProcessInfo],
    directory: Path,
    now: datetime | None = None,
) -> Path:
    """Write *processes*, in the given order, to a new CSV file in *directory*.

    Returns:
        Path of the file written.

    Raises:
        SnapshotWriteError: the directory or file could not be created/written.
    """
    now = now or datetime.now()
    path = Path(directory) / snapshot_filename(now)
    stamp = format_timestamp(now)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as f:
            w = csv.writer(f, lineterminator="\n")
            w.writerow(HEADER)
            w.writerows(_rows(processes, stamp))
    except OSError as e:
        raise SnapshotWriteError(path, e) from e
    logger.info("wrote process snapshot %s", path)
    return path


def read_snapshot(path: Path) -> list[ProcessInfo]:
    """Parse a snapshot (or recording) file back into ProcessInfo rows."""
    with Path(path).open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        return [
            ProcessInfo(
                pid=int(row["pid"]),
                name=row["name"],
                cpu_percent=float(row["cpu_percent"]),
                mem_bytes=int(row["mem_bytes"]),
            )
            for row in reader
        ]


class SnapshotRecorder:
    """Continuous CSV log: one file, one batch of rows per tick."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.path: Path | None = None
        self._file: TextIO | None = None

    @property
    def active(self) -> bool:
        return self._file is not None

    def start(self, now: datetime | None = None) -> Path:
        if self._file is not None and self.path is not None:
            return self.path
        now = now or datetime.now()
        path = self.directory / now.strftime(RECORDING_FORMAT)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            f = path.open("w", newline="", encoding="utf-8")
        except OSError as e:
            raise SnapshotWriteError(path, e) from e
        try:
            csv.writer(f, lineterminator="\n").writerow(HEADER)
            f.flush()
        except OSError as e:
            f.close()
            raise SnapshotWriteError(path, e) from e
        self._file = f
        self.path = path
        logger.info("recording process table to %s", path)
        return path

    def record(self, processes: Iterable[ProcessInfo], now: datetime | None = None) -> None:
        if self._file is None:
            return
        stamp = format_timestamp(now or datetime.now())
        try:
            csv.writer(self._file, lineterminator="\n").writerows(_rows(processes, stamp))
            self._file.flush()
        except OSError as e:
            path = self.path
            self.stop()
            raise SnapshotWriteError(path, e) from e

    def stop(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            logger.warning("closing %s failed: %s", self.path, e)
        finally:
            logger.info("stopped recording to %s", self.path)
            self._file = None
            self.path = None
