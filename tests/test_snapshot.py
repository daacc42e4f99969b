"""Tests for CSV snapshots and continuous recording."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from sysmon_tui.errors import SnapshotWriteError
from sysmon_tui.models import ProcessInfo
from sysmon_tui.snapshot import (
    HEADER,
    SnapshotRecorder,
    format_timestamp,
    read_snapshot,
    snapshot_filename,
    write_snapshot,
)

INSTANT = datetime(2026, 2, 10, 5, 15, 30, 123456)
PYTHON3 = ProcessInfo(pid=150627, name="python3", cpu_percent=407.5, mem_bytes=26755072000)


class TestFormatting:
    def test_timestamp_millisecond_precision(self) -> None:
        assert format_timestamp(INSTANT) == "2026-02-10T05:15:30.123"

    def test_timestamp_zero_millis(self) -> None:
        assert format_timestamp(datetime(2026, 1, 1, 0, 0, 0)) == "2026-01-01T00:00:00.000"

    def test_filename(self) -> None:
        assert snapshot_filename(INSTANT) == "sysmon-2026-02-10_05-15-30.csv"


class TestWriteSnapshot:
    def test_known_row(self, tmp_path: Path) -> None:
        path = write_snapshot([PYTHON3], tmp_path, INSTANT)
        lines = path.read_text().splitlines()
        assert lines[0] == "timestamp,pid,name,cpu_percent,mem_bytes"
        assert lines[1] == "2026-02-10T05:15:30.123,150627,python3,407.5,26755072000"
        assert len(lines) == 2

    def test_path_in_directory(self, tmp_path: Path) -> None:
        path = write_snapshot([PYTHON3], tmp_path, INSTANT)
        assert path == tmp_path / "sysmon-2026-02-10_05-15-30.csv"

    def test_round_trip(self, tmp_path: Path) -> None:
        path = write_snapshot([PYTHON3], tmp_path, INSTANT)
        assert read_snapshot(path) == [PYTHON3]

    def test_rows_keep_given_order(self, tmp_path: Path) -> None:
        procs = [
            ProcessInfo(3, "c", 1.0, 10),
            ProcessInfo(1, "a", 9.0, 30),
            ProcessInfo(2, "b", 5.0, 20),
        ]
        path = write_snapshot(procs, tmp_path, INSTANT)
        assert [p.pid for p in read_snapshot(path)] == [3, 1, 2]

    def test_same_timestamp_on_every_row(self, tmp_path: Path) -> None:
        procs = [ProcessInfo(i, f"p{i}", 0.0, 0) for i in range(5)]
        path = write_snapshot(procs, tmp_path, INSTANT)
        stamps = {line.split(",")[0] for line in path.read_text().splitlines()[1:]}
        assert stamps == {"2026-02-10T05:15:30.123"}

    def test_cpu_one_decimal(self, tmp_path: Path) -> None:
        path = write_snapshot([ProcessInfo(1, "x", 12.345, 7)], tmp_path, INSTANT)
        assert path.read_text().splitlines()[1].endswith(",x,12.3,7")

    def test_name_with_comma_round_trips(self, tmp_path: Path) -> None:
        proc = ProcessInfo(7, "Web Content, tab 3", 1.5, 2048)
        path = write_snapshot([proc], tmp_path, INSTANT)
        assert read_snapshot(path) == [proc]

    def test_empty_table_writes_header(self, tmp_path: Path) -> None:
        path = write_snapshot([], tmp_path, INSTANT)
        assert path.read_text() == ",".join(HEADER) + "\n"

    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        path = write_snapshot([PYTHON3], target, INSTANT)
        assert path.parent == target
        assert path.is_file()

    def test_unwritable_directory_reported(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(SnapshotWriteError) as exc:
            write_snapshot([PYTHON3], blocker / "sub", INSTANT)
        assert isinstance(exc.value.cause, OSError)


class TestSnapshotRecorder:
    def test_records_each_batch(self, tmp_path: Path) -> None:
        rec = SnapshotRecorder(tmp_path)
        path = rec.start(INSTANT)
        assert rec.active
        rec.record([PYTHON3], INSTANT)
        rec.record([PYTHON3, ProcessInfo(1, "init", 0.0, 10)], INSTANT)
        rec.stop()
        assert not rec.active
        assert len(read_snapshot(path)) == 3

    def test_file_name_distinct_from_snapshots(self, tmp_path: Path) -> None:
        rec = SnapshotRecorder(tmp_path)
        path = rec.start(INSTANT)
        rec.stop()
        assert path.name == "sysmon-rec-2026-02-10_05-15-30.csv"
        assert path.name != snapshot_filename(INSTANT)

    def test_record_when_inactive_is_noop(self, tmp_path: Path) -> None:
        rec = SnapshotRecorder(tmp_path)
        rec.record([PYTHON3], INSTANT)
        assert list(tmp_path.iterdir()) == []

    def test_start_twice_returns_same_file(self, tmp_path: Path) -> None:
        rec = SnapshotRecorder(tmp_path)
        first = rec.start(INSTANT)
        second = rec.start(datetime(2026, 2, 10, 6, 0, 0))
        rec.stop()
        assert first == second

    def test_start_failure_reported(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        rec = SnapshotRecorder(blocker / "sub")
        with pytest.raises(SnapshotWriteError):
            rec.start(INSTANT)
        assert not rec.active
