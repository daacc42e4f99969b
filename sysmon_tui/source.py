"""Metric source: the thin query layer over psutil and /sys.

The collector only talks to the ``MetricSource`` protocol, so tests can hand
it a fake. ``PsutilSource`` is the real thing.
"""

from __future__ import annotations

import logging
import os
from typing import NamedTuple, Protocol

import psutil

from sysmon_tui.errors import SensorUnavailable
from sysmon_tui.models import ProcessInfo, ThermalReading

logger = logging.getLogger(__name__)

THERMAL_ZONE_ROOT = "/sys/devices/virtual/thermal"


class MemoryReading(NamedTuple):
    used: int
    total: int


class ByteCounters(NamedTuple):
    """Cumulative byte counters: (received, sent) for NICs, (read, written) for disks."""

    inbound: int
    outbound: int


class MetricSource(Protocol):
    def cpu_per_core(self) -> list[float]: ...

    def memory(self) -> MemoryReading: ...

    def swap(self) -> MemoryReading: ...

    def net_counters(self) -> dict[str, ByteCounters]: ...

    def disk_counters(self) -> ByteCounters | None: ...

    def processes(self) -> list[ProcessInfo]: ...

    def thermal_sensors(self) -> dict[str, ThermalReading]: ...


# ── Thermal helpers ────────────────────────────────────────────────────────


def read_thermal_zone(path: str) -> ThermalReading:
    """Read one ``thermal_zoneN`` directory. Raises SensorUnavailable if unreadable."""
    zone = os.path.basename(path)
    try:
        with open(os.path.join(path, "type")) as f:
            label = f.read().strip() or zone
    except OSError:
        label = zone
    try:
        with open(os.path.join(path, "temp")) as f:
            millideg = int(f.read().strip())
    except (OSError, ValueError) as e:
        raise SensorUnavailable(label, str(e)) from e
    return ThermalReading(label=label, temp_celsius=millideg / 1000.0)


def _unique_label(label: str, taken: dict[str, ThermalReading]) -> str:
    if label not in taken:
        return label
    n = 2
    while f"{label}#{n}" in taken:
        n += 1
    return f"{label}#{n}"


def _zone_readings(root: str) -> dict[str, ThermalReading]:
    readings: dict[str, ThermalReading] = {}
    try:
        entries = sorted(os.listdir(root))
    except OSError:
        return readings
    for name in entries:
        if not name.startswith("thermal_zone"):
            continue
        try:
            reading = read_thermal_zone(os.path.join(root, name))
        except SensorUnavailable as e:
            logger.debug("omitting %s", e)
            continue
        readings[_unique_label(reading.label, readings)] = reading
    return readings


def _hwmon_readings() -> dict[str, ThermalReading]:
    try:
        temps = psutil.sensors_temperatures()
    except AttributeError:
        # Not provided on this platform (macOS, Windows).
        return {}
    readings: dict[str, ThermalReading] = {}
    for chip, entries in (temps or {}).items():
        for i, entry in enumerate(entries):
            if entry.current is None:
                logger.debug("omitting %s sensor %d: no reading", chip, i)
                continue
            label = f"{chip}/{entry.label or i}"
            readings[_unique_label(label, readings)] = ThermalReading(
                label=label,
                temp_celsius=float(entry.current),
                high_celsius=float(entry.high) if entry.high else None,
                critical_celsius=float(entry.critical) if entry.critical else None,
            )
    return readings


# ── psutil-backed source ───────────────────────────────────────────────────


class PsutilSource:
    """MetricSource reading the local host through psutil."""

    def __init__(self, thermal_zone_root: str = THERMAL_ZONE_ROOT) -> None:
        self.thermal_zone_root = thermal_zone_root

    def cpu_per_core(self) -> list[float]:
        return [float(v) for v in psutil.cpu_percent(interval=None, percpu=True)]

    def memory(self) -> MemoryReading:
        vm = psutil.virtual_memory()
        return MemoryReading(int(vm.used), int(vm.total))

    def swap(self) -> MemoryReading:
        sw = psutil.swap_memory()
        return MemoryReading(int(sw.used), int(sw.total))

    def net_counters(self) -> dict[str, ByteCounters]:
        pernic = psutil.net_io_counters(pernic=True) or {}
        return {
            nic: ByteCounters(c.bytes_recv, c.bytes_sent) for nic, c in pernic.items()
        }

    def disk_counters(self) -> ByteCounters | None:
        # Kernel-wide totals, i.e. the I/O of every process on the host.
        io = psutil.disk_io_counters()
        if io is None:
            return None
        return ByteCounters(io.read_bytes, io.write_bytes)

    def processes(self) -> list[ProcessInfo]:
        procs: list[ProcessInfo] = []
        for proc in psutil.process_iter(["pid", "name", "cpu_percent", "memory_info"]):
            try:
                info = proc.info
                mem_info = info.get("memory_info")
                procs.append(
                    ProcessInfo(
                        pid=int(info["pid"]),
                        name=info.get("name") or "?",
                        cpu_percent=float(info.get("cpu_percent") or 0.0),
                        mem_bytes=int(mem_info.rss) if mem_info else 0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, AttributeError):
                continue
        return procs

    def thermal_sensors(self) -> dict[str, ThermalReading]:
        readings = _zone_readings(self.thermal_zone_root)
        for label, reading in _hwmon_readings().items():
            readings[_unique_label(label, readings)] = reading
        return readings

    def prime(self) -> None:
        """Take the baseline CPU samples psutil needs before percentages mean anything."""
        psutil.cpu_percent(interval=None, percpu=True)
        # process_iter() caches Process objects, so this seeds their cpu_percent.
        for _ in psutil.process_iter(["cpu_percent"]):
            pass
