"""Snapshot data types shared by the collector, app state and widgets."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


class SortOrder(enum.Enum):
    CPU = "cpu"
    MEM = "mem"


@dataclass(frozen=True)
class CpuCoreUsage:
    core_id: int
    usage_percent: float


@dataclass(frozen=True)
class RamSwapUsage:
    used_bytes: int = 0
    total_bytes: int = 0

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return 100.0 * self.used_bytes / self.total_bytes


@dataclass(frozen=True)
class NetworkStats:
    rx_bytes_per_sec: float = 0.0
    tx_bytes_per_sec: float = 0.0


@dataclass(frozen=True)
class DiskIOStats:
    read_bytes_per_sec: float = 0.0
    write_bytes_per_sec: float = 0.0


@dataclass(frozen=True)
class ProcessInfo:
    pid: int
    name: str
    cpu_percent: float
    mem_bytes: int


@dataclass(frozen=True)
class ThermalReading:
    """One temperature sensor. ``high``/``critical`` come from the sensor, if it reports them."""

    label: str
    temp_celsius: float
    high_celsius: float | None = None
    critical_celsius: float | None = None


def _frozen_mapping() -> Mapping[str, ThermalReading]:
    return MappingProxyType({})


@dataclass(frozen=True)
class SystemMetrics:
    """One complete point-in-time snapshot. Never mutated after construction."""

    cpu_cores: tuple[CpuCoreUsage, ...] = ()
    ram: RamSwapUsage = field(default_factory=RamSwapUsage)
    swap: RamSwapUsage = field(default_factory=RamSwapUsage)
    network: NetworkStats = field(default_factory=NetworkStats)
    disk: DiskIOStats = field(default_factory=DiskIOStats)
    processes: tuple[ProcessInfo, ...] = ()
    thermal: Mapping[str, ThermalReading] = field(default_factory=_frozen_mapping)

    def __post_init__(self) -> None:
        # Accept any iterable/mapping from callers but store immutable copies.
        object.__setattr__(self, "cpu_cores", tuple(self.cpu_cores))
        object.__setattr__(self, "processes", tuple(self.processes))
        if not isinstance(self.thermal, MappingProxyType):
            object.__setattr__(self, "thermal", MappingProxyType(dict(self.thermal)))

    @classmethod
    def empty(cls) -> SystemMetrics:
        return cls()

    @property
    def cpu_average(self) -> float:
        if not self.cpu_cores:
            return 0.0
        return sum(c.usage_percent for c in self.cpu_cores) / len(self.cpu_cores)


# ── Process table ordering ─────────────────────────────────────────────────


def _cpu_key(p: ProcessInfo) -> tuple[float, int]:
    return (-p.cpu_percent, p.pid)


def _mem_key(p: ProcessInfo) -> tuple[int, int]:
    return (-p.mem_bytes, p.pid)


_SORT_KEYS = {
    SortOrder.CPU: _cpu_key,
    SortOrder.MEM: _mem_key,
}


def sort_processes(
    processes: Iterable[ProcessInfo], order: SortOrder
) -> tuple[ProcessInfo, ...]:
    """Return *processes* ordered for display.

    CPU: highest ``cpu_percent`` first. MEM: highest ``mem_bytes`` first.
    Equal keys fall back to ascending pid, so the result does not depend on
    the input order and sorting twice gives the same tuple.
    """
    return tuple(sorted(processes, key=_SORT_KEYS[order]))
