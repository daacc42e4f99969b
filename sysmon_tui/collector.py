"""Turns one round of metric-source queries into a SystemMetrics snapshot.

Network and disk figures come from cumulative counters, so each sample also
returns the raw counters the next sample needs to compute rates.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import psutil

from sysmon_tui.errors import CollectionError
from sysmon_tui.models import (
    CpuCoreUsage,
    DiskIOStats,
    NetworkStats,
    RamSwapUsage,
    SystemMetrics,
    ThermalReading,
)
from sysmon_tui.source import ByteCounters, MemoryReading, MetricSource, PsutilSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawCounters:
    """Cumulative counters from one sample, kept only to compute the next rates."""

    timestamp: float
    net: Mapping[str, ByteCounters] = field(default_factory=lambda: MappingProxyType({}))
    disk: ByteCounters | None = None


def rate(current: int, previous: int | None, elapsed: float) -> float:
    """Bytes/s between two counter readings, never negative.

    A counter that went backwards (reset, wrap, interface re-created) yields
    0.0 for this interval rather than a negative spike.
    """
    if previous is None or elapsed <= 0:
        return 0.0
    delta = current - previous
    if delta <= 0:
        return 0.0
    return delta / elapsed


def _network_rates(
    current: Mapping[str, ByteCounters],
    previous: RawCounters | None,
    elapsed: float,
) -> NetworkStats:
    if previous is None:
        return NetworkStats()
    rx = tx = 0.0
    # Per-interface deltas, so a NIC disappearing doesn't register as a rollback
    # of the total.
    for nic, now in current.items():
        before = previous.net.get(nic)
        if before is None:
            continue
        rx += rate(now.inbound, before.inbound, elapsed)
        tx += rate(now.outbound, before.outbound, elapsed)
    return NetworkStats(rx_bytes_per_sec=rx, tx_bytes_per_sec=tx)


def _disk_rates(
    current: ByteCounters | None, previous: RawCounters | None, elapsed: float
) -> DiskIOStats:
    if current is None or previous is None or previous.disk is None:
        return DiskIOStats()
    return DiskIOStats(
        read_bytes_per_sec=rate(current.inbound, previous.disk.inbound, elapsed),
        write_bytes_per_sec=rate(current.outbound, previous.disk.outbound, elapsed),
    )


def _usage(reading: MemoryReading) -> RamSwapUsage:
    total = max(0, int(reading.total))
    return RamSwapUsage(used_bytes=min(max(0, int(reading.used)), total), total_bytes=total)


def _cores(percents: list[float]) -> tuple[CpuCoreUsage, ...]:
    return tuple(
        CpuCoreUsage(core_id=i, usage_percent=min(max(float(p), 0.0), 100.0))
        for i, p in enumerate(percents)
    )


class Collector:
    """Samples a MetricSource. The only state it keeps is the previous raw counters."""

    def __init__(
        self,
        source: MetricSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source: MetricSource = source if source is not None else PsutilSource()
        self._clock = clock
        self._counters: RawCounters | None = None

    def prime(self) -> None:
        """Warm up sources whose first reading is meaningless (psutil CPU percent)."""
        prime = getattr(self.source, "prime", None)
        if prime is not None:
            prime()

    def _thermal(self) -> dict[str, ThermalReading]:
        try:
            return dict(self.source.thermal_sensors())
        except (psutil.Error, OSError) as e:
            # Missing sensors never fail the sample.
            logger.debug("thermal sensors unavailable: %s", e)
            return {}

    def sample(
        self, previous: RawCounters | None, scan_processes: bool = True
    ) -> tuple[SystemMetrics, RawCounters]:
        """Query the source once and build a snapshot plus the counters for next time.

        With ``scan_processes=False`` the (expensive) process table and
        thermal readings are skipped and left empty in the snapshot.

        Raises:
            CollectionError: the source could not be queried.
        """
        now = self._clock()
        try:
            cores = self.source.cpu_per_core()
            ram = self.source.memory()
            swap = self.source.swap()
            net = self.source.net_counters()
            disk = self.source.disk_counters()
            processes = self.source.processes() if scan_processes else []
        except (psutil.Error, OSError) as e:
            raise CollectionError(f"metric query failed: {e}") from e

        thermal = self._thermal() if scan_processes else {}
        elapsed = now - previous.timestamp if previous is not None else 0.0

        metrics = SystemMetrics(
            cpu_cores=_cores(cores),
            ram=_usage(ram),
            swap=_usage(swap),
            network=_network_rates(net, previous, elapsed),
            disk=_disk_rates(disk, previous, elapsed),
            processes=processes,
            thermal=thermal,
        )
        counters = RawCounters(timestamp=now, net=MappingProxyType(dict(net)), disk=disk)
        return metrics, counters

    def collect(self, scan_processes: bool = True) -> SystemMetrics:
        """Sample using (and then replacing) the counters from the previous call."""
        metrics, self._counters = self.sample(self._counters, scan_processes)
        return metrics
