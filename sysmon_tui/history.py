"""Bounded sample histories backing the sparkline widgets."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from sysmon_tui.models import DiskIOStats, NetworkStats

DEFAULT_CAPACITY = 60


class History:
    """Fixed-capacity FIFO of float samples. The oldest sample is dropped when full."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"history capacity must be >= 1, got {capacity}")
        self._values: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def push(self, value: float) -> None:
        self._values.append(float(value))

    def as_slice(self) -> list[float]:
        """Samples oldest first."""
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"History(capacity={self.capacity}, len={len(self)})"


class SparklineHistory:
    """The four rate series shown on screen: network RX/TX and disk read/write."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.net_rx = History(capacity)
        self.net_tx = History(capacity)
        self.disk_read = History(capacity)
        self.disk_write = History(capacity)

    @property
    def capacity(self) -> int:
        return self.net_rx.capacity

    def push(self, network: NetworkStats, disk: DiskIOStats) -> None:
        self.net_rx.push(network.rx_bytes_per_sec)
        self.net_tx.push(network.tx_bytes_per_sec)
        self.disk_read.push(disk.read_bytes_per_sec)
        self.disk_write.push(disk.write_bytes_per_sec)
