"""Exception types for sysmon-tui.

Only ``ChannelClosed`` ends the dashboard. Everything else is caught by the
application state and shown as a status message (or not shown at all, for
missing sensors).
"""

from __future__ import annotations


class SysmonError(Exception):
    """Base class for all sysmon-tui errors."""


class SensorUnavailable(SysmonError):
    """A single sensor could not be read; the reading is simply omitted."""

    def __init__(self, sensor: str, reason: str = "") -> None:
        self.sensor = sensor
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"sensor {sensor!r} unavailable{detail}")


class CollectionError(SysmonError):
    """The metric source could not be queried at all for this tick."""


class SnapshotWriteError(SysmonError):
    """A CSV snapshot could not be written."""

    def __init__(self, path: object, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"cannot write snapshot {path}: {cause}")


class ChannelClosed(SysmonError):
    """The event source stopped and no more events will arrive."""
