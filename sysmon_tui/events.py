"""Background event source: key presses and timer ticks over one queue.

The producer thread waits up to ``tick_rate`` seconds for a key. A key
becomes ``Input(key)``, silence becomes ``Tick()``. The main thread is the
only consumer and calls ``recv()``.
"""

from __future__ import annotations

import logging
import os
import queue
import select
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass

from sysmon_tui.errors import ChannelClosed

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 64


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Input:
    key: str


AppEvent = Tick | Input

KeyPoller = Callable[[float], str | None]


ESC = "\x1b"
# Bytes of one escape sequence arrive together; this only bounds a lone ESC.
ESCAPE_TIMEOUT = 0.05


class StdinKeyPoller:
    """Wait on the terminal fd for one key press.

    Assumes curses has already put the terminal into cbreak mode, so bytes
    arrive unbuffered. Escape sequences (arrows, function keys, Alt+key) are
    returned whole, e.g. ``"\\x1b[A"``, so they never look like a bound key.
    """

    def __init__(self, fd: int | None = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd

    def _read_char(self, timeout: float) -> str | None:
        ready, _, _ = select.select([self.fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(self.fd, 1)
        if not data:
            raise EOFError("terminal input closed")
        return data.decode("utf-8", errors="replace")

    def _read_escape(self) -> str:
        seq = ESC
        intro = self._read_char(ESCAPE_TIMEOUT)
        if intro is None:
            return seq
        seq += intro
        if intro == "O":
            # SS3: exactly one more byte (F1-F4, keypad arrows).
            return seq + (self._read_char(ESCAPE_TIMEOUT) or "")
        if intro != "[":
            # Alt+key.
            return seq
        # CSI: parameter bytes until a final byte in @..~.
        while True:
            ch = self._read_char(ESCAPE_TIMEOUT)
            if ch is None:
                return seq
            seq += ch
            if "@" <= ch <= "~":
                return seq

    def __call__(self, timeout: float) -> str | None:
        key = self._read_char(timeout)
        if key == ESC:
            return self._read_escape()
        return key


class EventSource:
    """Produces Tick/Input events on a daemon thread.

    Events are queued in the order they are generated. When the queue is
    full the producer blocks rather than dropping or merging events.
    """

    def __init__(
        self,
        poll_key: KeyPoller,
        tick_rate: float,
        maxsize: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.poll_key = poll_key
        self.tick_rate = tick_rate
        self._queue: queue.Queue[AppEvent] = queue.Queue(maxsize=maxsize)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="sysmon-events", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.tick_rate + 0.5)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _send(self, event: AppEvent) -> bool:
        while not self._stop.is_set():
            try:
                self._queue.put(event, timeout=self.tick_rate)
                return True
            except queue.Full:
                continue
        return False

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                key = self.poll_key(self.tick_rate)
                event: AppEvent = Tick() if key is None else Input(key)
                if not self._send(event):
                    break
        except (OSError, EOFError, ValueError) as e:
            logger.error("event source stopped: %s", e)

    def recv(self, timeout: float | None = None) -> AppEvent:
        """Next event, in generation order.

        Raises:
            ChannelClosed: the producer has finished and nothing is queued.
            queue.Empty: *timeout* elapsed while the producer is still alive.
        """
        waited = 0.0
        step = 0.1
        while True:
            try:
                return self._queue.get(timeout=step)
            except queue.Empty:
                if not self.running:
                    # Drain anything put between the get() timeout and the check.
                    try:
                        return self._queue.get_nowait()
                    except queue.Empty:
                        raise ChannelClosed("event source has stopped") from None
                waited += step
                if timeout is not None and waited >= timeout:
                    raise
