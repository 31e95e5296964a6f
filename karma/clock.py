"""
Karma Ledger Time Source

The ledger samples now() exactly once per transition and reuses that
value for every comparison inside it.
"""

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Abstract source of the current time in integer epoch seconds."""

    @abstractmethod
    def now(self) -> int:
        pass


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Used by tests and the CLI demo to walk through whole days instantly.
    """

    def __init__(self, start: int = 0):
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def set(self, ts: int) -> None:
        with self._lock:
            self._now = int(ts)

    def advance(self, seconds: int) -> int:
        with self._lock:
            self._now += int(seconds)
            return self._now
