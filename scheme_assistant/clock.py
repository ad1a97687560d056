"""
Clock Capability
Supplies monotonic time for TTL and timeout computation, and wall time for timestamps
"""
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Base class for clock implementations"""

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards"""
        pass

    @abstractmethod
    def now(self) -> datetime:
        """Current wall-clock time (UTC)"""
        pass


class SystemClock(Clock):
    """Clock backed by the host operating system"""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """
    Clock advanced explicitly by the caller, for deterministic tests
    """

    def __init__(self, start: float = 0.0, wall: datetime = None):
        self._offset = start
        self._wall = wall or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._start = start

    def monotonic(self) -> float:
        return self._offset

    def now(self) -> datetime:
        return self._wall + timedelta(seconds=self._offset - self._start)

    def advance(self, seconds: float):
        """Move the clock forward"""
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._offset += seconds
