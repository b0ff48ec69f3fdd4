"""
Courier — Single-Flight Guard

At most one analysis runs at a time. A second request while one is in
flight is rejected with BusyError, never queued.

    with guard.try_acquire():
        ... prepare + call the model ...

The token releases on every exit path of the with-block.
"""
import threading
from typing import Optional

from .errors import BusyError


class FlightToken:
    """Proof of holding the guard. Releasing twice is a no-op."""

    def __init__(self, guard: "SingleFlightGuard"):
        self._guard: Optional["SingleFlightGuard"] = guard

    def release(self) -> None:
        guard, self._guard = self._guard, None
        if guard is not None:
            guard._release()

    @property
    def released(self) -> bool:
        return self._guard is None

    def __enter__(self) -> "FlightToken":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class SingleFlightGuard:
    """Idle/Busy flag flipped under a lock."""

    def __init__(self, name: str = "analysis"):
        self.name = name
        self._lock = threading.Lock()
        self._busy = False

    def try_acquire(self) -> FlightToken:
        """Idle → Busy, or BusyError without touching the state."""
        with self._lock:
            if self._busy:
                raise BusyError(f"{self.name} already in progress")
            self._busy = True
        return FlightToken(self)

    def _release(self) -> None:
        with self._lock:
            self._busy = False

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy
