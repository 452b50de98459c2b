"""
Fetch gate - suppresses redundant self-issued reads against the TPMA API.

A key (normally one supervisor's mirror) may not start a new fetch while a
fetch for it is in flight, nor within `min_interval` seconds of the previous
start. Forced fetches skip the interval check but wait for an in-flight
fetch of the same key to finish before starting.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Set

logger = logging.getLogger(__name__)


class FetchGate:
    """Thread-safe per-key throttle shared by all requests in the process."""

    def __init__(self, min_interval: float = 2.0, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self._clock = clock
        self._cond = threading.Condition()
        self._in_flight: Set[str] = set()
        self._last_started: Dict[str, float] = {}

    def try_acquire(self, key: str, force: bool = False) -> bool:
        """
        Claim the right to fetch `key`. Returns False when the fetch should be skipped.

        Non-forced callers never block. Forced callers block until no fetch
        for the key is in flight.
        """
        with self._cond:
            if force:
                while key in self._in_flight:
                    self._cond.wait()
            else:
                if key in self._in_flight:
                    logger.debug(f"Fetch for {key} skipped: already in flight")
                    return False
                last = self._last_started.get(key)
                if last is not None and self._clock() - last < self.min_interval:
                    logger.debug(f"Fetch for {key} skipped: within {self.min_interval}s of previous")
                    return False

            self._in_flight.add(key)
            self._last_started[key] = self._clock()
            return True

    def release(self, key: str) -> None:
        with self._cond:
            self._in_flight.discard(key)
            self._cond.notify_all()

    def is_in_flight(self, key: str) -> bool:
        with self._cond:
            return key in self._in_flight

    @contextmanager
    def acquire(self, key: str, force: bool = False) -> Iterator[bool]:
        """Context manager form of try_acquire; yields whether the fetch may run."""
        acquired = self.try_acquire(key, force=force)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)


_fetch_gate: Optional[FetchGate] = None
_gate_lock = threading.Lock()


def get_fetch_gate() -> FetchGate:
    """Get the process-wide fetch gate."""
    global _fetch_gate
    with _gate_lock:
        if _fetch_gate is None:
            from config import get_settings
            _fetch_gate = FetchGate(min_interval=get_settings().mirror_min_refresh_interval)
        return _fetch_gate


def reset_fetch_gate() -> None:
    """Drop the process-wide gate (used by tests)."""
    global _fetch_gate
    with _gate_lock:
        _fetch_gate = None
