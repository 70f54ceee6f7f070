"""Trailing-edge, per-key write coalescing."""

import threading
import weakref
from logging import getLogger
from typing import Any, Callable, Dict, Optional

logger = getLogger(__name__)


class DebouncedWriter:
    """Coalesce rapid writes for the same key into one write per quiet period.

    Each submit(key, value) (re)arms a single timer for that key; when the
    timer fires, the latest value is written once. Writes for the same key
    never overlap. Failed writes are logged and kept in `failures`; the
    next successful write for that key clears the entry.

    A value stays visible through pending_value() until its write returns,
    so readers never see a gap between "queued" and "stored".
    """

    def __init__(self, write: Callable[[str, Any], Any], delay: float):
        self._write = write
        self.delay = delay
        self._lock = threading.Lock()
        self._timers: Dict[str, threading.Timer] = {}
        self._pending: Dict[str, Any] = {}
        self._in_flight: Dict[str, Any] = {}
        # Locks disappear once no write for the key holds them
        self._key_locks: weakref.WeakValueDictionary[str, Any] = weakref.WeakValueDictionary()
        self.failures: Dict[str, Exception] = {}

    def submit(self, key: str, value: Any):
        with self._lock:
            self._pending[key] = value
            previous = self._timers.pop(key, None)
            if previous is not None:
                previous.cancel()
            timer = threading.Timer(self.delay, self._fire, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()

    def pending_value(self, key: str, default: Any = None) -> Any:
        """Latest value for key that is queued or still being written."""
        with self._lock:
            if key in self._pending:
                return self._pending[key]
            return self._in_flight.get(key, default)

    def has_pending(self, key: Optional[str] = None) -> bool:
        with self._lock:
            if key is None:
                return bool(self._pending)
            return key in self._pending

    def discard(self, key: str) -> bool:
        """Drop a pending write without performing it."""
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            return self._pending.pop(key, None) is not None

    def _key_lock(self, key: str):
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _fire(self, key: str):
        key_lock = self._key_lock(key)
        with key_lock:
            with self._lock:
                if key not in self._pending:
                    return
                value = self._pending.pop(key)
                self._timers.pop(key, None)
                self._in_flight[key] = value
            try:
                self._write(key, value)
            except Exception as e:
                logger.error(f"Debounced write for {key} failed: {e}")
                self.failures[key] = e
            else:
                self.failures.pop(key, None)
            finally:
                with self._lock:
                    self._in_flight.pop(key, None)

    def flush(self, key: Optional[str] = None):
        """Perform pending writes now instead of waiting for their timers."""
        with self._lock:
            keys = [key] if key is not None else list(self._pending)
            for pending_key in keys:
                timer = self._timers.pop(pending_key, None)
                if timer is not None:
                    timer.cancel()
        for pending_key in keys:
            self._fire(pending_key)

    def close(self):
        self.flush()
