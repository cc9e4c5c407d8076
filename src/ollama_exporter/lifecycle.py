"""
Process shutdown signalling.

A ShutdownSignal is the one thing the scheduler, the HTTP server and the
signal handlers share: a done-flag to observe, plus a list of cleanup
callbacks the main thread runs once the flag is set.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

log = logging.getLogger(__name__)


class ShutdownSignal:

    def __init__(self):
        self._event = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    def trigger(self, reason: str = "requested") -> None:
        """Set the flag. Safe to call more than once, and from a signal handler."""
        if self._event.is_set():
            return
        log.info("Shutdown %s", reason)
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def on_shutdown(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def run_callbacks(self) -> None:
        """Run cleanup callbacks, most recently registered first."""
        with self._lock:
            callbacks = list(reversed(self._callbacks))
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception:
                log.exception("Shutdown callback %r failed", callback)
