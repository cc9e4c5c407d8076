"""
Runs the scrape cycle on a fixed period.

One cycle runs eagerly in start() so metrics exist before the first
period elapses; the rest run on a single background thread, so cycles
never overlap. A cycle that overruns the period pushes the next tick out
rather than firing a burst of catch-up cycles.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ollama_exporter.lifecycle import ShutdownSignal

log = logging.getLogger(__name__)


class Scheduler:

    def __init__(
        self,
        cycle: Callable[[], object],
        interval_seconds: float,
        shutdown: ShutdownSignal,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._cycle = cycle
        self._interval = interval_seconds
        self._shutdown = shutdown
        self._thread: Optional[threading.Thread] = None
        self.cycles_run = 0

    def start(self) -> None:
        log.info("Performing initial metrics scrape...")
        self._run_once()

        self._thread = threading.Thread(target=self._loop, name="scrape-scheduler", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        next_tick = time.monotonic() + self._interval

        while not self._shutdown.wait(max(0.0, next_tick - time.monotonic())):
            self._run_once()

            next_tick += self._interval
            now = time.monotonic()
            if next_tick <= now:
                log.warning("Scrape cycle overran the %ss interval", self._interval)
                next_tick = now + self._interval

        log.debug("Scheduler stopped after %d cycles", self.cycles_run)

    def _run_once(self) -> None:
        if self._shutdown.is_set():
            return
        try:
            self._cycle()
        except Exception:
            log.exception("Scrape cycle raised")
        self.cycles_run += 1

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
