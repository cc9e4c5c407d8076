"""Tests for the periodic scrape scheduler and the shutdown signal."""

import threading
import time

import pytest

from ollama_exporter.engine.scheduler import Scheduler
from ollama_exporter.lifecycle import ShutdownSignal


class _CountingCycle:

    def __init__(self, fail_on=()):
        self.calls = 0
        self.threads = []
        self._fail_on = set(fail_on)
        self.second_call = threading.Event()

    def __call__(self):
        self.calls += 1
        self.threads.append(threading.current_thread().name)
        if self.calls >= 2:
            self.second_call.set()
        if self.calls in self._fail_on:
            raise RuntimeError("cycle blew up")
        return True


def test_start_runs_first_cycle_eagerly():
    cycle = _CountingCycle()
    shutdown = ShutdownSignal()
    scheduler = Scheduler(cycle, interval_seconds=60, shutdown=shutdown)

    scheduler.start()

    # Ran on the caller's thread, before any period elapsed
    assert cycle.calls == 1
    assert cycle.threads[0] == threading.current_thread().name

    shutdown.trigger()
    scheduler.join(timeout=2)
    assert not scheduler.running


def test_cycles_repeat_on_interval():
    cycle = _CountingCycle()
    shutdown = ShutdownSignal()
    scheduler = Scheduler(cycle, interval_seconds=0.05, shutdown=shutdown)

    scheduler.start()
    assert cycle.second_call.wait(timeout=2)

    shutdown.trigger()
    scheduler.join(timeout=2)
    assert cycle.threads[1] == "scrape-scheduler"


def test_no_cycles_after_shutdown():
    cycle = _CountingCycle()
    shutdown = ShutdownSignal()
    scheduler = Scheduler(cycle, interval_seconds=0.05, shutdown=shutdown)

    scheduler.start()
    shutdown.trigger()
    scheduler.join(timeout=2)
    calls_at_stop = cycle.calls

    time.sleep(0.2)
    assert cycle.calls == calls_at_stop
    assert not scheduler.running


def test_shutdown_before_start_skips_eager_cycle():
    cycle = _CountingCycle()
    shutdown = ShutdownSignal()
    shutdown.trigger()

    scheduler = Scheduler(cycle, interval_seconds=0.05, shutdown=shutdown)
    scheduler.start()
    scheduler.join(timeout=2)

    assert cycle.calls == 0


def test_exception_in_cycle_does_not_stop_scheduler():
    cycle = _CountingCycle(fail_on={1})
    shutdown = ShutdownSignal()
    scheduler = Scheduler(cycle, interval_seconds=0.05, shutdown=shutdown)

    scheduler.start()
    assert cycle.second_call.wait(timeout=2)

    shutdown.trigger()
    scheduler.join(timeout=2)


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        Scheduler(lambda: None, interval_seconds=0, shutdown=ShutdownSignal())


def test_shutdown_trigger_is_idempotent():
    shutdown = ShutdownSignal()
    assert not shutdown.is_set()
    shutdown.trigger()
    shutdown.trigger()
    assert shutdown.is_set()
    assert shutdown.wait(timeout=0)


def test_callbacks_run_in_reverse_order_and_survive_failures():
    shutdown = ShutdownSignal()
    order = []

    def _broken():
        raise RuntimeError("close failed")

    shutdown.on_shutdown(lambda: order.append("client"))
    shutdown.on_shutdown(_broken)
    shutdown.on_shutdown(lambda: order.append("server"))

    shutdown.run_callbacks()

    assert order == ["server", "client"]
    # Callbacks only run once
    shutdown.run_callbacks()
    assert order == ["server", "client"]


def test_overrunning_cycle_does_not_cause_catch_up_burst():
    interval = 0.1
    starts, ends = [], []
    third_call = threading.Event()

    def slow_second_cycle():
        starts.append(time.monotonic())
        if len(starts) == 2:
            time.sleep(interval * 4)
        ends.append(time.monotonic())
        if len(starts) == 3:
            third_call.set()

    shutdown = ShutdownSignal()
    scheduler = Scheduler(slow_second_cycle, interval_seconds=interval, shutdown=shutdown)

    scheduler.start()
    assert third_call.wait(timeout=5)
    shutdown.trigger()
    scheduler.join(timeout=2)

    # After the overrun the next tick is a full interval away, not immediate
    assert starts[2] - ends[1] >= interval * 0.8
