"""Tests for per-key refresh coordination."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from launchwindow.services import SingleFlight


class TestSingleFlight:
    def test_returns_result(self):
        flight = SingleFlight()
        assert flight.do("streams:ll-1", lambda: 42) == 42
        assert not flight.in_flight("streams:ll-1")

    def test_concurrent_callers_share_one_call(self):
        flight = SingleFlight()
        started = threading.Event()
        release = threading.Event()
        calls = []

        def refresh():
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return ["stream"]

        with ThreadPoolExecutor(max_workers=5) as pool:
            leader = pool.submit(flight.do, "streams:ll-1", refresh)
            started.wait(timeout=5)
            waiters = [pool.submit(flight.do, "streams:ll-1", refresh) for _ in range(4)]
            # Waiters must have joined before the leader finishes
            while flight.shared_count < 4:
                time.sleep(0.01)
            release.set()
            results = [leader.result(timeout=5)] + [w.result(timeout=5) for w in waiters]

        assert len(calls) == 1
        assert all(r == ["stream"] for r in results)
        assert flight.in_flight_count() == 0

    def test_exception_propagates_to_waiters(self):
        flight = SingleFlight()
        started = threading.Event()
        release = threading.Event()

        def failing():
            started.set()
            release.wait(timeout=5)
            raise RuntimeError("upstream down")

        with ThreadPoolExecutor(max_workers=2) as pool:
            leader = pool.submit(flight.do, "launches:directory", failing)
            started.wait(timeout=5)
            waiter = pool.submit(flight.do, "launches:directory", failing)
            while flight.shared_count < 1:
                time.sleep(0.01)
            release.set()

            with pytest.raises(RuntimeError):
                leader.result(timeout=5)
            with pytest.raises(RuntimeError):
                waiter.result(timeout=5)

        # Key is free again after a failure
        assert flight.do("launches:directory", lambda: "ok") == "ok"

    def test_unrelated_keys_do_not_block(self):
        flight = SingleFlight()
        release = threading.Event()
        started = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5)
            return "slow"

        with ThreadPoolExecutor(max_workers=2) as pool:
            slow_future = pool.submit(flight.do, "streams:ll-1", slow)
            started.wait(timeout=5)
            assert flight.do("streams:ll-2", lambda: "fast") == "fast"
            release.set()
            assert slow_future.result(timeout=5) == "slow"
