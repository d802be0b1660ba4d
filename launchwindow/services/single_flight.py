"""Per-key in-flight refresh coordination.

At most one refresh runs per resource key. Callers arriving while a
refresh for the same key is running wait for it and reuse its result
(or its exception) instead of issuing duplicate upstream calls.
Unrelated keys never block each other.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

logger = logging.getLogger(__name__)


class SingleFlight:
    """Promise cache keyed by resource id.

    Usage:
        flight = SingleFlight()
        streams = flight.do(f"streams:{launch_id}", lambda: refresh(launch_id))
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: dict[str, Future] = {}
        self._shared = 0

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        """Run fn for key, or join the call already in flight.

        Exceptions raised by fn propagate to the leader and every waiter.
        """
        with self._lock:
            future = self._calls.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._calls[key] = future
            else:
                self._shared += 1

        if not leader:
            logger.debug(f"Joining in-flight refresh for {key}")
            return future.result()

        try:
            result = fn()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._calls)

    @property
    def shared_count(self) -> int:
        """Number of callers that reused another caller's refresh."""
        return self._shared
