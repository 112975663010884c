"""Per-key in-flight registry collapsing concurrent identical computations."""
from concurrent.futures import Future
from typing import Callable, Dict, Tuple, TypeVar
import threading

T = TypeVar("T")


class SingleFlight:
    """
    The first caller for a key runs the computation; callers arriving while
    it is in flight wait on the same Future and get the same result (or
    exception). The key is released as soon as the computation finishes, so
    later callers start fresh (normally hitting the cache).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}

    def do(self, key: str, fn: Callable[[], T]) -> Tuple[T, bool]:
        """Run fn once per concurrent key. Returns (result, shared)."""
        with self._lock:
            future = self._in_flight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._in_flight[key] = future

        if not leader:
            return future.result(), True

        try:
            result = fn()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result, False
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)
