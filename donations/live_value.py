"""
Live Values

A LiveValue holds the latest value of a setting and notifies subscribers
when it changes. New subscribers receive the latest value right away, then
every later push. Notifications run synchronously on the thread that
pushed the value, under the cell lock, so each subscriber sees values in
the order they were set.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveValue(Generic[T]):
    """Latest-value cell with change notifications"""

    def __init__(self, initial_value: T, name: str = "value"):
        self._name = name
        self._value = initial_value
        self._callbacks: List[Callable[[T], None]] = []
        self._version = 0
        self._lock = threading.RLock()

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Subscribe to changes.

        The callback is called immediately with the current value.

        Returns:
            Unsubscribe function
        """
        with self._lock:
            self._callbacks.append(callback)
            self._notify(callback, self._value)

        def unsubscribe():
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def push(self, new_value: T) -> None:
        """Set a new value and notify every subscriber"""
        with self._lock:
            self._value = new_value
            self._version += 1
            version = self._version
            for callback in list(self._callbacks):
                # A callback pushed a newer value; it has already been broadcast
                if self._version != version:
                    break
                self._notify(callback, new_value)

    def _notify(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as e:
            # Delivery continues to the remaining subscribers
            logger.error(f"Subscriber of {self._name} failed: {e}", exc_info=True)

    def __repr__(self):
        return f"LiveValue({self._name}={self._value!r})"
