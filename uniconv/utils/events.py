"""
Minimal publish/subscribe helper used for change notifications.
"""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class Subscribers(Generic[T]):
    """Holds listeners and fans values out to them."""

    def __init__(self, name: str = "listener"):
        self.name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Registers a listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def publish(self, value: T) -> None:
        """Calls every listener; a listener that raises is logged and skipped."""
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                log.warning(f"Error in {self.name} {listener!r}: {e}")

    def __len__(self) -> int:
        return len(self._listeners)
