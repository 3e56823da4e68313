"""Ordered observer list used for every event in the engine."""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class EventHook(Generic[T]):
    """A multicast event.

    Callbacks are invoked synchronously, in registration order, with a single
    payload argument. A callback registered twice is only called once.
    Exceptions raised by a callback propagate to whoever fired the event.
    """

    def __init__(self) -> None:
        self._callbacks: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[T], None]:
        """Register *callback*. Returns it unchanged so this works as a decorator."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """Remove *callback* if it is registered."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def fire(self, payload: T) -> None:
        # Snapshot: handlers may (un)subscribe while we iterate
        for callback in list(self._callbacks):
            callback(payload)

    def clear(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)
