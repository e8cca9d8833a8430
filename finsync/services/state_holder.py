"""
Observable State Holder.

Holds one current value and notifies subscribers synchronously on every
publish.  Observers are plain callables; a failing observer is logged and
never prevents the remaining observers (or the publisher) from running.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from finsync.logger import StructuredLogger

S = TypeVar("S")

Observer = Callable[[S], None]
Unsubscribe = Callable[[], None]


class StateHolder(Generic[S]):
    """Publish-on-transition observable with any number of observers."""

    def __init__(self, initial: S, logger: StructuredLogger, name: str = "state") -> None:
        self._value: S = initial
        self._logger = logger
        self._name = name
        self._observers: list[Observer[S]] = []

    @property
    def value(self) -> S:
        return self._value

    def publish(self, state: S) -> None:
        """Replace the current value and notify every observer."""
        self._value = state
        # Copy: observers may unsubscribe while being notified.
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                self._logger.error(
                    "Observer of %s raised during notification.",
                    self._name,
                    exc_info=True,
                )

    def subscribe(self, observer: Observer[S]) -> Unsubscribe:
        """Register *observer*; returns a callable that removes it again.

        The observer is not called with the current value on subscription;
        read ``value`` for that.
        """
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    @property
    def observer_count(self) -> int:
        return len(self._observers)
