"""Observable state holder shared by the pairing state machines."""

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class StateHolder(Generic[T]):
    """Holds a current value and notifies listeners when it changes.

    Listeners are called synchronously, in subscription order, with the
    new value. A listener that raises is logged and does not stop the
    others from being notified.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._listeners: List[Listener] = []

    @property
    def value(self) -> T:
        """Current value."""
        return self._value

    def set(self, value: T) -> None:
        """Replace the current value and notify listeners."""
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(f"State listener failed: {e}")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            Function that removes the listener when called.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
