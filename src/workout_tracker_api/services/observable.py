"""Single-slot observable cells used to publish engine state."""
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """Holds one value and notifies subscribers whenever it is replaced.

    Values are expected to be immutable; observers receive the new value
    and never see a half-updated one.
    """

    def __init__(self, value: T):
        self._value = value
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                # Observer errors never propagate to the mutator
                logger.warning(f"Observer callback failed: {e}")

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
