"""Minimal synchronous observer list used for session and cart change events."""

from typing import Callable, Generic, TypeVar

from storefront.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Subject(Generic[T]):
    """Holds listeners and fans a value out to each of them in subscription order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, value: T) -> None:
        # A broken listener must not starve the others
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener for %s failed", self.name)

    def __len__(self) -> int:
        return len(self._listeners)
