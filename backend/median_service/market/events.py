"""Publish/subscribe hub for median update events."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .models import MedianUpdate

logger = logging.getLogger(__name__)

UpdateListener = Callable[[MedianUpdate], None]


class UpdateBus:
    """Fans MedianUpdate events out to registered listeners.

    Listeners are plain callables invoked synchronously in registration
    order. They must not block; a listener that raises is logged and the
    remaining listeners still run.
    """

    def __init__(self) -> None:
        self._listeners: list[UpdateListener] = []

    def subscribe(self, listener: UpdateListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: UpdateListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def publish(self, update: MedianUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                logger.exception("Update listener %r failed for %s", listener, update.symbol)

    def __len__(self) -> int:
        return len(self._listeners)
