"""Abstract interface for upstream trade feeds."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from .models import ConnectionState


class TradeFeed(ABC):
    """Contract for upstream trade providers.

    Implementations apply every decoded trade to a shared TrackerRegistry and
    publish the resulting MedianUpdate on an UpdateBus. Downstream code never
    talks to the feed for prices; it reads the registry or listens on the bus.

    Lifecycle:
        feed = BinanceTradeFeed(registry, bus)
        feed.add_exhausted_listener(on_feed_lost)
        await feed.start(["btcusdt", "ethusdt", ...])
        # ... app runs, feed reconnects on its own ...
        await feed.stop()
    """

    @abstractmethod
    async def start(self, symbols: list[str]) -> None:
        """Begin streaming trades for the given symbols.

        Starts a background task and returns immediately. Calling start()
        while already running is a no-op.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the background task and release the connection.

        Safe to call multiple times. After stop(), the feed will not write to
        the registry again.
        """

    @abstractmethod
    def get_symbols(self) -> list[str]:
        """Return the symbols the feed is subscribed to."""

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current connection state."""

    @abstractmethod
    def add_exhausted_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback fired once when reconnection gives up."""
