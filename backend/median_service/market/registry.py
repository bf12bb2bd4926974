"""Thread-safe registry of per-symbol median trackers."""

from __future__ import annotations

import time
from threading import Lock

from .errors import UntrackedSymbolError
from .models import MedianSnapshot, MedianUpdate
from .tracker import MedianTracker


class TrackerRegistry:
    """Owns one MedianTracker and the latest raw price for each tracked symbol.

    Writer: the upstream trade feed (one at a time).
    Readers: REST routes, websocket queries, broadcaster fan-out.

    Symbols are normalized to lower case on every entry point. Iteration
    order is registration order.
    """

    def __init__(self, symbols: list[str] | None = None) -> None:
        self._trackers: dict[str, MedianTracker] = {}
        self._latest: dict[str, float | None] = {}
        self._lock = Lock()
        self._version: int = 0  # Bumped on every applied trade
        for symbol in symbols or []:
            self.track(symbol)

    def track(self, symbol: str) -> None:
        """Start tracking a symbol. No-op if already tracked."""
        symbol = symbol.lower()
        with self._lock:
            if symbol in self._trackers:
                return
            self._trackers[symbol] = MedianTracker()
            self._latest[symbol] = None

    def untrack(self, symbol: str) -> None:
        """Drop a symbol and its tracker. No-op if not tracked."""
        symbol = symbol.lower()
        with self._lock:
            self._trackers.pop(symbol, None)
            self._latest.pop(symbol, None)

    def update(self, symbol: str, price: float, event_time: float | None = None) -> MedianUpdate:
        """Apply one trade price. Returns the resulting MedianUpdate.

        Raises UntrackedSymbolError if the symbol was never registered.
        """
        symbol = symbol.lower()
        with self._lock:
            tracker = self._trackers.get(symbol)
            if tracker is None:
                raise UntrackedSymbolError(symbol)
            tracker.insert(price)
            self._latest[symbol] = price
            self._version += 1
            return MedianUpdate(
                symbol=symbol,
                price=price,
                median=tracker.median(),
                count=tracker.count,
                event_time=event_time if event_time is not None else time.time(),
            )

    def snapshot(self, symbol: str) -> MedianSnapshot | None:
        """Current snapshot for one symbol, or None if untracked."""
        symbol = symbol.lower()
        with self._lock:
            return self._snapshot_locked(symbol)

    def snapshot_all(self) -> dict[str, MedianSnapshot]:
        """Snapshots for every tracked symbol, in registration order."""
        with self._lock:
            return {symbol: self._snapshot_locked(symbol) for symbol in self._trackers}

    def symbols(self) -> list[str]:
        with self._lock:
            return list(self._trackers)

    def _snapshot_locked(self, symbol: str) -> MedianSnapshot | None:
        tracker = self._trackers.get(symbol)
        if tracker is None:
            return None
        stats = tracker.stats()
        return MedianSnapshot(
            symbol=symbol,
            median=stats.median,
            observation_count=stats.count,
            latest_price=self._latest[symbol],
            max_heap_size=stats.max_heap_size,
            min_heap_size=stats.min_heap_size,
            as_of=time.time(),
        )

    @property
    def version(self) -> int:
        """Number of trades applied so far, across all symbols."""
        return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._trackers)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol.lower() in self._trackers
