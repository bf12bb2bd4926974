"""Data models for the median tracking subsystem."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _iso(epoch_seconds: float) -> str:
    """Format Unix seconds as an ISO-8601 UTC string with millisecond precision."""
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ConnectionState(str, Enum):
    """Lifecycle of the single upstream feed connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AWAITING_RECONNECT = "awaiting_reconnect"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TradeEvent:
    """One decoded upstream trade. Never mutated."""

    symbol: str
    price: float
    event_time: int  # Unix milliseconds


@dataclass(frozen=True, slots=True)
class TrackerStats:
    """Point-in-time statistics of a single MedianTracker."""

    count: int
    median: float | None
    max_heap_size: int
    min_heap_size: int

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "median": self.median,
            "maxHeapSize": self.max_heap_size,
            "minHeapSize": self.min_heap_size,
        }


@dataclass(frozen=True, slots=True)
class MedianUpdate:
    """Event raised for every trade applied to a tracker."""

    symbol: str
    price: float
    median: float | None
    count: int
    event_time: float = field(default_factory=time.time)  # Unix seconds

    def to_dict(self) -> dict:
        """Serialize for the websocket ``medianUpdate`` payload."""
        return {
            "pair": self.symbol,
            "price": self.price,
            "median": self.median,
            "timestamp": _iso(self.event_time),
            "count": self.count,
        }


@dataclass(frozen=True, slots=True)
class MedianSnapshot:
    """Derived, read-only view of one tracked symbol. Recomputed on demand."""

    symbol: str
    median: float | None
    observation_count: int
    latest_price: float | None
    max_heap_size: int
    min_heap_size: int
    as_of: float = field(default_factory=time.time)  # Unix seconds

    @property
    def stats(self) -> TrackerStats:
        return TrackerStats(
            count=self.observation_count,
            median=self.median,
            max_heap_size=self.max_heap_size,
            min_heap_size=self.min_heap_size,
        )

    def to_dict(self) -> dict:
        """Serialize for JSON responses and websocket ``median`` messages."""
        return {
            "pair": self.symbol,
            "median": self.median,
            "stats": self.stats.to_dict(),
            "latestPrice": self.latest_price,
            "timestamp": _iso(self.as_of),
        }
