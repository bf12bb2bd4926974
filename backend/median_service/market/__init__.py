"""Median tracking subsystem.

Public API:
    MedianTracker           - Two-heap running median for one symbol
    TrackerRegistry         - Thread-safe per-symbol tracker store
    MedianSnapshot          - Immutable read-only view of one symbol
    MedianUpdate            - Event raised for every applied trade
    UpdateBus               - Publish/subscribe hub for MedianUpdate events
    TradeFeed               - Abstract interface for upstream providers
    BinanceTradeFeed        - Reconnecting Binance trade stream client
    SubscriptionBroadcaster - Per-client fan-out of updates
    select_pairs            - Picks the pairs to track from exchangeInfo
    create_median_router    - FastAPI router factory for REST snapshots
    create_stream_router    - FastAPI router factory for the websocket endpoint
"""

from .binance_client import BinanceTradeFeed
from .broadcaster import SubscriptionBroadcaster
from .events import UpdateBus
from .interface import TradeFeed
from .models import ConnectionState, MedianSnapshot, MedianUpdate
from .pairs import select_pairs
from .registry import TrackerRegistry
from .routes import create_median_router
from .stream import create_stream_router
from .tracker import MedianTracker

__all__ = [
    "MedianTracker",
    "TrackerRegistry",
    "MedianSnapshot",
    "MedianUpdate",
    "ConnectionState",
    "UpdateBus",
    "TradeFeed",
    "BinanceTradeFeed",
    "SubscriptionBroadcaster",
    "select_pairs",
    "create_median_router",
    "create_stream_router",
]
