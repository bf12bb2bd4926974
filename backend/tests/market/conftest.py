"""Fixtures for median subsystem tests.

Provides in-memory stand-ins for both sides of the service: ``FakeUpstream``
mimics a ``websockets`` client connection to Binance, ``FakeConnection``
mimics a downstream Starlette WebSocket.
"""

import asyncio
import json

import pytest
import pytest_asyncio

from median_service.market.broadcaster import SubscriptionBroadcaster
from median_service.market.events import UpdateBus
from median_service.market.registry import TrackerRegistry


def trade_frame(symbol: str, price: str, trade_time: int = 1707580800000) -> str:
    """A Binance combined-stream trade frame."""
    return json.dumps(
        {
            "stream": f"{symbol.lower()}@trade",
            "data": {"e": "trade", "E": trade_time, "s": symbol.upper(), "t": 1, "p": price, "q": "0.5", "T": trade_time},
        }
    )


class FakeUpstream:
    """Async context manager + async iterator standing in for a websockets connection."""

    def __init__(self, messages=(), answer_pings: bool = True, hold_open: bool = False) -> None:
        self.messages = list(messages)
        self.answer_pings = answer_pings
        self.hold_open = hold_open
        self.pings = 0
        self.exited = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.exited = True
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.hold_open:
            await asyncio.sleep(3600)

    async def ping(self):
        self.pings += 1
        waiter = asyncio.get_running_loop().create_future()
        if self.answer_pings:
            waiter.set_result(0.0)
        return waiter


class FakeConnection:
    """Records what the broadcaster sends to one downstream client."""

    def __init__(self, fail_sends: bool = False) -> None:
        self.sent: list[dict] = []
        self.closed_with: int | None = None
        self.fail_sends = fail_sends

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is closed")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def of_type(self, kind: str) -> list[dict]:
        return [m for m in self.sent if m["type"] == kind]


@pytest.fixture
def registry():
    return TrackerRegistry(["btcusdt", "ethusdt", "bnbusdt"])


@pytest.fixture
def bus():
    return UpdateBus()


@pytest_asyncio.fixture
async def broadcaster(registry, bus):
    """Broadcaster that is shut down after each test."""
    broadcaster = SubscriptionBroadcaster(registry, bus)
    yield broadcaster
    await broadcaster.close_all()


@pytest.fixture
def fake_upstream():
    return FakeUpstream


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def make_trade_frame():
    return trade_frame
