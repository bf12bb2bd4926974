"""Binance combined trade stream client."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from collections.abc import Callable
from typing import Any

import websockets

from .constants import (
    BACKOFF_BASE_MS,
    BACKOFF_CAP_MS,
    BINANCE_WS_URL,
    PING_INTERVAL_SECONDS,
    RECONNECT_MAX_ATTEMPTS,
)
from .errors import UntrackedSymbolError
from .events import UpdateBus
from .interface import TradeFeed
from .models import ConnectionState, TradeEvent
from .registry import TrackerRegistry

logger = logging.getLogger(__name__)


class LivenessTimeout(Exception):
    """The upstream did not answer a ping before the next one was due."""


def compute_backoff(
    attempt: int,
    base_ms: int = BACKOFF_BASE_MS,
    cap_ms: int = BACKOFF_CAP_MS,
) -> int:
    """Reconnect delay in milliseconds for the given attempt number."""
    return min(base_ms * 2**attempt, cap_ms)


def build_stream_url(symbols: list[str], base_url: str = BINANCE_WS_URL) -> str:
    """Combined stream URL subscribing to ``<symbol>@trade`` for every symbol."""
    streams = "/".join(f"{symbol}@trade" for symbol in symbols)
    return f"{base_url}?streams={streams}"


def decode_trade(raw: str | bytes) -> TradeEvent | None:
    """Decode one combined-stream frame into a TradeEvent.

    Frames look like ``{"stream": "btcusdt@trade", "data": {"e": "trade",
    "s": "BTCUSDT", "p": "43250.10", "T": 1707580800000, ...}}``.

    Returns None for well-formed frames that are not trade events.
    Raises ValueError for anything malformed.
    """
    message = json.loads(raw)
    if not isinstance(message, dict):
        raise ValueError("frame is not a JSON object")

    data = message.get("data")
    if not isinstance(data, dict) or data.get("e") != "trade":
        return None

    try:
        symbol = data["s"]
        price = float(data["p"])
        event_time = int(data["T"])
    except (KeyError, TypeError, OverflowError) as e:  # int(inf) overflows
        raise ValueError(f"incomplete trade payload: {e!r}") from e

    if not isinstance(symbol, str) or not symbol:
        raise ValueError(f"bad symbol {symbol!r}")
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"bad price {data['p']!r} for {symbol}")

    return TradeEvent(symbol=symbol.lower(), price=price, event_time=event_time)


class BinanceTradeFeed(TradeFeed):
    """TradeFeed backed by the Binance combined ``@trade`` websocket stream.

    Runs one background task that owns the connection and the reconnect state
    machine:

        DISCONNECTED -> CONNECTING -> CONNECTED
        CONNECTED -> AWAITING_RECONNECT      (close, error, missed pong)
        AWAITING_RECONNECT -> CONNECTING     (after backoff)
        AWAITING_RECONNECT -> FAILED         (attempts exhausted, terminal)

    A successful handshake resets the attempt counter. While connected, a
    websocket ping is sent every ``ping_interval`` seconds and the pong must
    arrive before the next ping is due.
    """

    def __init__(
        self,
        registry: TrackerRegistry,
        bus: UpdateBus,
        ws_url: str = BINANCE_WS_URL,
        ping_interval: float = PING_INTERVAL_SECONDS,
        max_reconnect_attempts: int = RECONNECT_MAX_ATTEMPTS,
        backoff_base_ms: int = BACKOFF_BASE_MS,
        backoff_cap_ms: int = BACKOFF_CAP_MS,
    ) -> None:
        self._registry = registry
        self._bus = bus
        self._ws_url = ws_url
        self._ping_interval = ping_interval
        self._max_attempts = max_reconnect_attempts
        self._backoff_base_ms = backoff_base_ms
        self._backoff_cap_ms = backoff_cap_ms
        self._symbols: list[str] = []
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._task: asyncio.Task | None = None
        self._exhausted_listeners: list[Callable[[], None]] = []

    async def start(self, symbols: list[str]) -> None:
        if self._task and not self._task.done():
            logger.warning("Binance feed already running")
            return
        self._symbols = [s.lower() for s in symbols]
        if not self._symbols:
            logger.warning("Binance feed not started: no symbols to stream")
            return

        self._attempts = 0
        self._task = asyncio.create_task(self._run(), name="binance-trade-feed")
        logger.info(
            "Binance feed started: %d symbols, %.1fs ping interval",
            len(self._symbols),
            self._ping_interval,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Binance feed stopped")

    def get_symbols(self) -> list[str]:
        return list(self._symbols)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    def add_exhausted_listener(self, listener: Callable[[], None]) -> None:
        self._exhausted_listeners.append(listener)

    # --- Internal ---

    def _open_connection(self, url: str) -> Any:
        """Async context manager for the upstream socket.

        Library keepalive is disabled; liveness is driven by _heartbeat_loop.
        """
        return websockets.connect(url, ping_interval=None, close_timeout=5)

    async def _run(self) -> None:
        """Connection loop. Returns only when the feed has FAILED."""
        url = build_stream_url(self._symbols, self._ws_url)

        while True:
            self._set_state(ConnectionState.CONNECTING)
            try:
                async with self._open_connection(url) as ws:
                    self._set_state(ConnectionState.CONNECTED)
                    self._attempts = 0
                    logger.info("Connected to Binance trade stream")
                    await self._consume(ws)
                logger.warning("Binance trade stream closed")
            except LivenessTimeout:
                logger.warning(
                    "No pong from Binance within %.1fs, dropping connection",
                    self._ping_interval,
                )
            except (OSError, websockets.WebSocketException) as e:
                logger.warning("Binance connection lost: %s", e)
            except Exception:
                logger.exception("Unexpected error on Binance connection")

            self._set_state(ConnectionState.AWAITING_RECONNECT)
            if self._attempts >= self._max_attempts:
                self._set_state(ConnectionState.FAILED)
                logger.error(
                    "Max reconnection attempts (%d) reached. Binance feed stopped.",
                    self._max_attempts,
                )
                self._notify_exhausted()
                return

            self._attempts += 1
            delay_ms = compute_backoff(self._attempts, self._backoff_base_ms, self._backoff_cap_ms)
            logger.info(
                "Reconnecting in %dms (attempt %d/%d)",
                delay_ms,
                self._attempts,
                self._max_attempts,
            )
            await asyncio.sleep(delay_ms / 1000)

    async def _consume(self, ws: Any) -> None:
        """Read frames until the socket closes or a ping goes unanswered."""
        reader = asyncio.create_task(self._read_loop(ws), name="binance-reader")
        heartbeat = asyncio.create_task(self._heartbeat_loop(ws), name="binance-heartbeat")
        try:
            done, _ = await asyncio.wait({reader, heartbeat}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            reader.cancel()
            heartbeat.cancel()
            await asyncio.gather(reader, heartbeat, return_exceptions=True)

        for task in done:
            task.result()  # Re-raise transport errors / LivenessTimeout

    async def _read_loop(self, ws: Any) -> None:
        async for raw in ws:
            self._handle_message(raw)

    async def _heartbeat_loop(self, ws: Any) -> None:
        while True:
            await asyncio.sleep(self._ping_interval)
            pong_waiter = await ws.ping()
            try:
                await asyncio.wait_for(pong_waiter, timeout=self._ping_interval)
            except asyncio.TimeoutError:
                raise LivenessTimeout() from None
            logger.debug("Binance pong received")

    def _handle_message(self, raw: str | bytes) -> None:
        """Decode one frame and apply it. Malformed frames are dropped."""
        try:
            trade = decode_trade(raw)
        except ValueError as e:
            logger.warning("Dropping malformed Binance message: %s", e)
            return
        if trade is None:
            return

        try:
            update = self._registry.update(
                trade.symbol,
                trade.price,
                event_time=trade.event_time / 1000.0,  # Binance timestamps are Unix ms
            )
        except UntrackedSymbolError:
            logger.debug("Ignoring trade for untracked symbol %s", trade.symbol)
            return

        self._bus.publish(update)

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug("Binance feed: %s -> %s", self._state.value, state.value)
            self._state = state

    def _notify_exhausted(self) -> None:
        for listener in self._exhausted_listeners:
            try:
                listener()
            except Exception:
                logger.exception("Feed exhausted listener failed")
