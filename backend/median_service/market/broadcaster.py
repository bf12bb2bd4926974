"""Subscription-based fan-out of median updates to websocket clients."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .events import UpdateBus
from .models import MedianUpdate
from .registry import TrackerRegistry
from .validation import pair_not_found, validate_pair

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Connected to Binance Median Tracker"

CLOSE_GOING_AWAY = 1001


class DownstreamConnection(Protocol):
    """The subset of a websocket the broadcaster needs. Starlette's WebSocket fits."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


@dataclass(eq=False)
class ClientSession:
    """Per-connection state. Owned by the broadcaster while registered."""

    connection: DownstreamConnection
    client_id: str
    outbox: asyncio.Queue
    subscriptions: set[str] = field(default_factory=set)
    closed: bool = False
    sender: asyncio.Task | None = None


class SubscriptionBroadcaster:
    """Routes MedianUpdate events to the clients subscribed to their symbol.

    Each session has a bounded outbox drained by its own sender task, so
    publish() never awaits a socket: a slow or dead client only loses its own
    messages (at-most-once delivery).

    Liveness is not probed here. The ASGI server sends protocol-level ping
    frames (uvicorn ``ws_ping_interval`` / ``ws_ping_timeout``), which clients
    answer without any application code, and closes a socket whose pong never
    arrives. The endpoint then calls disconnect(), which removes the session
    from routing.
    """

    def __init__(
        self,
        registry: TrackerRegistry,
        bus: UpdateBus,
        max_pending: int = 256,
    ) -> None:
        self._registry = registry
        self._max_pending = max_pending
        self._sessions: set[ClientSession] = set()
        self._detach = bus.subscribe(self.publish)

    # --- Session lifecycle ---

    async def connect(self, connection: DownstreamConnection, client_id: str = "unknown") -> ClientSession:
        """Register an accepted connection and greet it with the trackable pairs."""
        session = ClientSession(
            connection=connection,
            client_id=client_id,
            outbox=asyncio.Queue(maxsize=self._max_pending),
        )
        self._sessions.add(session)
        session.sender = asyncio.create_task(self._sender(session), name=f"ws-sender-{client_id}")
        self._send(
            session,
            {"type": "welcome", "pairs": self._registry.symbols(), "message": WELCOME_MESSAGE},
        )
        logger.info("WebSocket client connected: %s", client_id)
        return session

    async def disconnect(self, session: ClientSession) -> None:
        """Remove a session from routing and stop its sender. Idempotent."""
        if session.closed:
            return
        session.closed = True
        self._sessions.discard(session)
        session.subscriptions.clear()

        sender = session.sender
        if sender is not None and sender is not asyncio.current_task():
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
        logger.info("WebSocket client disconnected: %s", session.client_id)

    async def terminate(self, session: ClientSession, code: int = CLOSE_GOING_AWAY) -> None:
        """Deregister a session and close its connection."""
        await self.disconnect(session)
        try:
            await session.connection.close(code=code)
        except Exception as e:
            logger.debug("Close failed for %s: %s", session.client_id, e)

    async def close_all(self) -> None:
        """Terminate every session. Used at shutdown."""
        sessions = list(self._sessions)
        await asyncio.gather(
            *(self.terminate(s, code=CLOSE_GOING_AWAY) for s in sessions),
            return_exceptions=True,
        )
        self._detach()
        logger.info("Closed %d websocket clients", len(sessions))

    # --- Inbound control messages ---

    def handle_message(self, session: ClientSession, raw: str) -> None:
        """Dispatch one inbound frame. Bad frames get an error reply, never a disconnect."""
        try:
            data = json.loads(raw)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Invalid websocket message from %s", session.client_id)
            self._error(session, "Invalid message format")
            return

        kind = data.get("type")
        pair = data.get("pair")

        if kind == "subscribe":
            self.subscribe(session, pair)
        elif kind == "unsubscribe":
            self.unsubscribe(session, pair)
        elif kind == "getMedian":
            self.query_one(session, pair)
        elif kind == "getAllMedians":
            self.query_all(session)
        elif kind == "ping":
            self._send(session, {"type": "pong"})
        else:
            self._error(session, f"Unknown message type: {kind}")

    def subscribe(self, session: ClientSession, pair: Any) -> None:
        if not validate_pair(pair):
            self._error(session, "Invalid pair format")
            return

        symbol = pair.lower()
        snapshot = self._registry.snapshot(symbol)
        if snapshot is None:
            self._error(
                session,
                f"Pair {pair} not available",
                availablePairs=self._registry.symbols(),
            )
            return

        session.subscriptions.add(symbol)
        self._send(session, {"type": "median", "data": snapshot.to_dict()})
        self._send(
            session,
            {
                "type": "subscribed",
                "pair": symbol,
                "message": f"Successfully subscribed to {symbol}",
            },
        )
        logger.info("Client %s subscribed to %s", session.client_id, symbol)

    def unsubscribe(self, session: ClientSession, pair: Any) -> None:
        if not validate_pair(pair):
            self._error(session, "Invalid pair format")
            return

        symbol = pair.lower()
        session.subscriptions.discard(symbol)
        self._send(
            session,
            {
                "type": "unsubscribed",
                "pair": symbol,
                "message": f"Successfully unsubscribed from {symbol}",
            },
        )
        logger.info("Client %s unsubscribed from %s", session.client_id, symbol)

    def query_one(self, session: ClientSession, pair: Any) -> None:
        if not validate_pair(pair):
            self._error(session, "Invalid pair format")
            return

        snapshot = self._registry.snapshot(pair)
        if snapshot is None:
            body = pair_not_found(pair, self._registry)
            self._error(session, body["message"], availablePairs=body["availablePairs"])
            return
        self._send(session, {"type": "median", "data": snapshot.to_dict()})

    def query_all(self, session: ClientSession) -> None:
        medians = {symbol: snap.to_dict() for symbol, snap in self._registry.snapshot_all().items()}
        self._send(session, {"type": "allMedians", "data": medians})

    # --- Fan-out ---

    def publish(self, update: MedianUpdate) -> None:
        """Queue a medianUpdate for every session subscribed to the symbol."""
        targets = [s for s in self._sessions if update.symbol in s.subscriptions]
        if not targets:
            return
        payload = json.dumps({"type": "medianUpdate", "data": update.to_dict()})
        for session in targets:
            self._enqueue(session, payload)

    def subscribers_of(self, symbol: str) -> list[ClientSession]:
        return [s for s in self._sessions if symbol.lower() in s.subscriptions]

    @property
    def sessions(self) -> list[ClientSession]:
        return list(self._sessions)

    # --- Internal ---

    def _send(self, session: ClientSession, message: dict) -> None:
        self._enqueue(session, json.dumps(message))

    def _error(self, session: ClientSession, message: str, **extra: Any) -> None:
        self._send(session, {"type": "error", "message": message, **extra})

    def _enqueue(self, session: ClientSession, payload: str) -> None:
        if session.closed:
            return
        try:
            session.outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.debug("Outbox full for %s, dropping message", session.client_id)

    async def _sender(self, session: ClientSession) -> None:
        while True:
            payload = await session.outbox.get()
            try:
                await session.connection.send_text(payload)
            except Exception as e:
                logger.info("Send to %s failed, dropping client: %s", session.client_id, e)
                await self.disconnect(session)
                return
