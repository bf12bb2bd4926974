"""WebSocket endpoint for live median updates."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from .broadcaster import SubscriptionBroadcaster

logger = logging.getLogger(__name__)


def create_stream_router(broadcaster: SubscriptionBroadcaster) -> APIRouter:
    """Create the websocket router bound to a broadcaster.

    This factory pattern lets us inject the broadcaster without globals. The
    endpoint is mounted at both ``/`` and ``/ws`` so clients can connect to
    the bare host.
    """
    router = APIRouter(tags=["streaming"])

    async def median_stream(websocket: WebSocket) -> None:
        """Bidirectional control channel.

        Inbound:  {"type": "subscribe" | "unsubscribe" | "getMedian", "pair": "btcusdt"}
                  {"type": "getAllMedians" | "ping"}
        Outbound: welcome, median, allMedians, medianUpdate, subscribed,
                  unsubscribed, pong, error
        """
        await websocket.accept()
        client_id = websocket.headers.get("x-forwarded-for") or (
            websocket.client.host if websocket.client else "unknown"
        )
        session = await broadcaster.connect(websocket, client_id)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                broadcaster.handle_message(session, raw)
        finally:
            await broadcaster.disconnect(session)

    router.add_api_websocket_route("/ws", median_stream)
    router.add_api_websocket_route("/", median_stream)
    return router
