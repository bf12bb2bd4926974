"""FastAPI application wiring and process entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .market import (
    BinanceTradeFeed,
    SubscriptionBroadcaster,
    TrackerRegistry,
    UpdateBus,
    create_median_router,
    create_stream_router,
    select_pairs,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def _shutdown(feed: BinanceTradeFeed, broadcaster: SubscriptionBroadcaster) -> None:
    await broadcaster.close_all()
    await feed.stop()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app. The feed is started in the lifespan, not here."""
    settings = settings or Settings.from_env()

    registry = TrackerRegistry()
    bus = UpdateBus()
    feed = BinanceTradeFeed(
        registry,
        bus,
        ping_interval=settings.feed_ping_interval,
        max_reconnect_attempts=settings.reconnect_max_attempts,
    )
    broadcaster = SubscriptionBroadcaster(registry, bus)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pairs = list(settings.pairs) or await select_pairs(settings.max_pairs)
        for pair in pairs:
            registry.track(pair)

        def on_feed_exhausted() -> None:
            app.state.feed_exhausted = True
            logger.critical("Upstream feed exhausted; serving last known medians only")

        feed.add_exhausted_listener(on_feed_exhausted)
        await feed.start(pairs)
        logger.info("Median service ready with %d pairs (%s)", len(pairs), settings.environment)

        yield

        logger.info("Shutting down gracefully...")
        try:
            await asyncio.wait_for(
                _shutdown(feed, broadcaster),
                timeout=settings.shutdown_grace_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("Forced shutdown after %.0fs timeout", settings.shutdown_grace_seconds)

    app = FastAPI(title="Binance Median Tracker", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.bus = bus
    app.state.feed = feed
    app.state.broadcaster = broadcaster
    app.state.feed_exhausted = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.is_development:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            logger.info("%s %s", request.method, request.url.path)
            return await call_next(request)

    app.include_router(create_median_router(registry))
    app.include_router(create_stream_router(broadcaster))

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "degraded" if app.state.feed_exhausted else "ok",
            "environment": settings.environment,
            "pairs": registry.symbols(),
            "feed": feed.state.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        # Downstream heartbeat: protocol-level pings, socket closed on a missed pong
        ws_ping_interval=settings.ws_heartbeat_interval,
        ws_ping_timeout=settings.ws_heartbeat_interval,
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds),
    )


if __name__ == "__main__":
    main()
