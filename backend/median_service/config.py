"""Process configuration loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .market.constants import RECONNECT_MAX_ATTEMPTS


def _ms_to_seconds(value: str) -> float:
    return int(value) / 1000.0


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime settings. Durations in env vars are milliseconds."""

    host: str = "0.0.0.0"
    port: int = 3001
    environment: str = "development"
    cors_origin: str = "http://localhost:3000"
    max_pairs: int = 10
    pairs: tuple[str, ...] = ()  # Explicit watchlist; skips exchangeInfo when set
    ws_heartbeat_interval: float = 30.0
    feed_ping_interval: float = 30.0
    reconnect_max_attempts: int = RECONNECT_MAX_ATTEMPTS
    shutdown_grace_seconds: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the environment.

        - WS_HEARTBEAT_INTERVAL (ms) is the downstream websocket ping interval
          and pong timeout (handed to uvicorn) and, unless
          FEED_PING_INTERVAL is set, upstream pings too.
        - PAIRS is a comma-separated list, normalized to lower case.
        """
        env = os.environ if environ is None else environ

        heartbeat = _ms_to_seconds(env.get("WS_HEARTBEAT_INTERVAL", "30000"))
        feed_ping = env.get("FEED_PING_INTERVAL", "").strip()
        pairs = tuple(p.strip().lower() for p in env.get("PAIRS", "").split(",") if p.strip())

        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "3001")),
            environment=env.get("APP_ENV", "development").strip().lower(),
            cors_origin=env.get("CORS_ORIGIN", "http://localhost:3000"),
            max_pairs=int(env.get("MAX_PAIRS", "10")),
            pairs=pairs,
            ws_heartbeat_interval=heartbeat,
            feed_ping_interval=_ms_to_seconds(feed_ping) if feed_ping else heartbeat,
            reconnect_max_attempts=int(env.get("RECONNECT_MAX_ATTEMPTS", str(RECONNECT_MAX_ATTEMPTS))),
            shutdown_grace_seconds=float(env.get("SHUTDOWN_GRACE_SECONDS", "10")),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper(),
        )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
