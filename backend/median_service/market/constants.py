"""Endpoints and defaults for the Binance trade feed."""

BINANCE_WS_URL = "wss://stream.binance.com:9443/stream"
BINANCE_API_URL = "https://api.binance.com/api/v3"

# Fallback watchlist when exchangeInfo is unreachable
DEFAULT_PAIRS: list[str] = [
    "btcusdt",
    "ethusdt",
    "bnbusdt",
    "adausdt",
    "dogeusdt",
    "xrpusdt",
    "dotusdt",
    "uniusdt",
    "linkusdt",
    "maticusdt",
]

# Reconnect policy: delay = min(BASE * 2^attempt, CAP)
RECONNECT_MAX_ATTEMPTS = 5
BACKOFF_BASE_MS = 1000
BACKOFF_CAP_MS = 30000

# Liveness probe interval, both upstream and downstream
PING_INTERVAL_SECONDS = 30.0
