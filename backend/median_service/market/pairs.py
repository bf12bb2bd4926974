"""Selection of the pairs to track from Binance exchange metadata."""

from __future__ import annotations

import logging
import random

import httpx

from .constants import BINANCE_API_URL, DEFAULT_PAIRS

logger = logging.getLogger(__name__)


async def select_pairs(
    max_pairs: int,
    client: httpx.AsyncClient | None = None,
    quote_asset: str = "USDT",
) -> list[str]:
    """Pick up to ``max_pairs`` random actively trading pairs quoted in ``quote_asset``.

    Falls back to the head of DEFAULT_PAIRS when exchangeInfo cannot be
    fetched or parsed. Returned symbols are lower case.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(base_url=BINANCE_API_URL, timeout=10.0)

    try:
        response = await client.get("/exchangeInfo")
        response.raise_for_status()
        symbols = [
            entry["symbol"].lower()
            for entry in response.json()["symbols"]
            if entry.get("status") == "TRADING" and entry.get("quoteAsset") == quote_asset
        ]
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        logger.warning("Failed to fetch pairs, using defaults: %s", e)
        return DEFAULT_PAIRS[:max_pairs]
    finally:
        if owns_client:
            await client.aclose()

    if not symbols:
        logger.warning("exchangeInfo returned no %s pairs, using defaults", quote_asset)
        return DEFAULT_PAIRS[:max_pairs]

    pairs = random.sample(symbols, min(max_pairs, len(symbols)))
    logger.info("Selected %d trading pairs: %s", len(pairs), ", ".join(pairs))
    return pairs
