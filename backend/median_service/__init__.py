"""Streaming median price service: Binance trades in, per-pair medians out."""
