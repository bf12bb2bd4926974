"""Pytest configuration and shared fixtures."""

import asyncio

import pytest

from median_service.config import Settings


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def make_settings():
    """Settings factory that never reads the process environment."""

    def _make(**overrides) -> Settings:
        return Settings(environment="test", **overrides)

    return _make
