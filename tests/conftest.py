from unittest.mock import AsyncMock, patch

import pytest

from finnhubx import client as client_module


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def fake_clock():
    """Fixture providing a deterministic clock for token buckets."""
    return FakeClock()


@pytest.fixture
def mock_sleep(fake_clock):
    """Mock asyncio.sleep so that sleeping advances the fake clock instantly."""

    async def advance(seconds):
        fake_clock.advance(seconds)

    with patch('asyncio.sleep', new_callable=AsyncMock) as mock:
        mock.side_effect = advance
        yield mock


@pytest.fixture
def restore_default_config(monkeypatch):
    """Undo configure() calls made by a test."""
    monkeypatch.setattr(client_module, '_global_config', client_module.get_default_config())


@pytest.fixture
def quote_payload():
    """Fixture providing a /quote response body."""
    return {
        'c': 189.84,
        'd': 1.27,
        'dp': 0.6735,
        'h': 190.32,
        'l': 188.19,
        'o': 189.16,
        'pc': 188.57,
        't': 1700000000,
    }
