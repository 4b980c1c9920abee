"""Unit tests for gitwinner/healthcheck.py. No real API calls."""

import asyncio
from unittest.mock import AsyncMock

from gitwinner import healthcheck
from gitwinner.healthcheck import find_healthy_announcer, ping
from gitwinner.providers.base import ProviderError
from tests.conftest import MockProvider


def _failing(name: str, message: str) -> MockProvider:
    provider = MockProvider(name)
    provider.generate = AsyncMock(side_effect=ProviderError(name, message))
    return provider


async def test_ping_success_returns_empty_string():
    provider = MockProvider("claude")
    assert await ping(provider) == ""
    assert provider.generate.await_args.kwargs["winner_id"] == "healthcheck"


async def test_ping_failure_returns_error_text():
    assert "403 Forbidden" in await ping(_failing("grok", "403 Forbidden"))


async def test_first_healthy_provider_wins():
    first, second = MockProvider("claude"), MockProvider("gemini")
    selected, failures = await find_healthy_announcer([first, second])

    assert selected is first
    assert failures == {}
    second.generate.assert_not_awaited()


async def test_falls_through_failing_providers():
    broken = _failing("claude", "401 Unauthorized")
    backup = MockProvider("gemini")

    selected, failures = await find_healthy_announcer([broken, backup])

    assert selected is backup
    assert list(failures) == ["claude"]
    assert "401" in failures["claude"]


async def test_all_failing_returns_none():
    selected, failures = await find_healthy_announcer(
        [_failing("openai", "openai down"), _failing("gemini", "gemini down")]
    )
    assert selected is None
    assert set(failures) == {"openai", "gemini"}


async def test_no_candidates():
    assert await find_healthy_announcer([]) == (None, {})


async def test_timeout_counts_as_failure(monkeypatch):
    """A provider that hangs past the timeout is skipped."""
    slow = MockProvider("slow")

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    slow.generate = AsyncMock(side_effect=hang)
    monkeypatch.setattr(healthcheck, "_TIMEOUT_SEC", 0.05)

    selected, failures = await find_healthy_announcer([slow])

    assert selected is None
    assert failures["slow"] == "TimeoutError"
