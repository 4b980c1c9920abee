"""Announcer health check: find a provider that answers before the ceremony starts."""

import asyncio
import logging
from collections.abc import Sequence

from gitwinner.providers.base import AnnouncerProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = 'Congratulate the GitHub user "healthcheck" in at most five words.'
_TIMEOUT_SEC = 15.0


async def ping(provider: AnnouncerProvider) -> str:
    """Send one short announcement request. Returns "" on success, else the error text."""
    try:
        await asyncio.wait_for(
            provider.generate(_PING_PROMPT, winner_id="healthcheck"),
            timeout=_TIMEOUT_SEC,
        )
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", provider.name(), exc)
        return str(exc) or type(exc).__name__
    return ""


async def find_healthy_announcer(
    candidates: Sequence[AnnouncerProvider],
) -> tuple[AnnouncerProvider | None, dict[str, str]]:
    """Ping announcers in order and stop at the first one that answers.

    Args:
        candidates: Providers in preference order.

    Returns:
        (provider, failures). ``provider`` is None when every ping failed;
        ``failures`` maps provider name -> error text for the ones skipped.
    """
    failures: dict[str, str] = {}
    for provider in candidates:
        error = await ping(provider)
        if not error:
            return provider, failures
        failures[provider.name()] = error
        logger.warning("Announcer %s unavailable: %s", provider.name(), error.splitlines()[0][:120])
    return None, failures
