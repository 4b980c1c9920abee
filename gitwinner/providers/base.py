"""Abstract base for all winner announcement providers."""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod

from config.config_loader import ModelConfig
from gitwinner.models import Announcement

logger = logging.getLogger(__name__)

ANNOUNCER_SYSTEM_PROMPT = (
    "You are the host of a live raffle shown on a big screen. "
    "Reply with the announcement text only, no preamble."
)

_QUOTE_PAIRS = (('"', '"'), ("“", "”"), ("'", "'"))


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


def clean_announcement(text: str | None) -> str:
    """Trim whitespace and one pair of wrapping quotes models like to add."""
    cleaned = (text or "").strip()
    for left, right in _QUOTE_PAIRS:
        if len(cleaned) >= 2 and cleaned.startswith(left) and cleaned.endswith(right):
            cleaned = cleaned[len(left):-len(right)].strip()
            break
    return cleaned


class AnnouncerProvider(ABC):
    """Base for announcement providers.

    Subclasses create their SDK client in ``__init__`` and implement
    ``_complete``. Timeouts, error wrapping and cleanup live here.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        self._api_key = os.environ.get(config.api_key_env, "").strip()
        if not self._api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")

    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        return self._config.name

    def model_string(self) -> str:
        """Return the actual model identifier string."""
        return self._config.model

    @abstractmethod
    async def _complete(self, prompt: str) -> str | None:
        """Send ``prompt`` to the model and return its raw reply text."""
        ...

    async def generate(self, prompt: str, winner_id: str) -> Announcement:
        """Generate an announcement for the given prompt.

        Args:
            prompt: The full prompt text to send.
            winner_id: Login of the winner being announced.

        Returns:
            Announcement dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        start = time.monotonic()
        try:
            text = await asyncio.wait_for(self._complete(prompt), timeout=self._config.timeout_sec)
        except ProviderError:
            raise
        except TimeoutError as exc:
            raise ProviderError(self.name(), f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self.name(), f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = clean_announcement(text)
        if not content:
            raise ProviderError(self.name(), "Empty response text")

        logger.info("%s announcement for %s: %.2fs", self.name(), winner_id, latency)
        return Announcement(
            provider=self.name(),
            model=self.model_string(),
            winner_id=winner_id,
            content=content,
            latency_sec=latency,
        )
