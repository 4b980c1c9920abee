"""Anthropic Claude announcer using anthropic SDK with native async."""

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from gitwinner.providers.base import ANNOUNCER_SYSTEM_PROMPT, AnnouncerProvider


class AnthropicProvider(AnnouncerProvider):
    """Anthropic Claude announcer via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        self._client = anthropic_sdk.AsyncAnthropic(api_key=self._api_key)

    async def _complete(self, prompt: str) -> str | None:
        response = await self._client.messages.create(
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            system=ANNOUNCER_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        # Claude can interleave non-text blocks; only text is announced.
        return "\n".join(b.text for b in (response.content or []) if b.type == "text")
