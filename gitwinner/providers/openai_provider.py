"""OpenAI announcer using openai SDK. Also serves OpenAI-compatible APIs (xAI Grok) via base_url."""

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from gitwinner.providers.base import ANNOUNCER_SYSTEM_PROMPT, AnnouncerProvider


class OpenAIProvider(AnnouncerProvider):
    """OpenAI-compatible announcer via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        if config.base_url:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=self._api_key)

    async def _complete(self, prompt: str) -> str | None:
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=[
                {"role": "system", "content": ANNOUNCER_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self._config.max_tokens,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content
