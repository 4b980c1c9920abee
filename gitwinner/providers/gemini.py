"""Gemini announcer using google-genai SDK with native async."""

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from gitwinner.providers.base import ANNOUNCER_SYSTEM_PROMPT, AnnouncerProvider


class GeminiProvider(AnnouncerProvider):
    """Google Gemini announcer via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        self._client = genai.Client(api_key=self._api_key)

    async def _complete(self, prompt: str) -> str | None:
        response = await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                system_instruction=ANNOUNCER_SYSTEM_PROMPT,
                max_output_tokens=self._config.max_tokens,
            ),
        )
        return response.text
