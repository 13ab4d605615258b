from typing import Dict, List, Optional
import logging

from openai import AsyncOpenAI

from config import settings
from errors import ProviderUnavailable

logger = logging.getLogger(__name__)


class OpenRouterClient:
    """Chat completions against the OpenAI-compatible OpenRouter endpoint."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.base_url = base_url or settings.OPENROUTER_BASE_URL
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise ProviderUnavailable("OPENROUTER_API_KEY environment variable not set")

        if self._client is None:
            # Retries are owned by the fallback executor
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": "https://ai-counsellor.app",
                    "X-Title": "AI Counsellor",
                },
            )
        return self._client

    async def complete(self, messages: List[Dict[str, str]], model: str, timeout: float) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=0.7,
            max_tokens=2000,
            timeout=timeout,
        )
        if not response.choices:
            raise ProviderUnavailable(f"Empty response from {model}")
        return response.choices[0].message.content or ""
