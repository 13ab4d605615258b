import google.generativeai as genai
from typing import Dict, List, Optional
from config import settings
from errors import ProviderUnavailable

class GeminiClient:
    """Direct Gemini access through google-generativeai."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self._configured = False

    def get_model(self, model: str, system_instruction: Optional[str] = None):
        """Configure the SDK once and return a model handle."""
        if not self.api_key:
            raise ProviderUnavailable("GEMINI_API_KEY environment variable not set")

        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True
        return genai.GenerativeModel(model, system_instruction=system_instruction)

    async def complete(self, messages: List[Dict[str, str]], model: str, timeout: float) -> str:
        """
        Generate a reply for an OpenAI-style message list.

        Args:
            messages: [{"role": "system" | "user" | "assistant", "content": str}, ...]
            model: Gemini model name
            timeout: request timeout in seconds

        Returns:
            Reply text
        """
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        contents = [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [m["content"]],
            }
            for m in messages
            if m["role"] != "system"
        ]

        gemini_model = self.get_model(model, "\n\n".join(system_parts) or None)
        response = await gemini_model.generate_content_async(
            contents,
            request_options={"timeout": timeout},
        )
        return response.text.strip()
