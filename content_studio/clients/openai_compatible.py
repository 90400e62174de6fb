import logging
import os
from typing import Any, Dict, Optional

from .base import SYSTEM_PROMPT, ProviderClient, ProviderError

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(ProviderClient):
    """Client for chat/completions style APIs (Groq, OpenAI, OpenRouter)."""

    base_url = ""

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def call(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        if not self.is_configured():
            raise ProviderError(self.name, f"{self.name}: API key is not configured")
        opts = self._options(options)
        payload = {
            "model": opts["model"],
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": opts["max_tokens"],
            "temperature": opts["temperature"],
        }
        logger.info(f"Calling {self.name} API (Model: {opts['model']})")
        data = self._post(f"{self.base_url}/chat/completions", self._headers(), payload)

        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content")
        if isinstance(content, list):
            content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
        if not content:
            raise ProviderError(self.name, f"Invalid response from {self.name} API: no completion text")
        return content


class GroqClient(OpenAICompatibleClient):
    name = "groq"
    default_model = "llama-3.3-70b-versatile"
    base_url = "https://api.groq.com/openai/v1"


class OpenAIClient(OpenAICompatibleClient):
    name = "openai"
    default_model = "gpt-4o-mini"
    base_url = "https://api.openai.com/v1"


class OpenRouterClient(OpenAICompatibleClient):
    name = "openrouter"
    default_model = "google/gemini-2.0-flash-001"
    base_url = "https://openrouter.ai/api/v1"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers.update({
            "HTTP-Referer": os.environ.get("SITE_URL", "https://example.com"),
            "X-Title": os.environ.get("SITE_NAME", "Content Studio"),
        })
        return headers
