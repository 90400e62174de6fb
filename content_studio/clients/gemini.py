import logging
from typing import Any, Dict, Optional

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError

from .base import SYSTEM_PROMPT, ProviderClient, ProviderError

logger = logging.getLogger(__name__)


class GeminiClient(ProviderClient):
    """Provider client for the Google Gemini API (google-genai SDK, API key auth)."""

    name = "gemini"
    default_model = "gemini-2.0-flash"

    def __init__(self, api_key: Optional[str], model: Optional[str] = None, timeout: float = 120.0):
        super().__init__(api_key, model, timeout)
        self.client = self._initialize_client()

    def _initialize_client(self) -> Optional[genai.Client]:
        """Initialize the GenAI client when an API key is available."""
        if not self.api_key:
            logger.warning("No Gemini API key configured")
            return None
        try:
            logger.info("Initializing Gemini with API key")
            return genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        except Exception as e:
            logger.error(f"Error initializing Gemini client: {e}")
        return None

    def is_configured(self) -> bool:
        return self.client is not None

    def call(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        if not self.client:
            raise ProviderError(self.name, "gemini: client not initialized")
        opts = self._options(options)
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            temperature=opts["temperature"],
            max_output_tokens=opts["max_tokens"],
            response_mime_type="application/json",
        )

        logger.info(f"Calling Gemini API (Model: {opts['model']})")
        try:
            response = self.client.models.generate_content(
                model=opts["model"],
                contents=prompt,
                config=config,
            )
        except APIError as e:
            status = getattr(e, "code", None)
            retryable = status is None or status >= 500
            raise ProviderError(self.name, f"gemini: API error ({status}): {e}", status_code=status, retryable=retryable) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"gemini: transport error: {e}", retryable=True) from e

        text = getattr(response, "text", None)
        if not text:
            raise ProviderError(self.name, "Invalid response from Gemini API: no text")
        return text
