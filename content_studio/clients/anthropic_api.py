import logging
from typing import Any, Dict, Optional

from .base import SYSTEM_PROMPT, ProviderClient, ProviderError

logger = logging.getLogger(__name__)


class AnthropicClient(ProviderClient):
    """Client for the Anthropic Messages API."""

    name = "anthropic"
    default_model = "claude-3-5-sonnet-20241022"
    base_url = "https://api.anthropic.com/v1"
    api_version = "2023-06-01"

    def call(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        if not self.is_configured():
            raise ProviderError(self.name, "anthropic: API key is not configured")
        opts = self._options(options)
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }
        payload = {
            "model": opts["model"],
            "max_tokens": opts["max_tokens"],
            "temperature": opts["temperature"],
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        logger.info(f"Calling Anthropic API (Model: {opts['model']})")
        data = self._post(f"{self.base_url}/messages", headers, payload)

        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text:
            raise ProviderError(self.name, "Invalid response from Anthropic API: no text content")
        if data.get("stop_reason") == "max_tokens":
            logger.warning("Anthropic response hit max_tokens; output is probably truncated")
        return text
