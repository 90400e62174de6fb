import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert SEO content writer. Respond with a single JSON object only, "
    "without markdown fences or commentary."
)


class ProviderError(Exception):
    """A provider call failed.

    ``retryable`` separates transient failures (timeouts, 5xx, dropped
    connections) from permanent ones (bad credentials, exhausted quota,
    malformed requests). The orchestrator moves to the next provider either
    way; the flag only informs logging and callers.
    """

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None, retryable: bool = False):
        self.provider = provider
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


def error_from_response(provider: str, response: httpx.Response) -> ProviderError:
    """Build a ProviderError from an HTTP error response."""
    status = response.status_code
    message = f"API request failed with status {status}"
    try:
        body = response.json()
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            message = error["message"]
        elif isinstance(error, str):
            message = error
    except ValueError:
        if response.text:
            message = f"{message}: {response.text[:200]}"

    if status in (401, 403):
        kind = "authentication failed"
    elif status == 429:
        kind = "quota exceeded"
    elif status >= 500:
        kind = "server error"
    else:
        kind = "request rejected"
    return ProviderError(provider, f"{provider}: {kind} ({status}): {message}", status_code=status, retryable=status >= 500)


class ProviderClient:
    """Base class for LLM provider clients.

    Subclasses implement :meth:`call`, returning the raw completion text or
    raising :class:`ProviderError`. Clients never retry on their own.
    """

    name = "base"
    default_model = ""

    def __init__(self, api_key: Optional[str], model: Optional[str] = None, timeout: float = 120.0):
        self.api_key = api_key or ""
        self.model = model or self.default_model
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _options(self, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = {"model": self.model, "max_tokens": 4096, "temperature": 0.7}
        merged.update({k: v for k, v in (options or {}).items() if v is not None})
        return merged

    def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST ``payload`` and return the decoded JSON body, mapping failures to ProviderError."""
        try:
            with httpx.Client(timeout=self.timeout) as http_client:
                response = http_client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"{self.name}: request timed out: {e}", retryable=True) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{self.name}: transport error: {e}", retryable=True) from e

        if response.status_code >= 400:
            raise error_from_response(self.name, response)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(self.name, f"{self.name}: response body is not JSON", status_code=response.status_code) from e

    def call(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        raise NotImplementedError
