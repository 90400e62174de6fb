import logging
from typing import Dict, List, Optional

from ..config import Settings
from .anthropic_api import AnthropicClient
from .base import ProviderClient
from .gemini import GeminiClient
from .mock import MockClient
from .openai_compatible import GroqClient, OpenAIClient, OpenRouterClient

logger = logging.getLogger(__name__)

CLIENT_CLASSES = {
    "groq": GroqClient,
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
    "openrouter": OpenRouterClient,
    "gemini": GeminiClient,
    "mock": MockClient,
}


def build_provider_clients(settings: Settings, names: Optional[List[str]] = None) -> Dict[str, ProviderClient]:
    """Instantiate clients for every usable provider, in failover order."""
    clients = {}
    for name in settings.usable_providers(names):
        provider = settings.providers[name]
        clients[name] = CLIENT_CLASSES[name](provider.api_key, provider.model, settings.provider_timeout)
    logger.info(f"Provider order: {', '.join(clients) or 'none'}")
    return clients
