"""
Runtime configuration for Content Studio.

Values come from the process environment (populated from ``.env`` by the
entry point). Nothing here is global mutable state: callers build a
``Settings`` object and pass it down explicitly.
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ["groq", "openai", "anthropic", "openrouter", "gemini", "mock"]

DEFAULT_MODELS = {
    "groq": "llama-3.3-70b-versatile",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "openrouter": "google/gemini-2.0-flash-001",
    "gemini": "gemini-2.0-flash",
    "mock": "mock-model",
}

TRANSITION_WORDS = [
    "however", "moreover", "therefore", "furthermore", "additionally",
    "consequently", "meanwhile", "nevertheless", "nonetheless", "subsequently",
]

DEFAULT_SYNONYMS = [
    "artificial intelligence", "machine learning", "AI tools",
    "automation", "intelligent automation",
]


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: Optional[List[str]] = None) -> List[str]:
    value = os.environ.get(name)
    if not value:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_number(name: str, default, cast=int):
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {value!r}")
        return default


class SEORules(BaseModel):
    """Thresholds and word lists shared by the validator and the auto-fix engine."""
    title_max_length: int = 60
    meta_max_length: int = 155
    excerpt_max_length: int = 150
    density_max_new: int = 8
    density_max_used: int = 1
    keep_first_new: int = 3
    keep_first_used: int = 1
    min_internal_links: int = 2
    min_image_prompts: int = 1
    max_avg_sentence_words: float = 20
    long_sentence_words: int = 25
    max_long_sentence_pct: float = 15
    min_transition_pct: float = 30
    transition_words: List[str] = Field(default_factory=lambda: list(TRANSITION_WORDS))
    synonyms: List[str] = Field(default_factory=lambda: list(DEFAULT_SYNONYMS))
    fallback_internal_links: List[Tuple[str, str]] = Field(default_factory=lambda: [
        ("/related-topics", "Related topics"),
        ("/resources", "Further reading"),
    ])
    fallback_outbound_url: str = "https://www.technologyreview.com/"
    fallback_outbound_anchor: str = "MIT Technology Review"
    site_url: str = ""

    @classmethod
    def from_env(cls) -> "SEORules":
        site_url = os.environ.get("SITE_URL", "").rstrip("/")
        rules = cls(
            synonyms=_env_list("KEYWORD_SYNONYMS", DEFAULT_SYNONYMS),
            transition_words=_env_list("TRANSITION_WORDS", TRANSITION_WORDS),
            fallback_outbound_url=os.environ.get("FALLBACK_OUTBOUND_URL", cls.model_fields["fallback_outbound_url"].default),
            fallback_outbound_anchor=os.environ.get("FALLBACK_OUTBOUND_ANCHOR", cls.model_fields["fallback_outbound_anchor"].default),
            site_url=site_url,
        )
        if site_url:
            rules.fallback_internal_links = [(f"{site_url}{path}", anchor) for path, anchor in rules.fallback_internal_links]
        return rules


class ProviderSettings(BaseModel):
    name: str
    api_key: str = ""
    model: str = ""
    enabled: bool = True

    def is_usable(self) -> bool:
        return self.enabled and bool(self.api_key)


class Settings(BaseModel):
    default_provider: str = "groq"
    backup_providers: List[str] = Field(default_factory=list)
    providers: Dict[str, ProviderSettings] = Field(default_factory=dict)
    max_tokens: int = 4096
    temperature: float = 0.7
    provider_timeout: float = 120.0
    rules: SEORules = Field(default_factory=SEORules)
    wp_url: str = ""
    wp_user: str = ""
    wp_app_password: str = ""
    log_dir: str = "logs"
    log_enabled: bool = True
    log_max_bytes: int = 2 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        providers = {}
        for name in KNOWN_PROVIDERS:
            prefix = name.upper()
            if name == "mock":
                enabled = _env_bool("MOCK_PROVIDER_ENABLED", False)
                api_key = "mock" if enabled else ""
            else:
                api_key = os.environ.get(f"{prefix}_API_KEY", "")
                enabled = _env_bool(f"{prefix}_ENABLED", True)
            providers[name] = ProviderSettings(
                name=name,
                api_key=api_key,
                model=os.environ.get(f"{prefix}_MODEL", DEFAULT_MODELS[name]),
                enabled=enabled,
            )

        return cls(
            default_provider=os.environ.get("DEFAULT_PROVIDER", "groq").strip().lower(),
            backup_providers=[p.lower() for p in _env_list("BACKUP_PROVIDERS")],
            providers=providers,
            max_tokens=_env_number("MAX_TOKENS", 4096),
            temperature=_env_number("TEMPERATURE", 0.7, float),
            provider_timeout=_env_number("PROVIDER_TIMEOUT", 120.0, float),
            rules=SEORules.from_env(),
            wp_url=os.environ.get("WP_URL", ""),
            wp_user=os.environ.get("WP_USER", ""),
            wp_app_password=os.environ.get("WP_APP_PASSWORD", ""),
            log_dir=os.environ.get("GENERATION_LOG_DIR", "logs"),
            log_enabled=_env_bool("GENERATION_LOG_ENABLED", True),
            log_max_bytes=_env_number("GENERATION_LOG_MAX_BYTES", 2 * 1024 * 1024),
        )

    def provider_order(self, requested: Optional[List[str]] = None) -> List[str]:
        """Default provider first, then backups, de-duplicated.

        ``requested`` overrides the configured order when a caller names
        providers explicitly.
        """
        names = requested if requested else [self.default_provider] + self.backup_providers
        order = []
        for name in names:
            name = (name or "").strip().lower()
            if not name or name in order:
                continue
            if name not in KNOWN_PROVIDERS:
                logger.warning(f"Unknown provider '{name}' ignored")
                continue
            order.append(name)
        return order

    def usable_providers(self, requested: Optional[List[str]] = None) -> List[str]:
        usable = []
        for name in self.provider_order(requested):
            provider = self.providers.get(name)
            if provider and provider.is_usable():
                usable.append(name)
            else:
                logger.info(f"Provider '{name}' skipped (disabled or missing API key)")
        return usable
