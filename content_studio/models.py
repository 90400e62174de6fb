"""
Data models for the content generation pipeline.

ContentRecord is only ever constructed after the parser's validation gate,
so downstream stages can rely on every field being present and typed.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ImagePrompt(BaseModel):
    prompt: str = Field(default="", description="Description used to generate the image")
    alt: str = Field(default="", description="Alt text, should mention the focus keyword")


class Link(BaseModel):
    url: str = Field(description="Absolute or site-relative URL")
    anchor: str = Field(default="", description="Anchor text")


class ContentRecord(BaseModel):
    title: str = Field(description="SEO title (max 60 chars, starts with the focus keyword)")
    meta_description: str = Field(default="", description="Meta description (max 155 chars)")
    slug: str = Field(default="", description="URL-safe slug")
    content: str = Field(description="HTML body of the article")
    excerpt: str = Field(default="", description="Short summary")
    focus_keyword: str = Field(default="", description="Primary focus keyword")
    secondary_keywords: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    image_prompts: List[ImagePrompt] = Field(default_factory=list)
    internal_links: List[Link] = Field(default_factory=list)
    outbound_links: List[Link] = Field(default_factory=list)
    provider: str = Field(default="", description="Provider that produced the record")


class ValidationReport(BaseModel):
    provider: str = ""
    initial_errors: List[str] = Field(default_factory=list)
    auto_fix_applied: bool = False
    retry: bool = False
    retry_errors: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class GenerationRequest(BaseModel):
    topic: str
    keywords: List[str] = Field(default_factory=list)
    word_count: Union[str, int] = "medium"
    providers: Optional[List[str]] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(k).strip() for k in value if str(k).strip()]


class GenerationResult(BaseModel):
    record: ContentRecord
    report: ValidationReport
    compliant: bool = False
    attempts: List[str] = Field(default_factory=list)


# --- Per-provider attempt outcomes ---

@dataclass
class CleanSuccess:
    record: ContentRecord
    auto_fix_applied: bool = False


@dataclass
class RetriedSuccess:
    record: ContentRecord
    initial_errors: List[str]
    auto_fix_applied: bool = False


@dataclass
class Exhausted:
    """Provider gave up. ``record`` is the best-effort record, if any was parseable."""
    reason: str
    record: Optional[ContentRecord] = None
    initial_errors: List[str] = field(default_factory=list)
    retry_errors: List[str] = field(default_factory=list)
    auto_fix_applied: bool = False
    retried: bool = False


# --- Errors ---

class ParseError(Exception):
    """Raised when provider text cannot be turned into a ContentRecord."""

    EMPTY_INPUT = "empty_input"
    DECODE_FAILED = "decode_failed"
    MISSING_REQUIRED_FIELDS = "missing_required_fields"

    def __init__(self, reason: str, message: str = ""):
        self.reason = reason
        super().__init__(message or reason)


class GenerationError(Exception):
    NO_PROVIDER_CONFIGURED = "no_provider_configured"
    NO_PROVIDERS_SUCCEEDED = "no_providers_succeeded"

    def __init__(self, reason: str, attempts: Optional[List[str]] = None):
        self.reason = reason
        self.attempts = attempts or []
        super().__init__(reason)
