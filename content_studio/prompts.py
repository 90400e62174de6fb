"""
Prompt building for article generation.

This module provides:
- word count targets for the request length buckets
- focus keyword extraction from a topic
- the strict-JSON generation prompt
- the corrective follow-up prompt used for the single retry
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Union

from .config import SEORules
from .models import GenerationRequest

logger = logging.getLogger(__name__)

WORD_COUNT_TARGETS = {
    "short": 500,
    "medium": 1000,
    "long": 1500,
    "detailed": 2000,
}
DEFAULT_WORD_COUNT = 1000
MAX_LINK_CANDIDATES = 5

RECORD_FIELDS = [
    "title", "meta_description", "slug", "content", "excerpt", "focus_keyword",
    "secondary_keywords", "tags", "image_prompts", "internal_links", "outbound_links",
]

STOPWORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'how', 'what', 'why', 'when', 'where',
}


def word_count_target(word_count: Union[str, int, None]) -> int:
    """Map a length bucket, a number or a "min-max" range to a word target."""
    if isinstance(word_count, int):
        return word_count if word_count > 0 else DEFAULT_WORD_COUNT
    value = str(word_count or '').strip().lower()
    if value in WORD_COUNT_TARGETS:
        return WORD_COUNT_TARGETS[value]
    if value.isdigit() and int(value) > 0:
        return int(value)
    match = re.match(r'^(\d+)\s*-\s*(\d+)$', value)
    if match:
        low, high = int(match.group(1)), int(match.group(2))
        return (low + high) // 2
    return DEFAULT_WORD_COUNT


class ContentPromptBuilder:
    """Builds strict-JSON prompts for content generation."""

    def __init__(self, rules: Optional[SEORules] = None):
        self.rules = rules or SEORules()

    def extract_focus_keyword(self, topic: str) -> str:
        """Extract the primary focus keyword from the topic."""
        words = [w for w in re.findall(r"[\w'-]+", topic.lower()) if len(w) > 2 and w not in STOPWORDS]
        if words:
            return ' '.join(words[:2])
        return topic.strip()

    def resolve_focus_keyword(self, request: GenerationRequest) -> str:
        if request.keywords:
            return request.keywords[0]
        return self.extract_focus_keyword(request.topic)

    def build_prompt(self, request: GenerationRequest,
                     link_candidates: Optional[Sequence[Dict[str, str]]] = None,
                     keyword_used_before: bool = False) -> str:
        """
        Build the generation prompt.

        Args:
            request: The generation request
            link_candidates: Existing posts (title/url) to suggest as internal links
            keyword_used_before: Whether the focus keyword already appears on the site

        Returns:
            Prompt text asking for a single JSON object
        """
        rules = self.rules
        focus_keyword = self.resolve_focus_keyword(request)
        secondary = ", ".join(request.keywords[1:]) or "none"
        target = word_count_target(request.word_count)
        max_mentions = rules.density_max_used if keyword_used_before else rules.density_max_new

        candidates = ""
        if link_candidates:
            lines = [
                f"- Title: {c.get('title', '')}, URL: {c.get('url', '')}"
                for c in list(link_candidates)[:MAX_LINK_CANDIDATES]
                if c.get('url')
            ]
            if lines:
                candidates = (
                    "\nINTERNAL LINK CANDIDATES (use these real URLs for internal_links):\n"
                    + "\n".join(lines) + "\n"
                )

        prompt = f"""You are an expert SEO copywriter. Produce a single JSON object only: no markdown fences, no commentary before or after it.

TOPIC: {request.topic}
FOCUS KEYWORD: {focus_keyword}
SECONDARY KEYWORDS: {secondary}
TARGET LENGTH: about {target} words
{candidates}
Return exactly these keys:
- title: SEO title, at most {rules.title_max_length} characters, must begin with "{focus_keyword}"
- meta_description: at most {rules.meta_max_length} characters, includes "{focus_keyword}"
- slug: lowercase words separated by hyphens
- content: article body in HTML using only <p>, <h2>, <h3>, <ul>, <ol>, <li>, <a>, <em>, <blockquote>; never <b> or <strong>; do not repeat the title as a heading
- excerpt: at most {rules.excerpt_max_length} characters
- focus_keyword: "{focus_keyword}"
- secondary_keywords: array of strings
- tags: array of strings
- image_prompts: array of {{"prompt": "...", "alt": "..."}} with at least {rules.min_image_prompts} entry; alt text mentions "{focus_keyword}"
- internal_links: array of {{"url": "...", "anchor": "..."}} with at least {rules.min_internal_links} entries; no anchor may be exactly "{focus_keyword}"
- outbound_links: array of {{"url": "...", "anchor": "..."}} pointing to authoritative external sources

Constraints:
- The first paragraph must contain "{focus_keyword}".
- At least one <h2> or <h3> must contain "{focus_keyword}" or a close synonym.
- Use "{focus_keyword}" at most {max_mentions} times in the content.
- Keep the average sentence under {rules.max_avg_sentence_words:g} words; no more than {rules.max_long_sentence_pct:g}% of sentences may exceed {rules.long_sentence_words} words.
- At least {rules.min_transition_pct:g}% of sentences should use transition words such as {", ".join(rules.transition_words[:5])}.
- Link to at least one authoritative external source inside the content.
- Escape newlines inside JSON strings and close every string, array and object.
"""
        logger.debug(f"Built generation prompt for '{request.topic}' (target {target} words)")
        return prompt

    def build_retry_prompt(self, prompt: str, violations: List[str]) -> str:
        """Restate the original prompt followed by the list of issues to correct."""
        issues = "\n".join(f"- {message}" for message in violations)
        return (
            f"{prompt}\n\n"
            f"Please correct the following issues and return ONLY a valid JSON object with the "
            f"required fields ({', '.join(RECORD_FIELDS)}):\n{issues}"
        )
