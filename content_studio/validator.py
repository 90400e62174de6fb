"""
SEO and readability validator.

``SEOValidator.validate`` runs every check independently and returns the
list of violation messages; an empty list means the record passes.
"""

import logging
from typing import List, Optional, Sequence

from .config import SEORules
from .models import ContentRecord
from .utils.linking import is_outbound_url
from .utils.markup import ANCHOR_HREF_RE, BOLD_TAG_RE, contains_phrase, first_paragraph_text, heading_texts, strip_tags
from .utils.text import analyze

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "title", "meta_description", "slug", "content", "excerpt",
    "focus_keyword", "image_prompts", "internal_links",
)


def mentions_keyword(text: str, keyword: str, synonyms: Sequence[str] = ()) -> bool:
    """True when ``text`` contains the keyword or one of the synonyms as whole words."""
    if contains_phrase(text, keyword):
        return True
    return any(contains_phrase(text, synonym) for synonym in synonyms)


class SEOValidator:
    """Stateless rule evaluator for ContentRecord."""

    def __init__(self, rules: Optional[SEORules] = None):
        self.rules = rules or SEORules()

    def allowed_keyword_count(self, keyword_used_before: bool) -> int:
        return self.rules.density_max_used if keyword_used_before else self.rules.density_max_new

    def validate(self, record: ContentRecord, keyword_used_before: bool = False) -> List[str]:
        """Return every rule violation of ``record``.

        Args:
            record: The record to check
            keyword_used_before: Whether the focus keyword already appears in
                site history; tightens the keyword density limit

        Returns:
            Human-readable violation messages, empty when the record passes
        """
        rules = self.rules
        errors = []
        keyword = (record.focus_keyword or '').strip()
        analysis = analyze(record.content or '')

        for field in REQUIRED_FIELDS:
            value = getattr(record, field)
            if not value or (isinstance(value, str) and not value.strip()):
                errors.append(f"Missing or empty required field: {field}.")

        if keyword:
            if not record.title.strip().lower().startswith(keyword.lower()):
                errors.append("SEO title must begin with the focus keyword.")

            allowed = self.allowed_keyword_count(keyword_used_before)
            occurrences = analysis.keyword_count(keyword)
            if occurrences > allowed:
                errors.append(f"Focus keyword appears {occurrences} times in the content (max {allowed}).")

            if not any(mentions_keyword(h, keyword, rules.synonyms) for h in heading_texts(record.content, (2, 3))):
                errors.append("At least one H2 or H3 subheading must include the focus keyword or a close synonym.")

            if not contains_phrase(first_paragraph_text(record.content), keyword):
                errors.append("First paragraph must include the focus keyword.")

            if any(link.anchor.strip().lower() == keyword.lower() for link in record.internal_links):
                errors.append("Internal link anchors should not be the exact focus keyphrase.")

            if record.image_prompts and not any(mentions_keyword(p.alt, keyword, rules.synonyms) for p in record.image_prompts):
                errors.append("Image alt text must include the focus keyword or a close synonym.")

        if len(record.title) > rules.title_max_length:
            errors.append(f"SEO title is too long (max {rules.title_max_length} characters).")

        if len(record.internal_links) < rules.min_internal_links:
            errors.append("At least two suggested internal links are required.")

        if record.content.strip() and not any(
            is_outbound_url(href, rules.site_url) for href in ANCHOR_HREF_RE.findall(record.content)
        ):
            errors.append("Content should include at least one reputable outbound link.")

        if len(strip_tags(record.meta_description)) > rules.meta_max_length:
            errors.append(f"Meta description is too long (max {rules.meta_max_length} characters).")

        if len(strip_tags(record.excerpt)) > rules.excerpt_max_length:
            errors.append(f"Excerpt is too long (max {rules.excerpt_max_length} characters).")

        if len(record.image_prompts) < rules.min_image_prompts:
            errors.append("At least one image prompt is required.")

        if analysis.sentences:
            if analysis.average_sentence_words > rules.max_avg_sentence_words:
                errors.append(f"Average sentence length is too high (target <={rules.max_avg_sentence_words:g} words).")
            if analysis.long_sentence_pct(rules.long_sentence_words) > rules.max_long_sentence_pct:
                errors.append(
                    f"Too many long sentences (more than {rules.max_long_sentence_pct:g}% exceed "
                    f"{rules.long_sentence_words} words)."
                )
            if analysis.transition_pct(rules.transition_words) < rules.min_transition_pct:
                errors.append(f"Not enough transition words (target >={rules.min_transition_pct:g}% of sentences).")

        if BOLD_TAG_RE.search(record.content or ''):
            errors.append("Content must not contain bold or strong tags.")

        unique = list(dict.fromkeys(errors))
        if unique:
            logger.debug(f"Validation found {len(unique)} issue(s) for '{record.title}'")
        return unique
