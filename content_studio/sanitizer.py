"""
Field sanitizer: cleans a freshly parsed ContentRecord.

The function is pure; it returns a new record and never fails.
"""

import re
from typing import List, Optional

from .config import SEORules
from .models import ContentRecord, ImagePrompt, Link
from .utils import to_string_list
from .utils.markup import (
    ALLOWED_TAGS,
    collapse_whitespace,
    filter_allowed_tags,
    slugify,
    strip_bold_tags,
    strip_tags,
    truncate_text,
)

TITLE_JUNK_RE = re.compile(r'[{}\[\]\\]')


def clean_title(title: str) -> str:
    title = collapse_whitespace(TITLE_JUNK_RE.sub('', strip_tags(title)))
    if len(title) > 1 and title[0] == title[-1] and title[0] in ('"', "'"):
        title = title[1:-1].strip()
    return title


def clean_content(content: str) -> str:
    content = strip_bold_tags(content or '')
    content = filter_allowed_tags(content, ALLOWED_TAGS)
    # the allow-list keeps <strong>, bold removal still wins
    return strip_bold_tags(content).strip()


def _clean_image_prompts(prompts: List[ImagePrompt]) -> List[ImagePrompt]:
    cleaned = []
    for item in prompts:
        prompt = strip_tags(item.prompt)
        alt = strip_tags(item.alt)
        if prompt or alt:
            cleaned.append(ImagePrompt(prompt=prompt, alt=alt))
    return cleaned


def _clean_links(links: List[Link]) -> List[Link]:
    cleaned = []
    seen = set()
    for link in links:
        url = (link.url or '').strip()
        if not url or url in seen:
            continue
        seen.add(url)
        cleaned.append(Link(url=url, anchor=strip_tags(link.anchor) or url))
    return cleaned


def sanitize_record(record: ContentRecord, rules: Optional[SEORules] = None) -> ContentRecord:
    rules = rules or SEORules()
    title = clean_title(record.title)
    meta = truncate_text(strip_tags(record.meta_description), rules.meta_max_length)
    excerpt = truncate_text(strip_tags(record.excerpt), rules.excerpt_max_length)

    return record.model_copy(update={
        "title": title,
        "meta_description": meta,
        "slug": slugify(record.slug) or slugify(title),
        "content": clean_content(record.content),
        "excerpt": excerpt,
        "focus_keyword": collapse_whitespace(strip_tags(record.focus_keyword)),
        "secondary_keywords": to_string_list([strip_tags(k) for k in record.secondary_keywords]),
        "tags": to_string_list([strip_tags(t) for t in record.tags]),
        "image_prompts": _clean_image_prompts(record.image_prompts),
        "internal_links": _clean_links(record.internal_links),
        "outbound_links": _clean_links(record.outbound_links),
        "provider": (record.provider or '').strip(),
    })
