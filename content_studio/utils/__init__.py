"""
Utility functions for the Content Studio project.
"""

import re
from typing import Any, List, Optional

# Provider key spellings mapped onto ContentRecord field names, applied
# after the key has been converted to snake_case.
FIELD_ALIASES: dict = {
    # title
    "seo_title": "title",
    "post_title": "title",
    "headline": "title",
    "article_title": "title",
    # content / body
    "article_content": "content",
    "html_content": "content",
    "body": "content",
    "body_content": "content",
    "full_content": "content",
    "article_body": "content",
    "post_content": "content",
    "html": "content",
    # focus_keyword
    "keyword": "focus_keyword",
    "focus_keyphrase": "focus_keyword",
    "primary_keyword": "focus_keyword",
    "main_keyword": "focus_keyword",
    "target_keyword": "focus_keyword",
    # secondary_keywords
    "keywords": "secondary_keywords",
    "related_keywords": "secondary_keywords",
    "lsi_keywords": "secondary_keywords",
    # tags
    "tag_list": "tags",
    "suggested_tags": "tags",
    "post_tags": "tags",
    # meta_description
    "description": "meta_description",
    "seo_description": "meta_description",
    "meta_desc": "meta_description",
    "metadescription": "meta_description",
    # slug
    "url_slug": "slug",
    "post_slug": "slug",
    "permalink": "slug",
    # excerpt
    "summary": "excerpt",
    "post_excerpt": "excerpt",
    # image_prompts
    "images": "image_prompts",
    "image_prompt": "image_prompts",
    "in_article_image_prompts": "image_prompts",
    "image_suggestions": "image_prompts",
    # links
    "internal_link_suggestions": "internal_links",
    "suggested_internal_links": "internal_links",
    "external_links": "outbound_links",
    "outbound_link_suggestions": "outbound_links",
}


def normalize_dict_keys(data: dict, aliases: Optional[dict] = None) -> dict:
    """
    Convert keys to snake_case and map provider spellings onto ContentRecord fields.

    'META_DESCRIPTION' becomes 'meta_description', 'imagePrompts' becomes
    'image_prompts' and 'SEO_TITLE' becomes 'title' through ``aliases``
    (default :data:`FIELD_ALIASES`). A canonical key already present wins over
    an alias, so ``{"title": "A", "seo_title": "B"}`` keeps "A". Non-dict input
    is returned unchanged.
    """
    if not isinstance(data, dict):
        return data

    if aliases is None:
        aliases = FIELD_ALIASES

    normalized = {}
    aliased = {}
    for key, value in data.items():
        # "ABCDef" -> "ABC_Def"
        s1 = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', str(key).strip())
        # "camelCase" -> "camel_Case"
        s2 = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', s1)
        snake_key = re.sub(r'[\s\-]+', '_', s2).lower()
        canonical_key = aliases.get(snake_key, snake_key)
        if canonical_key == snake_key:
            normalized[canonical_key] = value
        else:
            aliased.setdefault(canonical_key, value)

    for key, value in aliased.items():
        normalized.setdefault(key, value)

    return normalized


def to_string_list(value: Any) -> List[str]:
    """Coerce a comma-joined string or a list into a de-duplicated list of trimmed strings.

    Order of first appearance is kept; duplicates are detected case-insensitively.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]

    result = []
    seen = set()
    for item in items:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = re.sub(r'\s+', ' ', str(item)).strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        result.append(text)
    return result
