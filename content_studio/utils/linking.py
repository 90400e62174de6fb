"""
Internal link helpers.
Ranks existing posts as internal-link candidates for a topic and tells
internal URLs apart from outbound ones.
"""

import re
import logging
from typing import List, Dict, Optional
from difflib import SequenceMatcher
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Normalize text for comparison (lowercase, remove special chars, extra spaces)."""
    text = text.lower()
    text = re.sub(r'[^\w\s]', '', text)
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def calculate_similarity(text1: str, text2: str) -> float:
    """Calculate similarity ratio between two texts."""
    norm1 = normalize_text(text1)
    norm2 = normalize_text(text2)
    return SequenceMatcher(None, norm1, norm2).ratio()


def match_score(topic: str, title: str) -> float:
    """
    Score how well an existing post title matches a topic.

    1. Exact match (case insensitive) scores 1.0
    2. Containment either way scores 0.9
    3. Word overlap scores the shared share of the longer phrase
    4. Anything else falls back to fuzzy similarity
    """
    if not topic or not title:
        return 0.0
    if topic.lower() == title.lower():
        return 1.0
    if topic.lower() in title.lower() or title.lower() in topic.lower():
        return 0.9

    topic_words = set(normalize_text(topic).split())
    title_words = set(normalize_text(title).split())
    overlap = topic_words & title_words
    if overlap:
        return len(overlap) / max(len(topic_words), len(title_words))

    return calculate_similarity(topic, title)


def rank_related_posts(topic: str, posts: List[Dict[str, str]], limit: int = 5) -> List[Dict[str, str]]:
    """
    Order candidate posts by similarity to the topic and keep the best ``limit``.

    Args:
        topic: The topic being written about
        posts: List of posts with 'title' and 'url' keys
        limit: Maximum number of candidates to return

    Returns:
        Up to ``limit`` posts, best match first, unique by URL
    """
    seen = set()
    unique = []
    for post in posts:
        url = post.get('url', '')
        if not url or url in seen:
            continue
        seen.add(url)
        unique.append(post)

    ranked = sorted(unique, key=lambda p: match_score(topic, p.get('title', '')), reverse=True)
    if ranked:
        logger.debug(f"🔗 Best internal link candidate for '{topic}': '{ranked[0].get('title', '')}'")
    return ranked[:limit]


def is_outbound_url(url: str, site_url: Optional[str] = None) -> bool:
    """True for absolute http(s) URLs that point away from ``site_url``."""
    parsed = urlparse(url or '')
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return False
    if not site_url:
        return True
    site_host = urlparse(site_url).netloc.lower()
    host = parsed.netloc.lower()
    return host != site_host and not host.endswith('.' + site_host)
