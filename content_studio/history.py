"""
Keyword history lookups.

Any object with a ``was_used_before(keyword) -> bool`` method can act as the
site-wide keyword history (see ``WordPressClient``).
"""

import logging
import threading
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class InMemoryKeywordHistory:
    """Keyword history kept in process memory, safe for concurrent reads."""

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        self._lock = threading.Lock()
        self._keywords = {k.strip().lower() for k in (keywords or []) if k and k.strip()}

    def was_used_before(self, keyword: str) -> bool:
        return (keyword or '').strip().lower() in self._keywords

    def add(self, keyword: str):
        if keyword and keyword.strip():
            with self._lock:
                self._keywords = self._keywords | {keyword.strip().lower()}


def keyword_used_before(history, keyword: str) -> bool:
    """Ask ``history`` about ``keyword``; lookup failures count as 'never used'."""
    if history is None or not keyword:
        return False
    try:
        return bool(history.was_used_before(keyword))
    except Exception as e:
        logger.warning(f"Keyword history lookup failed for '{keyword}': {e}")
        return False
