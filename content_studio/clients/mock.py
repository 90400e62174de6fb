import json
import logging
import re
from typing import Any, Dict, Optional

from .base import ProviderClient

logger = logging.getLogger(__name__)


class MockClient(ProviderClient):
    """Offline provider for local end-to-end runs.

    Returns a canned article for the topic named in the prompt, prefixed with
    a commentary line the way real models sometimes answer.
    """

    name = "mock"
    default_model = "mock-model"

    def __init__(self, api_key: Optional[str] = "mock", model: Optional[str] = None, timeout: float = 0):
        super().__init__(api_key or "mock", model, timeout)

    def call(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        topic_match = re.search(r'^TOPIC:\s*(.+)$', prompt, re.MULTILINE)
        keyword_match = re.search(r'^FOCUS KEYWORD:\s*(.+)$', prompt, re.MULTILINE)
        topic = topic_match.group(1).strip() if topic_match else "Content automation"
        keyword = keyword_match.group(1).strip() if keyword_match else topic.lower()
        heading_keyword = keyword[:1].upper() + keyword[1:]
        logger.info(f"Mock provider generating article for '{topic}'")

        content = (
            f"<p>{heading_keyword} helps small teams publish useful articles. This guide covers the basics.</p>"
            f"<h2>Why {keyword} matters</h2>"
            f"<p>Readers want clear answers. However, many articles bury them. Short sentences help.</p>"
            f"<p>Moreover, structure guides the reader. Headings break the page into steps. "
            f"Lists make details easy to scan.</p>"
            f"<h3>Getting started with {keyword}</h3>"
            f"<p>Therefore, start with one small goal. Measure the result after a week. "
            f"Then adjust the plan.</p>"
            f"<p>Furthermore, review older posts regularly. See the "
            f"<a href=\"https://en.wikipedia.org/wiki/Search_engine_optimization\">SEO overview</a> for background.</p>"
        )
        article = {
            "title": f"{heading_keyword}: A Practical Guide",
            "meta_description": f"Learn how {keyword} works with practical steps, examples and tips you can apply today.",
            "slug": re.sub(r'[^a-z0-9]+', '-', keyword.lower()).strip('-'),
            "content": content,
            "excerpt": f"A practical introduction to {keyword} with simple steps.",
            "focus_keyword": keyword,
            "secondary_keywords": ["content planning", "seo basics"],
            "tags": [keyword, "guides"],
            "image_prompts": [{"prompt": f"Editorial illustration about {topic}", "alt": f"{keyword} overview"}],
            "internal_links": [
                {"url": "/related-topics", "anchor": "Related topics"},
                {"url": "/resources", "anchor": "Further reading"},
            ],
            "outbound_links": [
                {"url": "https://en.wikipedia.org/wiki/Search_engine_optimization", "anchor": "SEO overview"},
            ],
        }
        return "Note: returning generated content\n" + json.dumps(article)
