"""
HTML helpers shared by the parser, sanitizer, validator and auto-fix engine.
"""

import html
import re
import unicodedata
from typing import List, Optional, Sequence, Tuple

BOLD_TAG_RE = re.compile(r'<(/)?(b|strong)(\s[^>]*)?>', re.IGNORECASE)
TAG_RE = re.compile(r'<[^>]+>')
WHITESPACE_RE = re.compile(r'\s+')
PARAGRAPH_RE = re.compile(r'(<p\b[^>]*>)(.*?)(</p>)', re.IGNORECASE | re.DOTALL)
HEADING_RE = re.compile(r'<h([1-6])\b[^>]*>(.*?)</h\1\s*>', re.IGNORECASE | re.DOTALL)
LEADING_HEADING_RE = re.compile(r'^\s*<h([1-6])\b[^>]*>(.*?)</h\1\s*>\s*', re.IGNORECASE | re.DOTALL)
ANCHOR_HREF_RE = re.compile(r'<a\b[^>]*?\bhref\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)

BLOCK_TAGS = (
    "p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li", "blockquote",
    "pre", "div", "section", "article", "table", "tr", "td", "th", "figure",
    "figcaption", "br", "hr",
)
BLOCK_TAG_RE = re.compile(r'<(/?)(%s)\b[^>]*>' % "|".join(BLOCK_TAGS), re.IGNORECASE)

ALLOWED_TAGS = frozenset([
    "p", "br", "strong", "em", "i", "u", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "a", "img", "blockquote", "code", "pre",
])


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(' ', text or '').strip()


def strip_tags(value: str) -> str:
    """Remove every tag, decode entities and collapse whitespace."""
    if not value:
        return ''
    text = TAG_RE.sub(' ', value)
    return collapse_whitespace(html.unescape(text))


def strip_bold_tags(content: str) -> str:
    """Remove <b>/<strong> tags (with or without attributes) until none remain."""
    if not content:
        return content or ''
    previous = None
    while previous != content:
        previous = content
        content = BOLD_TAG_RE.sub('', content)
    return content


def filter_allowed_tags(content: str, allowed: Sequence[str] = ALLOWED_TAGS) -> str:
    """Drop tags outside the allow-list, keeping their inner text.

    Script and style elements are removed together with their bodies, and
    inline event handler attributes are stripped from the tags that stay.
    """
    if not content:
        return content or ''
    allowed = {tag.lower() for tag in allowed}
    content = re.sub(r'<(script|style)\b.*?</\1\s*>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'<!--.*?-->', '', content, flags=re.DOTALL)

    def keep_or_drop(match):
        name = match.group(1).lower()
        if name not in allowed:
            return ''
        return re.sub(r'\s+on\w+\s*=\s*("[^"]*"|\'[^\']*\'|[^\s>]+)', '', match.group(0), flags=re.IGNORECASE)

    return re.sub(r'</?([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>', keep_or_drop, content)


def html_to_blocks(content: str) -> List[Tuple[str, str]]:
    """Split HTML into ``(block_tag, plain_text)`` pairs in document order.

    Text that sits outside any block element is reported with tag ``"text"``.
    Content without block tags is split on blank lines instead.
    """
    if not content:
        return []

    if not BLOCK_TAG_RE.search(content):
        chunks = re.split(r'\n\s*\n', content)
        return [("text", text) for text in (strip_tags(chunk) for chunk in chunks) if text]

    blocks = []
    current = "text"
    position = 0
    for match in BLOCK_TAG_RE.finditer(content):
        text = strip_tags(content[position:match.start()])
        if text:
            blocks.append((current, text))
        closing, name = match.group(1), match.group(2).lower()
        if name in ("br", "hr"):
            pass
        elif closing:
            current = "text"
        else:
            current = name
        position = match.end()
    tail = strip_tags(content[position:])
    if tail:
        blocks.append((current, tail))
    return blocks


def first_paragraph_span(content: str) -> Optional[Tuple[int, int]]:
    """Character span of the first paragraph's inner HTML.

    The first ``<p>`` element wins; without ``<p>`` tags the first
    blank-line-delimited chunk is used.
    """
    if not content:
        return None
    match = PARAGRAPH_RE.search(content)
    if match:
        return match.start(2), match.end(2)
    match = re.search(r'\S.*?(?=\n\s*\n|\Z)', content, re.DOTALL)
    if match:
        return match.start(), match.end()
    return None


def first_paragraph_text(content: str) -> str:
    span = first_paragraph_span(content)
    if not span:
        return ''
    return strip_tags(content[span[0]:span[1]])


def heading_texts(content: str, levels: Sequence[int] = (2, 3)) -> List[str]:
    return [strip_tags(m.group(2)) for m in HEADING_RE.finditer(content or '') if int(m.group(1)) in levels]


def normalize_for_compare(text: str) -> str:
    return collapse_whitespace(strip_tags(text)).lower()


def remove_duplicate_title_heading(content: str, title: str) -> str:
    """Remove leading headings whose text matches the title (case/whitespace-insensitive)."""
    if not content or not title:
        return content
    wanted = normalize_for_compare(title)
    match = LEADING_HEADING_RE.match(content)
    while match and normalize_for_compare(match.group(2)) == wanted:
        content = content[match.end():]
        match = LEADING_HEADING_RE.match(content)
    return content


def truncate_text(text: str, limit: int, ellipsis: str = '...') -> str:
    """Cut ``text`` to at most ``limit`` characters, preferring the last word boundary."""
    if text is None or len(text) <= limit:
        return text
    cut = text[:max(limit - len(ellipsis), 0)]
    space = cut.rfind(' ')
    if space > limit // 2:
        cut = cut[:space]
    cut = cut.rstrip(' ,;:-.')
    return cut + ellipsis


def slugify(value: str, max_length: int = 200) -> str:
    text = unicodedata.normalize('NFKD', strip_tags(value or '')).encode('ascii', 'ignore').decode('ascii')
    text = re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')
    return text[:max_length].rstrip('-')


def phrase_pattern(phrase: str) -> re.Pattern:
    """Case-insensitive whole-word pattern for ``phrase`` (inner whitespace is flexible)."""
    parts = [re.escape(p) for p in phrase.split()]
    return re.compile(r'(?<!\w)' + r'\s+'.join(parts) + r'(?!\w)', re.IGNORECASE)


def contains_phrase(text: str, phrase: str) -> bool:
    if not text or not phrase or not phrase.strip():
        return False
    return bool(phrase_pattern(phrase).search(text))


def count_phrase(text: str, phrase: str) -> int:
    if not text or not phrase or not phrase.strip():
        return 0
    return len(phrase_pattern(phrase).findall(text))


def iter_text_segments(content: str):
    """Yield ``(offset, segment, is_tag)`` for the pieces of an HTML string."""
    position = 0
    for match in TAG_RE.finditer(content):
        if match.start() > position:
            yield position, content[position:match.start()], False
        yield match.start(), match.group(0), True
        position = match.end()
    if position < len(content):
        yield position, content[position:], False
