"""
Response Parser: turns raw provider text into a ContentRecord.

Stages, first success wins:
1. strict JSON decode of the whole response
2. decode after :func:`repair_json_text`
3. decode of the first balanced ``{...}``/``[...]`` span (repaired first)
4. labeled-field extraction (``TITLE:``, ``CONTENT:`` ...)

Whatever stage produces the data, the record must carry a non-empty title
and content, otherwise :class:`ParseError` is raised.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from .models import ContentRecord, ImagePrompt, Link, ParseError
from .repair import repair_json_text
from .utils import normalize_dict_keys, to_string_list
from .utils.markup import BLOCK_TAG_RE, remove_duplicate_title_heading, strip_tags

logger = logging.getLogger(__name__)

LABELS = ["SEO_TITLE", "TITLE", "META_DESCRIPTION", "FOCUS_KEYWORD", "SLUG", "EXCERPT", "TAGS", "CONTENT"]
SINGLE_LINE_LABELS = {"seo_title", "title", "focus_keyword", "slug", "tags"}
LABEL_RE = re.compile(
    r'^[ \t]*(?:[#>*-]+[ \t]*)?(?:\*\*)?(%s)(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*' % "|".join(LABELS),
    re.IGNORECASE | re.MULTILINE,
)
FENCE_LINE_RE = re.compile(r'^[ \t]*```[\w-]*[ \t]*$', re.MULTILINE)


def _decode(text: str) -> Optional[Dict[str, Any]]:
    """Strictly decode ``text`` into a dict, unwrapping arrays and double encoding."""
    if not text or not text.strip():
        return None
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if isinstance(data, str) and data.strip()[:1] in ("{", "["):
        return _decode(data)
    if isinstance(data, list):
        data = next((item for item in data if isinstance(item, dict)), None)
    if not isinstance(data, dict):
        return None
    if "title" not in data and "content" not in data and len(data) == 1:
        inner = next(iter(data.values()))
        if isinstance(inner, dict):
            data = inner
    return data


def find_json_span(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` or ``[...]`` span of ``text``.

    Brackets inside string literals are ignored. When the text ends before the
    span closes, the tail starting at the opening bracket is returned so the
    repairer can close it.
    """
    start = None
    for index, ch in enumerate(text):
        if ch in "{[":
            start = index
            break
    if start is None:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return text[start:]


def _inline_markdown(text: str) -> str:
    text = re.sub(r'\*\*(.+?)\*\*', r'<strong>\1</strong>', text)
    text = re.sub(r'(?<![\*\w])\*(?!\s)(.+?)(?<!\s)\*(?![\*\w])', r'<em>\1</em>', text)
    return text


def markdown_to_html(text: str) -> str:
    """Convert markdown-ish text to HTML.

    ``#``/``##``/``###`` headings, ``-``/``*``/``1.`` lists and bold/italic
    markers are converted; other lines are grouped into paragraphs. Chunks
    and lines that already start with a block-level tag pass through untouched.
    """
    text = FENCE_LINE_RE.sub('', text or '').strip()
    if not text:
        return ''

    html_blocks = []
    for chunk in re.split(r'\n\s*\n', text):
        chunk = chunk.strip()
        if not chunk:
            continue
        if BLOCK_TAG_RE.match(chunk):
            html_blocks.append(chunk)
            continue

        paragraph = []
        items = []
        list_tag = None

        def flush_paragraph():
            if paragraph:
                html_blocks.append(f"<p>{_inline_markdown(' '.join(paragraph))}</p>")
                paragraph.clear()

        def flush_list():
            nonlocal list_tag
            if items:
                inner = "".join(f"<li>{_inline_markdown(item)}</li>" for item in items)
                html_blocks.append(f"<{list_tag}>{inner}</{list_tag}>")
                items.clear()
            list_tag = None

        for line in chunk.splitlines():
            line = line.strip()
            if not line:
                continue
            if BLOCK_TAG_RE.match(line):
                flush_paragraph()
                flush_list()
                html_blocks.append(line)
                continue
            heading = re.match(r'^(#{1,6})\s+(.+?)\s*#*$', line)
            bullet = re.match(r'^[-*+]\s+(.+)$', line)
            numbered = re.match(r'^\d+[.)]\s+(.+)$', line)
            if heading:
                flush_paragraph()
                flush_list()
                level = len(heading.group(1))
                html_blocks.append(f"<h{level}>{_inline_markdown(heading.group(2))}</h{level}>")
            elif bullet or numbered:
                flush_paragraph()
                wanted = "ul" if bullet else "ol"
                if list_tag and list_tag != wanted:
                    flush_list()
                list_tag = wanted
                items.append((bullet or numbered).group(1))
            else:
                flush_list()
                paragraph.append(line)
        flush_paragraph()
        flush_list()

    return "\n".join(html_blocks)


def extract_labeled_fields(raw: str) -> Dict[str, str]:
    """Extract ``LABEL: value`` fields; each label runs until the next label.

    Title, focus keyword, slug and tags keep only the first line of their
    section. Without a title label the first non-label line of the text is
    used as title.
    """
    matches = list(LABEL_RE.finditer(raw or ''))
    if not matches:
        return {}

    fields = {}
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(raw)
        key = match.group(1).lower()
        value = FENCE_LINE_RE.sub('', raw[match.end():end]).strip()
        if key in SINGLE_LINE_LABELS:
            value = value.splitlines()[0].strip() if value else ''
            value = value.strip('*').strip()
        if not value or fields.get(key):
            continue
        fields[key] = value

    fields = normalize_dict_keys(fields)
    if not fields.get("title"):
        for line in raw.splitlines():
            if not line.strip() or LABEL_RE.match(line) or FENCE_LINE_RE.match(line):
                continue
            candidate = strip_tags(line.strip().lstrip('#').strip())
            if candidate:
                fields["title"] = candidate
                break
    return fields


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return "\n\n".join(_as_text(item) for item in value if item is not None).strip()
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value).strip()


def _as_list(value: Any) -> List[Any]:
    if value is None or value == '':
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _image_prompts(value: Any) -> List[ImagePrompt]:
    prompts = []
    for item in _as_list(value):
        if isinstance(item, dict):
            item = normalize_dict_keys(item, aliases={})
            prompt = _as_text(item.get("prompt") or item.get("image_prompt") or item.get("text"))
            alt = _as_text(item.get("alt") or item.get("alt_text"))
        else:
            prompt, alt = _as_text(item), ''
        if prompt or alt:
            prompts.append(ImagePrompt(prompt=prompt, alt=alt))
    return prompts


def _links(value: Any) -> List[Link]:
    links = []
    for item in _as_list(value):
        if isinstance(item, dict):
            item = normalize_dict_keys(item, aliases={})
            url = _as_text(item.get("url") or item.get("href") or item.get("link") or item.get("slug"))
            anchor = _as_text(item.get("anchor") or item.get("anchor_text") or item.get("text") or item.get("title"))
        else:
            url = _as_text(item)
            anchor = url
        if url:
            links.append(Link(url=url, anchor=anchor))
    return links


def build_record(data: Dict[str, Any], provider: str = "") -> ContentRecord:
    """Validation gate: build a ContentRecord from decoded data or raise ParseError."""
    data = normalize_dict_keys(data)
    title = _as_text(data.get("title"))
    content = _as_text(data.get("content"))
    if not title or not content:
        missing = [name for name, value in (("title", title), ("content", content)) if not value]
        raise ParseError(ParseError.MISSING_REQUIRED_FIELDS, f"Missing required fields: {', '.join(missing)}")

    return ContentRecord(
        title=title,
        meta_description=_as_text(data.get("meta_description")),
        slug=_as_text(data.get("slug")),
        content=remove_duplicate_title_heading(content, title),
        excerpt=_as_text(data.get("excerpt")),
        focus_keyword=_as_text(data.get("focus_keyword")),
        secondary_keywords=to_string_list(data.get("secondary_keywords")),
        tags=to_string_list(data.get("tags")),
        image_prompts=_image_prompts(data.get("image_prompts")),
        internal_links=_links(data.get("internal_links")),
        outbound_links=_links(data.get("outbound_links")),
        provider=provider or _as_text(data.get("provider")),
    )


def parse_response(raw: str, provider: str = "") -> ContentRecord:
    """Parse raw provider output into a ContentRecord.

    Raises:
        ParseError: ``empty_input``, ``decode_failed`` or ``missing_required_fields``
    """
    if raw is None or not str(raw).strip():
        raise ParseError(ParseError.EMPTY_INPUT, "Provider returned an empty response")
    raw = str(raw)

    missing_fields = None
    candidates = (
        ("direct", lambda: _decode(raw)),
        ("repaired", lambda: _decode(repair_json_text(raw))),
        ("span", lambda: _decode(repair_json_text(find_json_span(raw) or ''))),
    )
    for stage, decode in candidates:
        data = decode()
        if data is None:
            continue
        try:
            record = build_record(data, provider)
        except ParseError as e:
            missing_fields = e
            logger.debug(f"Decoded JSON ({stage}) lacks required fields: {e}")
            continue
        logger.debug(f"Parsed provider response via {stage} JSON decode")
        return record

    fields = extract_labeled_fields(raw)
    if fields:
        if fields.get("content"):
            fields["content"] = markdown_to_html(fields["content"])
        try:
            record = build_record(fields, provider)
        except ParseError as e:
            missing_fields = e
        else:
            logger.info("Parsed provider response via labeled-field fallback")
            return record

    if missing_fields is not None:
        raise missing_fields
    raise ParseError(ParseError.DECODE_FAILED, "No JSON object or labeled fields could be recovered")
