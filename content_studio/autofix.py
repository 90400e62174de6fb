"""
Auto-fix engine: deterministic corrections applied without another model call.

Each rule only fires when its triggering condition holds, and every rule
leaves the record in a state where the same condition no longer holds (or
can no longer be improved), so applying the engine twice gives the same
result as applying it once.
"""

import html
import logging
import re
from typing import Iterator, List, Optional, Tuple

from .config import SEORules
from .models import ContentRecord, ImagePrompt, Link
from .parser import markdown_to_html
from .utils.linking import is_outbound_url
from .utils.markup import (
    ANCHOR_HREF_RE,
    PARAGRAPH_RE,
    collapse_whitespace,
    contains_phrase,
    first_paragraph_span,
    first_paragraph_text,
    iter_text_segments,
    phrase_pattern,
    remove_duplicate_title_heading,
    slugify,
    strip_bold_tags,
    strip_tags,
    truncate_text,
)
from .utils.text import SENTENCE_BOUNDARY_RE, analyze, has_transition, split_sentences
from .validator import mentions_keyword

logger = logging.getLogger(__name__)

SPLIT_COMMA_RE = re.compile(r',\s+(?=[A-Za-z0-9])')
MIN_SPLIT_WORDS = 4
FALLBACK_SYNONYM = "this topic"
MIN_META_LENGTH = 120


def _inside_tag(text: str, index: int) -> bool:
    return text.rfind('<', 0, index) > text.rfind('>', 0, index)


def _sentence_spans(text: str) -> Iterator[Tuple[int, int]]:
    start = 0
    for boundary in SENTENCE_BOUNDARY_RE.finditer(text):
        yield start, boundary.start()
        start = boundary.end()
    yield start, len(text)


def _match_case(replacement: str, original: str) -> str:
    if original[:1].isupper() and replacement[:1].islower():
        return replacement[0].upper() + replacement[1:]
    return replacement


class AutoFixEngine:
    def __init__(self, rules: Optional[SEORules] = None):
        self.rules = rules or SEORules()

    def apply(self, record: ContentRecord, keyword_used_before: bool = False) -> Optional[ContentRecord]:
        """Return a corrected copy of ``record``, or None when no rule changed anything."""
        fixed = record.model_copy(deep=True)
        keyword = collapse_whitespace(fixed.focus_keyword)

        fixed.title = self.fix_title(record.title, keyword)
        fixed.meta_description = truncate_text(fixed.meta_description, self.rules.meta_max_length)

        content = strip_bold_tags(fixed.content)
        content = remove_duplicate_title_heading(content, record.title)
        content = remove_duplicate_title_heading(content, fixed.title)
        if content.strip() and not PARAGRAPH_RE.search(content):
            content = markdown_to_html(content)
        # The outbound snippet is a <p>; it must exist before the first paragraph is checked.
        content, fixed.outbound_links = self.ensure_outbound_link(content, fixed.outbound_links)
        if keyword:
            content = self.ensure_keyword_in_first_paragraph(content, keyword)
            content = self.reduce_keyword_density(content, keyword, keyword_used_before)

        fixed.image_prompts = self.fix_image_prompts(fixed.image_prompts, fixed.title, keyword)
        fixed.internal_links = self.fill_internal_links(fixed.internal_links, keyword)
        content = self.split_long_sentences(content)
        content = self.balance_transitions(content)
        fixed.content = content
        self.fill_summary_fields(fixed, keyword)

        if fixed == record:
            return None
        logger.info(f"🛠️ Auto-fix applied to '{fixed.title}'")
        return fixed

    # --- title / meta ---

    def fix_title(self, title: str, keyword: str) -> str:
        limit = self.rules.title_max_length
        title = collapse_whitespace(strip_tags(title))
        if keyword and not title.lower().startswith(keyword.lower()):
            if len(keyword) <= limit - 4:
                title = f"{keyword} - {title}" if title else keyword
            elif len(keyword) <= limit:
                title = keyword
        return truncate_text(title, limit)

    def build_meta_description(self, record: ContentRecord) -> str:
        """Meta description from the leading sentences of the content, topped up with the title."""
        candidate = ""
        for sentence in analyze(record.content).sentences:
            candidate = f"{candidate} {sentence.text}".strip()
            if len(candidate) >= MIN_META_LENGTH:
                break
        title = collapse_whitespace(strip_tags(record.title))
        if len(candidate) < MIN_META_LENGTH and title and title not in candidate:
            candidate = f"{title}. {candidate}".strip() if candidate else title
        return truncate_text(candidate, self.rules.meta_max_length)

    def fill_summary_fields(self, record: ContentRecord, keyword: str):
        """Backfill an empty meta description, excerpt or slug in place."""
        if not record.meta_description.strip():
            record.meta_description = self.build_meta_description(record)
        if not record.excerpt.strip():
            summary = first_paragraph_text(record.content) or record.meta_description
            record.excerpt = truncate_text(summary, self.rules.excerpt_max_length)
        if not record.slug.strip():
            record.slug = slugify(keyword or record.title)

    # --- keyword placement ---

    def ensure_keyword_in_first_paragraph(self, content: str, keyword: str) -> str:
        if contains_phrase(first_paragraph_text(content), keyword):
            return content
        sentence = f"{keyword[0].upper()}{keyword[1:]} is an important topic to consider."
        paragraph = f"<p>{html.escape(sentence, quote=False)}</p>"
        return f"{paragraph}\n{content}" if content else paragraph

    def replacement_synonyms(self, keyword: str) -> List[str]:
        synonyms = [
            s for s in self.rules.synonyms
            if s.strip() and not contains_phrase(s, keyword) and not contains_phrase(keyword, s)
        ]
        return synonyms or [FALLBACK_SYNONYM]

    def reduce_keyword_density(self, content: str, keyword: str, keyword_used_before: bool) -> str:
        """Swap keyword occurrences beyond the keep-first threshold for rotating synonyms.

        The first N occurrences in document order are kept. The first
        occurrence inside the first paragraph is kept as well; when it falls
        outside the first N and one more would break the density limit, it
        takes the last of the N slots.
        """
        rules = self.rules
        allowed = rules.density_max_used if keyword_used_before else rules.density_max_new
        if analyze(content).keyword_count(keyword) <= allowed:
            return content

        keep = min(rules.keep_first_used if keyword_used_before else rules.keep_first_new, allowed)
        pattern = phrase_pattern(keyword)
        matches = []
        for offset, segment, is_tag in iter_text_segments(content):
            if is_tag:
                continue
            for m in pattern.finditer(segment):
                matches.append((offset + m.start(), offset + m.end(), m.group(0)))

        span = first_paragraph_span(content)
        kept = set(range(keep))
        if span:
            protected = next(
                (i for i, m in enumerate(matches) if span[0] <= m[0] and m[1] <= span[1]), None
            )
            if protected is not None and protected not in kept:
                if keep >= allowed:
                    kept.discard(keep - 1)
                kept.add(protected)

        synonyms = self.replacement_synonyms(keyword)
        pieces = []
        position = 0
        replaced = 0
        for index, match in enumerate(matches):
            if index in kept:
                continue
            synonym = html.escape(synonyms[replaced % len(synonyms)], quote=False)
            pieces.append(content[position:match[0]])
            pieces.append(_match_case(synonym, match[2]))
            position = match[1]
            replaced += 1
        pieces.append(content[position:])

        if replaced:
            logger.info(f"Replaced {replaced} excess occurrence(s) of '{keyword}' with synonyms")
        return "".join(pieces)

    # --- images and links ---

    def fix_image_prompts(self, prompts: List[ImagePrompt], title: str, keyword: str) -> List[ImagePrompt]:
        alt = f"{keyword} - featured image" if keyword else title
        if not prompts:
            return [ImagePrompt(prompt=f"Featured image for an article titled '{title}'", alt=alt)]
        if keyword and not any(mentions_keyword(p.alt, keyword, self.rules.synonyms) for p in prompts):
            prompts = list(prompts)
            prompts[0] = prompts[0].model_copy(update={"alt": alt})
        return prompts

    def fill_internal_links(self, links: List[Link], keyword: str) -> List[Link]:
        links = list(links)
        present = {link.url for link in links}
        for url, anchor in self.rules.fallback_internal_links:
            if len(links) >= self.rules.min_internal_links:
                break
            if url in present or (keyword and anchor.strip().lower() == keyword.lower()):
                continue
            links.append(Link(url=url, anchor=anchor))
            present.add(url)
        return links

    def ensure_outbound_link(self, content: str, outbound_links: List[Link]) -> Tuple[str, List[Link]]:
        hrefs = ANCHOR_HREF_RE.findall(content)
        if any(is_outbound_url(href, self.rules.site_url) for href in hrefs):
            return content, outbound_links

        url = self.rules.fallback_outbound_url
        anchor = self.rules.fallback_outbound_anchor
        snippet = (
            f'<p>For further reading on this topic, see <a href="{html.escape(url)}" '
            f'target="_blank" rel="noopener">{html.escape(anchor, quote=False)}</a>.</p>'
        )
        close = re.search(r'</p\s*>', content, re.IGNORECASE)
        if close:
            content = f"{content[:close.end()]}\n{snippet}{content[close.end():]}"
        else:
            content = f"{content}\n{snippet}" if content else snippet

        links = list(outbound_links)
        if url not in {link.url for link in links}:
            links.append(Link(url=url, anchor=anchor))
        return content, links

    # --- readability ---

    def _split_first_long_sentence(self, inner: str) -> str:
        limit = self.rules.long_sentence_words
        for start, end in _sentence_spans(inner):
            sentence = inner[start:end]
            if len(strip_tags(sentence).split()) <= limit:
                continue
            for comma in SPLIT_COMMA_RE.finditer(sentence):
                if _inside_tag(sentence, comma.start()):
                    continue
                left = strip_tags(sentence[:comma.start()]).split()
                rest = sentence[comma.end():]
                if len(left) < MIN_SPLIT_WORDS or len(strip_tags(rest).split()) < MIN_SPLIT_WORDS:
                    continue
                split = f"{sentence[:comma.start()]}. {rest[0].upper()}{rest[1:]}"
                return inner[:start] + split + inner[end:]
        return inner

    def split_long_sentences(self, content: str) -> str:
        """Split overly long sentences at their first usable comma.

        Repeats until no long sentence has a usable comma left; every split
        consumes one comma, so the loop is bounded.
        """
        for _ in range(content.count(',') + 1):
            changed = False
            for match in PARAGRAPH_RE.finditer(content):
                inner = match.group(2)
                new_inner = self._split_first_long_sentence(inner)
                if new_inner != inner:
                    content = content[:match.start(2)] + new_inner + content[match.end(2):]
                    changed = True
                    break
            if not changed:
                break
        return content

    def _prepend_transition(self, inner: str, word: str) -> str:
        stripped = inner.lstrip()
        lead = inner[:len(inner) - len(stripped)]
        first_word = re.match(r'[^\s<]+', stripped)
        if first_word:
            token = first_word.group(0)
            if len(token) > 1 and token[0].isupper() and token[1:].islower():
                stripped = stripped[0].lower() + stripped[1:]
        return f"{lead}{word.capitalize()}, {stripped}"

    def balance_transitions(self, content: str) -> str:
        """Prepend rotating transition words to paragraph openers until the target share is met.

        The first paragraph is left alone, as are openers that already carry a
        transition or would become long sentences.
        """
        rules = self.rules
        words = [w for w in rules.transition_words if w.strip()]
        analysis = analyze(content)
        total = len(analysis.sentences)
        if not words or not total:
            return content
        with_transition = analysis.transition_count(words)
        if with_transition * 100.0 / total >= rules.min_transition_pct:
            return content

        first_span = first_paragraph_span(content)
        pieces = []
        position = 0
        rotation = 0
        for match in PARAGRAPH_RE.finditer(content):
            if with_transition * 100.0 / total >= rules.min_transition_pct:
                break
            if first_span and match.start(2) == first_span[0]:
                continue
            inner = match.group(2)
            sentences = split_sentences(strip_tags(inner))
            if not sentences:
                continue
            opener = sentences[0]
            if has_transition(opener, words) or len(opener.split()) + 1 > rules.long_sentence_words:
                continue
            pieces.append(content[position:match.start(2)])
            pieces.append(self._prepend_transition(inner, words[rotation % len(words)]))
            position = match.end(2)
            rotation += 1
            with_transition += 1
        pieces.append(content[position:])
        return "".join(pieces)
