"""
Sentence tokenizer shared by the validator and the auto-fix engine.

Content is split into block-level chunks first, so a heading never merges
with the sentence that follows it. Headings are kept out of the sentence
statistics.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from .markup import count_phrase, html_to_blocks

SENTENCE_BOUNDARY_RE = re.compile(r'(?<=[.?!])\s+(?=[A-Z0-9])')
HEADING_BLOCKS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6"])


@dataclass(frozen=True)
class Sentence:
    text: str

    @property
    def word_count(self) -> int:
        return len(self.text.split())


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in SENTENCE_BOUNDARY_RE.split(text or '') if s.strip()]


def iter_sentences(blocks: Sequence[Tuple[str, str]]) -> Iterator[Sentence]:
    for tag, text in blocks:
        if tag in HEADING_BLOCKS:
            continue
        for sentence in split_sentences(text):
            yield Sentence(sentence)


def transition_pattern(words: Sequence[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(w.lower()) for w in words if w.strip())
    return re.compile(r'\b(?:%s)\b' % (alternatives or r'(?!x)x'), re.IGNORECASE)


def has_transition(sentence: str, words: Sequence[str]) -> bool:
    return bool(transition_pattern(words).search(sentence))


class TextAnalysis:
    """Blocks, plain text and sentences of one HTML document, computed once."""

    def __init__(self, content: str):
        self.content = content or ''
        self.blocks = html_to_blocks(self.content)
        self.plain_text = "\n\n".join(text for _, text in self.blocks)
        self.sentences = tuple(iter_sentences(self.blocks))

    def keyword_count(self, keyword: str) -> int:
        return count_phrase(self.plain_text, keyword)

    @property
    def average_sentence_words(self) -> float:
        if not self.sentences:
            return 0.0
        return sum(s.word_count for s in self.sentences) / len(self.sentences)

    def long_sentence_pct(self, max_words: int) -> float:
        if not self.sentences:
            return 0.0
        long_count = sum(1 for s in self.sentences if s.word_count > max_words)
        return long_count * 100.0 / len(self.sentences)

    def transition_count(self, words: Sequence[str]) -> int:
        pattern = transition_pattern(words)
        return sum(1 for s in self.sentences if pattern.search(s.text))

    def transition_pct(self, words: Sequence[str]) -> float:
        if not self.sentences:
            return 0.0
        return self.transition_count(words) * 100.0 / len(self.sentences)


def analyze(content: str) -> TextAnalysis:
    """Tokenize ``content`` once; callers pass the result to whatever needs it."""
    return TextAnalysis(content)
