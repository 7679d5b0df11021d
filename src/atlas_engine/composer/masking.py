"""Sentence-level supersede masking.

A structural (dynamic) layer can declare ``supersedes`` fragments; any
sentence of the root text that mentions one of them as a whole word or
phrase, case-insensitively, is dropped before the layer's own text is
appended.

The sentence splitter only splits after ``.``, ``!``
or ``?`` followed by whitespace or end of text and does not special-case
quoted speech, abbreviations or decimal numbers.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

_SENTENCE_BOUNDARY = re.compile(r"([.!?])(?:\s+|$)")


@dataclass(frozen=True)
class MaskResult:
    """Outcome of masking one root text.

    Attributes:
        text:               Surviving sentences joined with single spaces.
        removed:            Sentences that were dropped, in original order.
        matched_fragments:  Fragments that removed at least one sentence.
    """

    text: str
    removed: tuple[str, ...] = ()
    matched_fragments: frozenset[str] = frozenset()


def split_sentences(text: str) -> list[str]:
    """Split ``text`` into sentences, keeping each terminator."""
    parts = _SENTENCE_BOUNDARY.split(text)
    sentences = []
    # parts alternates chunk, terminator, chunk, ..., trailing chunk
    for index in range(0, len(parts), 2):
        terminator = parts[index + 1] if index + 1 < len(parts) else ""
        sentence = (parts[index] + terminator).strip()
        if sentence:
            sentences.append(sentence)
    return sentences


def fragment_pattern(fragment: str) -> re.Pattern[str]:
    """Case-insensitive whole-word/phrase pattern for a supersede fragment."""
    return re.compile(rf"\b{re.escape(fragment.strip())}\b", re.IGNORECASE)


def mask_superseded(text: str, fragments: Iterable[str]) -> MaskResult:
    """Drop every sentence of ``text`` that mentions any of ``fragments``."""
    patterns = {f: fragment_pattern(f) for f in fragments if f and f.strip()}
    if not patterns or not text:
        return MaskResult(text=text)

    kept: list[str] = []
    removed: list[str] = []
    matched: set[str] = set()
    for sentence in split_sentences(text):
        hits = [f for f, pattern in patterns.items() if pattern.search(sentence)]
        if hits:
            removed.append(sentence)
            matched.update(hits)
        else:
            kept.append(sentence)

    return MaskResult(
        text=" ".join(kept),
        removed=tuple(removed),
        matched_fragments=frozenset(matched),
    )
