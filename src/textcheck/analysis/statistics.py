"""Structural text statistics.

Counting rules:
- Paragraphs are blocks separated by a blank line (CRLF CRLF or LF LF).
- Words are runs of characters outside the delimiter set
  (space, tab, LF, CR and ``. , ; : ! ?``).
- Characters are everything that is not whitespace.

Blank text (empty or whitespace only) counts as zero for all three.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# CRLF CRLF is tried before LF LF at each position
_PARAGRAPH_SEPARATOR = re.compile(r"\r\n\r\n|\n\n")
_WORD_DELIMITERS = re.compile(r"[ \t\n\r.,;:!?]")


@dataclass(frozen=True)
class TextStatistics:
    paragraph_count: int
    word_count: int
    character_count: int


def decode_text(data: bytes) -> str:
    """Decode UTF-8, replacing malformed sequences instead of failing."""
    return data.decode("utf-8", errors="replace")


def _is_blank(text: str) -> bool:
    return not text or text.isspace()


def count_paragraphs(text: str) -> int:
    if _is_blank(text):
        return 0
    return sum(1 for block in _PARAGRAPH_SEPARATOR.split(text) if block)


def count_words(text: str) -> int:
    if _is_blank(text):
        return 0
    return sum(1 for word in _WORD_DELIMITERS.split(text) if word)


def count_characters(text: str) -> int:
    if _is_blank(text):
        return 0
    return sum(1 for ch in text if not ch.isspace())


def compute_statistics(text: str) -> TextStatistics:
    return TextStatistics(
        paragraph_count=count_paragraphs(text),
        word_count=count_words(text),
        character_count=count_characters(text),
    )
