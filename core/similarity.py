"""Word-set similarity helpers used by duplicate detection."""

from __future__ import annotations

import re
from typing import AbstractSet, Iterable, List

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_words(text: str) -> List[str]:
    """Lowercase, turn punctuation into spaces and split on whitespace."""
    cleaned = _PUNCTUATION.sub(" ", (text or "").lower())
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned.split(" ") if cleaned else []


def normalize_tokens(text: str) -> List[str]:
    """Normalized words longer than two characters, in order."""
    return [word for word in normalize_words(text) if len(word) > 2]


def jaccard(left: AbstractSet[str], right: AbstractSet[str]) -> float:
    union = len(left | right)
    if not union:
        return 0.0
    return len(left & right) / union


def calculate_similarity(text_a: str, text_b: str) -> float:
    """Jaccard similarity of the two texts' token sets; 0.0 when both are empty."""
    return jaccard(set(normalize_tokens(text_a)), set(normalize_tokens(text_b)))


def extract_key_phrases(text: str) -> List[str]:
    """
    Adjacent 2-word and 3-word phrases over the normalized word sequence.

    A pair is kept when both words are longer than two characters; the triple
    starting at the same word is kept when its third word also is.
    """
    words = normalize_words(text)
    phrases: List[str] = []
    for index in range(len(words) - 1):
        first, second = words[index], words[index + 1]
        if len(first) <= 2 or len(second) <= 2:
            continue
        phrases.append(f"{first} {second}")
        if index + 2 < len(words) and len(words[index + 2]) > 2:
            phrases.append(f"{first} {second} {words[index + 2]}")
    return phrases


def phrase_token_sets(phrases: Iterable[str]) -> List[frozenset]:
    return [frozenset(normalize_tokens(phrase)) for phrase in phrases]
