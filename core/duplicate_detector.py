"""Similarity-based duplicate detection against the blog index and Markdown corpus."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from core.blog_store import BlogIndex
from core.content_hash import ContentHashStore
from core.similarity import (
    calculate_similarity,
    extract_key_phrases,
    jaccard,
    phrase_token_sets,
)
from utils.logger import setup_logger

FRONTMATTER = re.compile(r"^---[\s\S]*?---\n([\s\S]*)$")

REASON_UNIQUE = "Content is unique"
REASON_TITLE = "Similar title exists"
REASON_CONTENT = "Similar content exists"
REASON_PHRASES = "Similar key phrases found"
REASON_HASH = "Identical content hash exists"
REASON_ERROR = "Error during duplicate check - proceeding with generation"


@dataclass
class DuplicateCheckResult:
    """Outcome of a duplicate check. Always produced, never raised."""

    is_duplicate: bool
    reason: str
    similar_title: Optional[str] = None
    similar_file: Optional[str] = None
    similarity: Optional[float] = None
    phrase_overlap: Optional[float] = None
    common_phrases: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"isDuplicate": self.is_duplicate, "reason": self.reason}
        if self.similar_title is not None:
            payload["similarTitle"] = self.similar_title
        if self.similar_file is not None:
            payload["similarFile"] = self.similar_file
        if self.similarity is not None:
            payload["similarity"] = self.similarity
        if self.phrase_overlap is not None:
            payload["phraseOverlap"] = self.phrase_overlap
            payload["commonPhrases"] = list(self.common_phrases)
        return payload


def strip_frontmatter(text: str) -> str:
    match = FRONTMATTER.match(text)
    return match.group(1) if match else text


class _PhraseIndex:
    """Existing phrases grouped by token, so only phrases sharing a word are compared."""

    def __init__(self, phrases: List[str]) -> None:
        self.sets = set(phrase_token_sets(phrases))
        self.by_token: Dict[str, List[frozenset]] = defaultdict(list)
        for tokens in self.sets:
            for token in tokens:
                self.by_token[token].append(tokens)

    def has_match(self, tokens: frozenset, threshold: float) -> bool:
        if tokens in self.sets and threshold < 1.0:
            return True
        for token in tokens:
            for candidate in self.by_token.get(token, ()):
                if jaccard(tokens, candidate) > threshold:
                    return True
        return False


class DuplicateDetector:
    """
    Decide whether a proposed article is too close to what is already published.

    Checks run in order: titles in the index, then per Markdown file the body
    similarity followed by key-phrase overlap. All comparisons are strict
    (``>``). Any error makes the detector fail open.
    """

    def __init__(
        self,
        blog_index: BlogIndex,
        content_dir: str | Path,
        *,
        similarity_threshold: float = 0.7,
        phrase_similarity: float = 0.8,
        phrase_overlap_threshold: float = 0.5,
        min_common_phrases: int = 4,
        hash_store: Optional[ContentHashStore] = None,
        logger=None,
    ) -> None:
        self.blog_index = blog_index
        self.content_dir = Path(content_dir)
        self.similarity_threshold = similarity_threshold
        self.phrase_similarity = phrase_similarity
        self.phrase_overlap_threshold = phrase_overlap_threshold
        self.min_common_phrases = min_common_phrases
        self.hash_store = hash_store
        self.logger = logger or setup_logger(self.__class__.__name__)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        blog_index: Optional[BlogIndex] = None,
        hash_store: Optional[ContentHashStore] = None,
        logger=None,
    ) -> "DuplicateDetector":
        paths_cfg = config.get("paths", {})
        dup_cfg = config.get("duplicates", {})
        return cls(
            blog_index or BlogIndex(paths_cfg.get("blog_index", "app/blog/blog-data.ts")),
            paths_cfg.get("content_dir", "app/blog/content"),
            similarity_threshold=float(dup_cfg.get("similarity_threshold", 0.7)),
            phrase_similarity=float(dup_cfg.get("phrase_similarity", 0.8)),
            phrase_overlap_threshold=float(dup_cfg.get("phrase_overlap_threshold", 0.5)),
            min_common_phrases=int(dup_cfg.get("min_common_phrases", 4)),
            hash_store=hash_store,
            logger=logger,
        )

    def check_for_duplicates(
        self,
        new_title: str,
        new_content: str,
        similarity_threshold: Optional[float] = None,
    ) -> DuplicateCheckResult:
        threshold = self.similarity_threshold if similarity_threshold is None else similarity_threshold
        try:
            return self._check(new_title, new_content, threshold)
        except Exception as exc:
            self.logger.error("Error checking for duplicates: %s", exc, exc_info=True)
            return DuplicateCheckResult(False, REASON_ERROR)

    def check_content_hash(self, title: str, content: str) -> DuplicateCheckResult:
        if not self.hash_store:
            return DuplicateCheckResult(False, REASON_UNIQUE)
        found = self.hash_store.check_content_hash(title, content)
        if found.get("exists"):
            return DuplicateCheckResult(True, REASON_HASH, similar_title=found.get("existingTitle"))
        return DuplicateCheckResult(False, REASON_UNIQUE)

    def _check(self, new_title: str, new_content: str, threshold: float) -> DuplicateCheckResult:
        for existing_title in self.blog_index.titles():
            score = calculate_similarity(new_title, existing_title)
            if score > threshold:
                self.logger.info("Title '%s' matches '%s' (%.2f)", new_title, existing_title, score)
                return DuplicateCheckResult(True, REASON_TITLE, similar_title=existing_title, similarity=score)

        if not self.content_dir.is_dir():
            return DuplicateCheckResult(False, REASON_UNIQUE)

        new_phrases = extract_key_phrases(new_content)
        new_phrase_sets = phrase_token_sets(new_phrases)

        for path in sorted(self.content_dir.glob("*.md")):
            body = strip_frontmatter(path.read_text(encoding="utf-8"))

            score = calculate_similarity(new_content, body)
            if score > threshold:
                self.logger.info("Content matches %s (%.2f)", path.name, score)
                return DuplicateCheckResult(True, REASON_CONTENT, similar_file=path.name, similarity=score)

            common = self._common_phrases(new_phrases, new_phrase_sets, body)
            overlap = len(common) / max(len(new_phrases), 1)
            if overlap > self.phrase_overlap_threshold and len(common) >= self.min_common_phrases:
                self.logger.info("Key phrases overlap %s (%.2f)", path.name, overlap)
                return DuplicateCheckResult(
                    True,
                    REASON_PHRASES,
                    similar_file=path.name,
                    phrase_overlap=overlap,
                    common_phrases=common[:5],
                )

        return DuplicateCheckResult(False, REASON_UNIQUE)

    def _common_phrases(self, phrases: List[str], phrase_sets: List[frozenset], body: str) -> List[str]:
        index = _PhraseIndex(extract_key_phrases(body))
        verdicts: Dict[frozenset, bool] = {}
        common = []
        for phrase, tokens in zip(phrases, phrase_sets):
            if tokens not in verdicts:
                verdicts[tokens] = index.has_match(tokens, self.phrase_similarity)
            if verdicts[tokens]:
                common.append(phrase)
        return common
