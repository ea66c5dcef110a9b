"""
Flat-file blog persistence.

The blog index is the TypeScript module that exports ``blogPosts`` (newest
first); every post also has a ``<slug>.md`` companion holding the full text.
Unlike duplicate detection, every failure here propagates to the caller.
"""

from __future__ import annotations

import json
import math
import random
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional

from core.blog_post import BlogPost, ts_string
from core.similarity import normalize_words
from storage.file_storage import FileStorage
from utils.logger import setup_logger

WORDS_PER_MINUTE = 200

ARRAY_MARKER = re.compile(r"export\s+const\s+blogPosts\s*:\s*BlogPost\[\]\s*=\s*\[")
INTERFACE_MARKER = re.compile(r"export\s+interface\s+BlogPost\s*\{(?P<body>[^}]*)\}")
TITLE_FIELD = re.compile(r'^\s*title:\s*"((?:[^"\\]|\\.)*)"', re.MULTILINE)

AI_PATTERNS = [
    r"\bai\b",
    r"\bartificial intelligence\b",
    r"\bmachine learning\b",
    r"\bneural\b",
    r"\bgpt\b",
    r"\bllms?\b",
]
BLOCKCHAIN_PATTERNS = [
    r"\bblockchains?\b",
    r"\bcrypto",
    r"\bethereum\b",
    r"\bbitcoin\b",
    r"\bdefi\b",
    r"\btokens?\b",
    r"\bnfts?\b",
]

_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_HEADER = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_LIST_MARKER = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+", re.MULTILINE)
_BLOCKQUOTE = re.compile(r"^\s*>\s?", re.MULTILINE)
_EMPHASIS = re.compile(r"(\*{1,3}|_{2,3}|`+|~~)")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


class BlogIndexFormatError(RuntimeError):
    """The index file no longer contains the ``blogPosts`` array declaration."""


def calculate_read_time(content: str) -> str:
    words = len((content or "").split())
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return f"{minutes} min read"


def _count(patterns: Iterable[str], text: str) -> int:
    return sum(len(re.findall(pattern, text)) for pattern in patterns)


def classify_category(title: str, content: str) -> str:
    """Keyword-frequency vote between AI and blockchain; ties go to AI, silence to technology."""
    text = f"{title}\n{content}".lower()
    ai_hits = _count(AI_PATTERNS, text)
    chain_hits = _count(BLOCKCHAIN_PATTERNS, text)
    if not ai_hits and not chain_hits:
        return "technology"
    return "blockchain" if chain_hits > ai_hits else "ai"


def strip_markdown(text: str) -> str:
    text = _IMAGE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _HEADER.sub("", text)
    text = _BLOCKQUOTE.sub("", text)
    text = _LIST_MARKER.sub("", text)
    text = _EMPHASIS.sub("", text)
    return " ".join(text.split())


def generate_excerpt(content: str, max_length: int = 150) -> str:
    paragraphs = [strip_markdown(block) for block in _PARAGRAPH_BREAK.split(content or "")]
    paragraphs = [paragraph for paragraph in paragraphs if paragraph]
    chosen = next((p for p in paragraphs if len(p) > 50), paragraphs[0] if paragraphs else "")
    if len(chosen) <= max_length:
        return chosen

    # a space at max_length - 3 still leaves room for the ellipsis
    boundary = chosen.rfind(" ", 0, max_length - 2)
    cut = chosen[:boundary] if boundary > 0 else chosen[: max_length - 3]
    return cut.rstrip(" ,;:") + "..."


def format_display_date(moment: datetime) -> str:
    """``June 8, 2025`` style, without platform-specific strftime flags."""
    return f"{moment:%B} {moment.day}, {moment.year}"


def _title_words(title: str) -> set:
    return {word for word in normalize_words(title) if len(word) > 3}


class BlogIndex:
    """Text-level access to the generated ``blog-data.ts`` module."""

    def __init__(self, path: str | Path, *, storage: Optional[FileStorage] = None) -> None:
        self.path = Path(path)
        self.storage = storage

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def titles(self, text: Optional[str] = None) -> List[str]:
        source = self.read_text() if text is None else text
        titles = []
        for raw in TITLE_FIELD.findall(source):
            try:
                titles.append(json.loads(f'"{raw}"'))
            except json.JSONDecodeError:
                titles.append(raw)
        return titles

    def exists_by_slug(self, slug: str, text: Optional[str] = None) -> bool:
        source = self.read_text() if text is None else text
        pattern = r"\bslug:\s*" + re.escape(ts_string(slug))
        return re.search(pattern, source) is not None

    def with_post(self, post: BlogPost, text: Optional[str] = None) -> str:
        """Index text with ``post`` prepended to the ``blogPosts`` array; nothing is written."""
        source = self.read_text() if text is None else text
        match = ARRAY_MARKER.search(source)
        if not match:
            raise BlogIndexFormatError(f"Could not find blogPosts array in {self.path}")

        updated = source[: match.end()] + "\n" + post.to_ts_literal() + "," + source[match.end():]
        return self._ensure_published_at_field(updated)

    @staticmethod
    def _ensure_published_at_field(source: str) -> str:
        match = INTERFACE_MARKER.search(source)
        if not match or "publishedAt" in match.group("body"):
            return source
        body = match.group("body")
        date_line = re.search(r"^([ \t]*)date\??:[ \t]*string[ \t]*;?[ \t]*$", body, re.MULTILINE)
        if date_line:
            insertion = f"\n{date_line.group(1)}publishedAt?: string"
            new_body = body[: date_line.end()] + insertion + body[date_line.end():]
        else:
            new_body = body.rstrip() + "\n  publishedAt?: string\n"
        return source[: match.start("body")] + new_body + source[match.end("body"):]

    def write(self, text: str) -> None:
        if self.storage:
            self.storage.write_text(self.path, text)
        else:
            self.path.write_text(text, encoding="utf-8")


class BlogStore:
    """Writes generated articles into the blog index and the Markdown corpus."""

    def __init__(
        self,
        index: BlogIndex,
        content_dir: str | Path,
        *,
        author: str = "Fantastic AI",
        author_image: str = "author-fantastic",
        placeholder_images: Optional[Mapping[str, str]] = None,
        featured_probability: float = 0.15,
        storage: Optional[FileStorage] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger=None,
    ) -> None:
        self.index = index
        self.content_dir = Path(content_dir)
        self.author = author
        self.author_image = author_image
        self.placeholder_images = dict(placeholder_images or {})
        self.featured_probability = featured_probability
        self.logger = logger or setup_logger(self.__class__.__name__)
        self.storage = storage or FileStorage(logger=self.logger)
        if self.index.storage is None:
            self.index.storage = self.storage
        self.rng = rng or random.Random()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs) -> "BlogStore":
        paths_cfg = config.get("paths", {})
        blog_cfg = config.get("blog", {})
        return cls(
            BlogIndex(paths_cfg.get("blog_index", "app/blog/blog-data.ts")),
            paths_cfg.get("content_dir", "app/blog/content"),
            author=blog_cfg.get("author", "Fantastic AI"),
            author_image=blog_cfg.get("author_image", "author-fantastic"),
            placeholder_images=blog_cfg.get("placeholder_images"),
            featured_probability=float(blog_cfg.get("featured_probability", 0.15)),
            **kwargs,
        )

    def find_similar_title(self, title: str, existing_titles: Iterable[str]) -> Optional[str]:
        """Cheap word-overlap guard in front of the full duplicate detector."""
        new_words = _title_words(title)
        if not new_words:
            return None
        for existing in existing_titles:
            common = new_words & _title_words(existing)
            if len(common) > len(new_words) * 0.5 and len(common) > 2:
                return existing
        return None

    def build_post(self, article: Mapping[str, Any], unique_id: str) -> BlogPost:
        title = str(article.get("title") or "")
        content = str(article.get("content") or "")
        category = classify_category(title, content)
        moment = self.clock()
        return BlogPost(
            id=unique_id,
            slug=str(article.get("slug") or ""),
            title=title,
            excerpt=generate_excerpt(content),
            date=format_display_date(moment),
            publishedAt=moment.isoformat(),
            readTime=calculate_read_time(content),
            category=category,
            coverImage=article.get("imageUrl") or self.placeholder_images.get(category, ""),
            featured=self.rng.random() < self.featured_probability,
            author=self.author,
            authorImage=self.author_image,
        )

    def save_article(
        self,
        article: Mapping[str, Any],
        unique_id: str,
        keywords: Iterable[str] = (),
    ) -> bool:
        """
        Persist a generated article.

        Returns False when the slug already exists or the title overlaps an
        existing one; raises on any read/format/write problem.
        """
        slug = str(article.get("slug") or "").strip()
        if not slug:
            raise ValueError("Generated article has no slug")

        source = self.index.read_text()
        if self.index.exists_by_slug(slug, source):
            self.logger.warning("Slug '%s' already exists in %s; skipping save.", slug, self.index.path)
            return False

        similar = self.find_similar_title(str(article.get("title") or ""), self.index.titles(source))
        if similar:
            self.logger.warning("Title '%s' overlaps existing '%s'; skipping save.", article.get("title"), similar)
            return False

        post = self.build_post(article, unique_id)
        updated = self.index.with_post(post, source)

        # the index must never list a slug whose Markdown file is missing
        markdown_path = self.write_markdown(post, str(article.get("content") or ""), keywords)
        try:
            self.index.write(updated)
        except OSError:
            markdown_path.unlink(missing_ok=True)
            raise
        self.logger.info("Article '%s' saved to %s with content in %s", post.title, self.index.path, markdown_path)
        return True

    def write_markdown(self, post: BlogPost, content: str, keywords: Iterable[str] = ()) -> Path:
        frontmatter = [
            "---",
            f"title: {ts_string(post.title)}",
            f"excerpt: {ts_string(post.excerpt)}",
            f"date: {ts_string(post.date)}",
            f"publishedAt: {ts_string(post.publishedAt)}",
            f"category: {ts_string(post.category)}",
            f"author: {ts_string(post.author)}",
            f"image: {ts_string(post.coverImage)}",
            f"keywords: {json.dumps([str(k) for k in keywords], ensure_ascii=False)}",
            "---",
            "",
        ]
        path = self.content_dir / f"{post.slug}.md"
        self.storage.write_text(path, "\n".join(frontmatter) + content)
        return path
