"""Client for the internal article generation endpoint."""

from __future__ import annotations

import hashlib
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

import requests

from core.blog_post import GenerationResult
from core.blog_store import BlogStore
from core.default_config import default_config_copy
from utils.logger import setup_logger

PERSIST_SAVED = "saved"
PERSIST_DUPLICATE = "duplicate"
PERSIST_FAILED = "failed"
PERSIST_NOT_REQUESTED = "not_requested"


class ArticleGenerationError(RuntimeError):
    """The generation endpoint answered with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"API responded with status {status}: {body}")
        self.status = status
        self.body = body


@dataclass
class PersistResult:
    status: str
    error: Optional[BaseException] = field(default=None, repr=False)

    @property
    def saved(self) -> bool:
        return self.status == PERSIST_SAVED


@dataclass
class ArticleOutcome:
    """A generation result and what happened when it was persisted."""

    article: GenerationResult
    persist: PersistResult

    @property
    def slug(self) -> str:
        return self.article.slug


def resolve_api_base_url(
    environ: Optional[Mapping[str, str]] = None,
    config: Optional[Mapping[str, Any]] = None,
) -> str:
    """Explicit override, then the production host, then localhost."""
    env = os.environ if environ is None else environ
    gen_cfg = (config or {}).get("generation", {})
    override = (env.get("INTERNAL_API_BASE_URL") or "").strip()
    if override:
        return override.rstrip("/")
    if "production" in (env.get("NODE_ENV"), env.get("VERCEL_ENV")):
        return str(gen_cfg.get("production_base_url", "https://fais.world")).rstrip("/")
    return str(gen_cfg.get("local_base_url", "http://localhost:3000")).rstrip("/")


def generate_unique_id(topic: str, timestamp_ms: Optional[int] = None) -> str:
    stamp = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
    return hashlib.md5(f"{topic}-{stamp}".encode("utf-8")).hexdigest()[:8]


class ArticleGenerator:
    """Request an article from the generation endpoint and hand final drafts to the blog store."""

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        blog_store: Optional[BlogStore] = None,
        session: Optional[requests.Session] = None,
        environ: Optional[Mapping[str, str]] = None,
        logger=None,
    ) -> None:
        self.config = dict(config) if config else default_config_copy()
        gen_cfg = self.config.get("generation", {})
        paths_cfg = self.config.get("paths", {})

        self.environ = os.environ if environ is None else environ
        self.endpoint = str(gen_cfg.get("endpoint", "/api/admin/ai-tools/generate-article"))
        self.timeout = gen_cfg.get("request_timeout")
        self.default_tone = str(gen_cfg.get("tone", "informative"))
        self.default_word_count = int(gen_cfg.get("word_count", 800))

        log_dir = Path(paths_cfg.get("log_dir", "data/logs"))
        self.logger = logger or setup_logger(self.__class__.__name__, log_dir=log_dir)
        self.session = session or requests.Session()
        self.blog_store = blog_store or BlogStore.from_config(self.config, logger=self.logger)

    @property
    def api_url(self) -> str:
        return resolve_api_base_url(self.environ, self.config) + self.endpoint

    def build_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        api_key = (self.environ.get("INTERNAL_API_KEY") or "").strip()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def generate_article(
        self,
        topic: str,
        keywords: Sequence[str] = (),
        tone: Optional[str] = None,
        word_count: Optional[int] = None,
        include_image: bool = True,
    ) -> ArticleOutcome:
        """
        Generate an article for ``topic``.

        ``include_image=False`` is a preview: nothing is written. Final drafts
        are saved through the blog store; a skipped or failed save is reported on
        the returned outcome rather than raised.
        """
        if not topic or not str(topic).strip():
            raise ValueError("Topic is required for article generation")

        keywords = [str(keyword) for keyword in keywords]
        unique_id = generate_unique_id(topic)
        payload = {
            "topic": topic,
            "keywords": keywords,
            "tone": tone or self.default_tone,
            "wordCount": int(word_count or self.default_word_count),
            "includeImage": bool(include_image),
            "id": unique_id,
        }

        url = self.api_url
        self.logger.info("Generating article on '%s' via %s (keywords: %s)", topic, url, ", ".join(keywords))
        response = self.session.post(url, json=payload, headers=self.build_headers(), timeout=self.timeout)
        if not 200 <= response.status_code < 300:
            raise ArticleGenerationError(response.status_code, response.text)

        data = response.json()
        article = GenerationResult(
            title=str(data.get("title") or topic),
            content=str(data.get("content") or ""),
            slug=str(data.get("slug") or ""),
            id=unique_id,
            image_url=data.get("imageUrl"),
            keywords=keywords,
        )
        self.logger.info("Article generated successfully. Title: '%s'", article.title)

        if not include_image:
            return ArticleOutcome(article, PersistResult(PERSIST_NOT_REQUESTED))
        return ArticleOutcome(article, self._persist(article, keywords))

    def _persist(self, article: GenerationResult, keywords: Iterable[str]) -> PersistResult:
        try:
            saved = self.blog_store.save_article(article.to_dict(), article.id, keywords)
        except Exception as exc:
            self.logger.error("Error saving article '%s': %s", article.title, exc, exc_info=True)
            return PersistResult(PERSIST_FAILED, exc)
        if not saved:
            self.logger.warning("Article '%s' was not saved: duplicate of an existing post.", article.title)
            return PersistResult(PERSIST_DUPLICATE)
        return PersistResult(PERSIST_SAVED)
