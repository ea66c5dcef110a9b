"""Scheduled article generation: pick topics, generate, persist, refresh the knowledge base."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from core.article_generator import ArticleGenerator, PERSIST_DUPLICATE
from core.content_hash import ContentHashStore
from core.duplicate_detector import DuplicateDetector
from core.knowledge_base import KnowledgeBaseRefresher
from core.news_crawler import NewsCrawler
from utils.logger import setup_logger

TOPIC_CATALOG: Sequence[tuple] = (
    (
        "Latest advancements in large language models and AI reasoning",
        ["AI", "LLM", "machine learning", "artificial intelligence", "reasoning"],
    ),
    (
        "Blockchain innovations transforming supply chain transparency",
        ["blockchain", "supply chain", "transparency", "traceability", "logistics"],
    ),
    (
        "AI-powered healthcare diagnostics and patient care revolution",
        ["healthcare AI", "medical diagnostics", "patient care", "healthcare innovation"],
    ),
    (
        "Ethereum Layer 2 solutions scaling decentralized applications",
        ["Ethereum", "Layer 2", "scaling", "DeFi", "dApps"],
    ),
    (
        "DeFi protocol innovations and yield optimization strategies",
        ["DeFi", "decentralized finance", "yield farming", "liquidity", "protocols"],
    ),
    (
        "AI image generation breakthroughs and creative applications",
        ["AI art", "image generation", "creative AI", "generative models"],
    ),
    (
        "Smart contract automation in real estate and property management",
        ["smart contracts", "real estate", "property", "automation", "blockchain"],
    ),
    (
        "Machine learning optimization for enterprise business processes",
        ["automation", "business processes", "ML optimization", "enterprise AI"],
    ),
    (
        "NFT utility expansion beyond digital art and collectibles",
        ["NFT", "digital ownership", "utility tokens", "blockchain applications"],
    ),
    (
        "Quantum computing impact on blockchain cryptography and security",
        ["quantum computing", "cryptography", "blockchain security", "post-quantum"],
    ),
)

StatusUpdater = Callable[..., None]


@dataclass
class RunSummary:
    attempted: List[str] = field(default_factory=list)
    generated_slugs: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempted": list(self.attempted),
            "generatedSlugs": list(self.generated_slugs),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


class AutomatedRunDriver:
    def __init__(
        self,
        generator: ArticleGenerator,
        *,
        detector: Optional[DuplicateDetector] = None,
        hash_store: Optional[ContentHashStore] = None,
        news_crawler: Optional[NewsCrawler] = None,
        refresher: Optional[KnowledgeBaseRefresher] = None,
        rng: Optional[random.Random] = None,
        min_articles: int = 1,
        max_articles: int = 2,
        inter_article_delay: float = 10,
        use_news_crawler: bool = False,
        preliminary_check: bool = True,
        preliminary_threshold: float = 0.65,
        preliminary_word_count: int = 600,
        logger=None,
    ) -> None:
        self.generator = generator
        self.detector = detector
        self.hash_store = hash_store
        self.news_crawler = news_crawler
        self.refresher = refresher
        self.rng = rng or random.Random()
        self.min_articles = min_articles
        self.max_articles = max_articles
        self.inter_article_delay = inter_article_delay
        self.use_news_crawler = use_news_crawler
        self.preliminary_check = preliminary_check
        self.preliminary_threshold = preliminary_threshold
        self.preliminary_word_count = preliminary_word_count
        self.logger = logger or setup_logger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: Mapping[str, Any], *, logger=None, **overrides) -> "AutomatedRunDriver":
        run_cfg = config.get("run", {})
        hash_store = overrides.pop("hash_store", None) or ContentHashStore(
            config.get("paths", {}).get("content_hashes", "scripts/content-hashes.json"),
            max_entries=int(config.get("content_hash", {}).get("max_entries", 100)),
            logger=logger,
        )
        generator = overrides.pop("generator", None) or ArticleGenerator(config, logger=logger)
        detector = overrides.pop("detector", None) or DuplicateDetector.from_config(
            config,
            blog_index=generator.blog_store.index,
            hash_store=hash_store,
            logger=logger,
        )
        use_news = bool(run_cfg.get("use_news_crawler", False))
        kwargs = dict(
            detector=detector,
            hash_store=hash_store,
            news_crawler=NewsCrawler(config, logger=logger) if use_news else None,
            refresher=KnowledgeBaseRefresher(config, logger=logger),
            min_articles=int(run_cfg.get("min_articles", 1)),
            max_articles=int(run_cfg.get("max_articles", 2)),
            inter_article_delay=float(run_cfg.get("inter_article_delay", 10)),
            use_news_crawler=use_news,
            preliminary_check=bool(run_cfg.get("preliminary_check", True)),
            preliminary_threshold=float(run_cfg.get("preliminary_threshold", 0.65)),
            preliminary_word_count=int(run_cfg.get("preliminary_word_count", 600)),
            logger=logger,
        )
        kwargs.update(overrides)
        return cls(generator, **kwargs)

    def select_topics(self) -> List[Dict[str, Any]]:
        if self.use_news_crawler and self.news_crawler:
            topics = self._news_topics()
            if topics:
                return topics
            self.logger.warning("No usable news topics; falling back to the topic catalog.")

        count = self.rng.randint(self.min_articles, self.max_articles)
        count = max(0, min(count, len(TOPIC_CATALOG)))
        indices = self.rng.sample(range(len(TOPIC_CATALOG)), count)
        return [{"topic": TOPIC_CATALOG[i][0], "keywords": list(TOPIC_CATALOG[i][1])} for i in indices]

    def _news_topics(self) -> List[Dict[str, Any]]:
        try:
            articles = self.news_crawler.crawl_latest_news()
            topics = self.news_crawler.generate_article_topics_from_news(articles)
        except Exception as exc:
            self.logger.error("Error crawling news: %s", exc, exc_info=True)
            return []
        return topics[: self.max_articles]

    def run(self, status: Optional[dict] = None, update_status: Optional[StatusUpdater] = None) -> RunSummary:
        """Process the selected topics in order, then refresh the knowledge base."""
        notify = update_status or (lambda **_: None)
        summary = RunSummary()
        topics = self.select_topics()
        notify(total=len(topics), progress=0, message=f"Selected {len(topics)} topic(s).")

        for index, entry in enumerate(topics):
            topic = entry["topic"]
            summary.attempted.append(topic)
            notify(progress=index, message=f"Generating: {topic[:60]}")
            self._process_topic(topic, entry.get("keywords", []), summary)
            if index < len(topics) - 1:
                self.logger.info("Waiting %ss before the next article.", self.inter_article_delay)
                time.sleep(self.inter_article_delay)

        self.logger.info(
            "Generation summary: attempted=%d generated=%d skipped=%d failed=%d slugs=%s",
            len(summary.attempted),
            len(summary.generated_slugs),
            len(summary.skipped),
            len(summary.failed),
            ", ".join(summary.generated_slugs),
        )
        notify(progress=len(topics), message=f"Generated {len(summary.generated_slugs)} article(s); refreshing knowledge base.")
        self._refresh(summary.generated_slugs)
        notify(message=f"Run finished: {len(summary.generated_slugs)} new article(s).")
        return summary

    def _process_topic(self, topic: str, keywords: Sequence[str], summary: RunSummary) -> None:
        try:
            if self.preliminary_check and self.detector and self._looks_duplicate(topic, keywords):
                summary.skipped.append(topic)
                return

            outcome = self.generator.generate_article(topic, keywords)
            if outcome.persist.saved:
                if self.hash_store:
                    self.hash_store.store_content_hash(outcome.article.title, outcome.article.content)
                summary.generated_slugs.append(outcome.slug)
                self.logger.info("Generated article '%s' (%s)", outcome.article.title, outcome.slug)
            elif outcome.persist.status == PERSIST_DUPLICATE:
                summary.skipped.append(topic)
            else:
                summary.failed.append(topic)
        except Exception as exc:
            self.logger.error("Error generating article for '%s': %s", topic, exc, exc_info=True)
            summary.failed.append(topic)

    def _looks_duplicate(self, topic: str, keywords: Sequence[str]) -> bool:
        preview = self.generator.generate_article(
            topic,
            keywords,
            word_count=self.preliminary_word_count,
            include_image=False,
        ).article
        verdict = self.detector.check_for_duplicates(preview.title, preview.content, self.preliminary_threshold)
        if not verdict.is_duplicate:
            verdict = self.detector.check_content_hash(preview.title, preview.content)
        if verdict.is_duplicate:
            self.logger.warning("Skipping duplicate article for '%s': %s %s", topic, verdict.reason, verdict.to_dict())
            return True
        return False

    def _refresh(self, slugs: Sequence[str]) -> None:
        if not self.refresher:
            return
        if slugs:
            self.refresher.refresh(list(slugs))
        else:
            self.logger.info("No new articles; skipping scoped knowledge base refresh.")
        self.refresher.refresh()
