"""News crawler that turns AI/blockchain headlines into article topics."""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from core.default_config import BROWSER_USER_AGENT, default_config_copy
from utils.logger import setup_logger

HEADLINE_SELECTORS: Sequence[str] = (
    "article h2 a",
    "article h3 a",
    ".post-title a",
    ".entry-title a",
    "h2.title a",
    "h3.title a",
    ".headline a",
    ".story-headline a",
    ".article-title a",
)
NOISE_SELECTORS: Sequence[str] = ("script", "style", "nav", "footer", "aside", "form", ".ad", ".advertisement")
CONTENT_SELECTORS: Sequence[str] = (
    "article",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".story-body",
    ".content",
    "main",
)

RELEVANCE_KEYWORDS: Sequence[str] = (
    "ai",
    "artificial intelligence",
    "machine learning",
    "blockchain",
    "crypto",
    "bitcoin",
    "ethereum",
    "defi",
    "smart contract",
    "nft",
    "web3",
)
AI_KEYWORDS: Sequence[str] = ("ai", "artificial intelligence", "machine learning")
BLOCKCHAIN_KEYWORDS: Sequence[str] = ("blockchain", "crypto", "bitcoin", "ethereum", "defi", "web3")

AI_TOPIC_KEYWORDS = ["AI", "artificial intelligence", "machine learning", "technology", "innovation"]
BLOCKCHAIN_TOPIC_KEYWORDS = ["blockchain", "cryptocurrency", "DeFi", "Web3", "smart contracts"]
CONVERGENCE_TOPIC_KEYWORDS = ["AI", "blockchain", "technology convergence", "innovation", "future tech"]

NewsArticle = Dict[str, Any]


# Matched as word prefixes ("crypto" covers "cryptocurrency"); everything else
# must be a whole word, optionally plural, so "ai" never fires inside "said".
PREFIX_KEYWORDS = frozenset({"crypto"})


def mentions_any(text: str, keywords: Sequence[str]) -> bool:
    lowered = (text or "").lower()
    for keyword in keywords:
        pattern = r"\b" + re.escape(keyword)
        if keyword not in PREFIX_KEYWORDS:
            pattern += r"s?\b"
        if re.search(pattern, lowered):
            return True
    return False


class NewsCrawler:
    """Fetch listing pages, pick relevant headlines and pull their article text."""

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        session: Optional[requests.Session] = None,
        logger=None,
    ) -> None:
        self.config = dict(config) if config else default_config_copy()
        crawler_cfg = self.config.get("crawler", {})
        paths_cfg = self.config.get("paths", {})

        self.sources: List[Mapping[str, Any]] = list(crawler_cfg.get("sources", []))
        self.user_agent = str(crawler_cfg.get("user_agent") or BROWSER_USER_AGENT)
        self.timeout = float(crawler_cfg.get("request_timeout", 10) or 10)
        self.source_delay = float(crawler_cfg.get("source_delay", 1))
        self.article_delay = float(crawler_cfg.get("article_delay", 2))
        self.max_per_source = int(crawler_cfg.get("max_per_source", 5))
        self.max_candidates = int(crawler_cfg.get("max_candidates", 10))
        self.target_articles = int(crawler_cfg.get("target_articles", 4))
        self.min_content_length = int(crawler_cfg.get("min_content_length", 200))
        self.max_content_length = int(crawler_cfg.get("max_content_length", 2000))
        self.max_topics = int(crawler_cfg.get("max_topics", 3))

        log_dir = Path(paths_cfg.get("log_dir", "data/logs"))
        self.logger = logger or setup_logger(self.__class__.__name__, log_dir=log_dir)
        self.session = session or requests.Session()

    def _fetch_html(self, url: str) -> Optional[str]:
        try:
            response = self.session.get(url, headers={"User-Agent": self.user_agent}, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.warning("Error fetching %s: %s", url, exc)
            return None
        if not 200 <= response.status_code < 300:
            self.logger.warning("Failed to fetch %s: HTTP %s", url, response.status_code)
            return None
        return response.text

    def crawl_webpage(self, url: str) -> Optional[List[NewsArticle]]:
        """Relevant headline links from one listing page, or None when the page is unavailable."""
        self.logger.info("Crawling: %s", url)
        html = self._fetch_html(url)
        if html is None:
            return None

        soup = BeautifulSoup(html, "html.parser")
        source = urlparse(url).hostname or ""
        articles: List[NewsArticle] = []
        for selector in HEADLINE_SELECTORS:
            for anchor in soup.select(selector):
                title = anchor.get_text(" ", strip=True)
                href = (anchor.get("href") or "").strip()
                if not href or len(title) <= 20 or not mentions_any(title, RELEVANCE_KEYWORDS):
                    continue
                articles.append({"title": title, "url": urljoin(url, href), "source": source})
        return articles[: self.max_per_source]

    def get_article_content(self, url: str) -> Optional[str]:
        html = self._fetch_html(url)
        if html is None:
            return None

        soup = BeautifulSoup(html, "html.parser")
        for selector in NOISE_SELECTORS:
            for element in soup.select(selector):
                element.decompose()

        content = ""
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                content = element.get_text(" ", strip=True)
                break

        if not content:
            paragraphs = (p.get_text(" ", strip=True) for p in soup.find_all("p"))
            content = "\n\n".join(text for text in paragraphs if len(text) > 50)

        return content[: self.max_content_length]

    def crawl_latest_news(self) -> List[NewsArticle]:
        self.logger.info("Starting news crawl for latest AI and blockchain articles.")
        candidates: List[NewsArticle] = []
        for source in self.sources:
            self.logger.info("Crawling %s sources.", source.get("name", "news"))
            for url in source.get("urls", []):
                found = self.crawl_webpage(url)
                if found:
                    candidates.extend(found)
                    self.logger.info("Found %d relevant articles from %s", len(found), urlparse(url).hostname)
                time.sleep(self.source_delay)

        seen_titles = set()
        unique: List[NewsArticle] = []
        for article in candidates:
            if article["title"] in seen_titles:
                continue
            seen_titles.add(article["title"])
            unique.append(article)
        self.logger.info("Total unique articles found: %d", len(unique))

        collected: List[NewsArticle] = []
        for article in unique[: self.max_candidates]:
            self.logger.info("Getting content for: %s", article["title"][:60])
            content = self.get_article_content(article["url"])
            if content and len(content) > self.min_content_length:
                collected.append(
                    {
                        **article,
                        "content": content,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    }
                )
            time.sleep(self.article_delay)
            if len(collected) >= self.target_articles:
                break

        self.logger.info("Processed %d articles with content.", len(collected))
        return collected

    def generate_article_topics_from_news(self, articles: Sequence[NewsArticle]) -> List[Dict[str, Any]]:
        """Templated topic proposals derived from crawled articles (at most ``max_topics``)."""
        topics: List[Dict[str, Any]] = []
        for article in articles:
            title = article.get("title", "")
            content = article.get("content", "")
            headline = title.split(":")[0].strip()

            if mentions_any(title, AI_KEYWORDS) or mentions_any(content, ("ai",)):
                topics.append(
                    {
                        "topic": f"Latest AI Advancements: {headline}",
                        "keywords": list(AI_TOPIC_KEYWORDS),
                        "category": "ai",
                        "source_article": article,
                    }
                )
            if mentions_any(title, BLOCKCHAIN_KEYWORDS):
                topics.append(
                    {
                        "topic": f"Blockchain Innovation: {headline}",
                        "keywords": list(BLOCKCHAIN_TOPIC_KEYWORDS),
                        "category": "blockchain",
                        "source_article": article,
                    }
                )
            ai_side = mentions_any(title, ("ai",)) or mentions_any(content, ("artificial intelligence",))
            chain_side = mentions_any(title, ("blockchain",)) or mentions_any(content, ("crypto",))
            if ai_side and chain_side:
                topics.append(
                    {
                        "topic": f"AI and Blockchain Convergence: {title}",
                        "keywords": list(CONVERGENCE_TOPIC_KEYWORDS),
                        "category": "technology",
                        "source_article": article,
                    }
                )
        return topics[: self.max_topics]
