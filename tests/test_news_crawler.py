import logging
import unittest
from unittest import mock

import requests

from core.news_crawler import NewsCrawler, mentions_any

LOGGER = logging.getLogger("tests.news_crawler")

LISTING_HTML = """
<html><body>
  <article><h2><a href="/ai/reasoning-model">OpenAI unveils a new AI reasoning model for developers</a></h2></article>
  <article><h2><a href="https://news.example.com/sports">Local team wins the championship after a long season</a></h2></article>
  <article><h2><a href="/short">AI news</a></h2></article>
  <div class="post-title"><a href="/chain/etf">Ethereum ETF inflows hit a record as blockchain adoption grows</a></div>
  <article><h3><a>Machine learning headline without any link target</a></h3></article>
</body></html>
"""

ARTICLE_HTML = """
<html><body>
  <nav>Menu Home About</nav>
  <script>var tracking = true;</script>
  <article>{body}<aside>Related links</aside></article>
  <footer>Copyright</footer>
</body></html>
"""

PARAGRAPH_HTML = """
<html><body>
  <div>
    <p>Short line.</p>
    <p>{first}</p>
    <p>{second}</p>
  </div>
</body></html>
"""

LONG_TEXT = "Machine learning teams are shipping agents into production workflows at record pace. " * 5


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code


class FakeSession:
    def __init__(self, pages=None) -> None:
        self.pages = pages or {}
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            return FakeResponse("", 404)
        if isinstance(page, FakeResponse):
            return page
        return FakeResponse(page)


def crawler_config(**overrides):
    crawler = {
        "user_agent": "TestAgent/1.0",
        "request_timeout": 5,
        "source_delay": 1,
        "article_delay": 2,
        "max_per_source": 5,
        "max_candidates": 10,
        "target_articles": 4,
        "min_content_length": 200,
        "max_content_length": 2000,
        "max_topics": 3,
        "sources": [
            {"name": "AI News", "urls": ["https://news.example.com/ai"]},
            {"name": "Blockchain News", "urls": ["https://chain.example.com/"]},
        ],
    }
    crawler.update(overrides)
    return {"crawler": crawler}


class TestMentionsAny(unittest.TestCase):
    def test_whole_words_only(self) -> None:
        self.assertTrue(mentions_any("New AI chips", ["ai"]))
        self.assertTrue(mentions_any("NFTs are back", ["nft"]))
        self.assertFalse(mentions_any("The minister said aid is coming", ["ai"]))

    def test_crypto_is_a_prefix(self) -> None:
        self.assertTrue(mentions_any("Cryptocurrency markets rally", ["crypto"]))


class TestCrawlWebpage(unittest.TestCase):
    def test_filters_and_resolves_links(self) -> None:
        session = FakeSession({"https://news.example.com/ai": LISTING_HTML})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)

        articles = crawler.crawl_webpage("https://news.example.com/ai")

        self.assertEqual(
            [
                {
                    "title": "OpenAI unveils a new AI reasoning model for developers",
                    "url": "https://news.example.com/ai/reasoning-model",
                    "source": "news.example.com",
                },
                {
                    "title": "Ethereum ETF inflows hit a record as blockchain adoption grows",
                    "url": "https://news.example.com/chain/etf",
                    "source": "news.example.com",
                },
            ],
            articles,
        )
        _, headers, timeout = session.calls[0]
        self.assertEqual("TestAgent/1.0", headers["User-Agent"])
        self.assertEqual(5, timeout)

    def test_caps_results_per_source(self) -> None:
        session = FakeSession({"https://news.example.com/ai": LISTING_HTML})
        crawler = NewsCrawler(crawler_config(max_per_source=1), session=session, logger=LOGGER)
        self.assertEqual(1, len(crawler.crawl_webpage("https://news.example.com/ai")))

    def test_http_error_returns_none(self) -> None:
        session = FakeSession({"https://news.example.com/ai": FakeResponse("blocked", 403)})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)
        self.assertIsNone(crawler.crawl_webpage("https://news.example.com/ai"))

    def test_network_error_returns_none(self) -> None:
        session = FakeSession({"https://news.example.com/ai": requests.ConnectionError("down")})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)
        self.assertIsNone(crawler.crawl_webpage("https://news.example.com/ai"))


class TestArticleContent(unittest.TestCase):
    def test_content_selector_without_noise(self) -> None:
        url = "https://news.example.com/story"
        session = FakeSession({url: ARTICLE_HTML.format(body="<p>Body text about AI agents.</p>")})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)

        content = crawler.get_article_content(url)
        self.assertEqual("Body text about AI agents.", content)

    def test_paragraph_fallback(self) -> None:
        url = "https://news.example.com/story"
        first = "A" * 60
        second = "B" * 70
        session = FakeSession({url: PARAGRAPH_HTML.format(first=first, second=second)})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)

        self.assertEqual(f"{first}\n\n{second}", crawler.get_article_content(url))

    def test_content_is_truncated(self) -> None:
        url = "https://news.example.com/story"
        session = FakeSession({url: ARTICLE_HTML.format(body=f"<p>{'x' * 5000}</p>")})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)
        self.assertEqual(2000, len(crawler.get_article_content(url)))


class TestCrawlLatestNews(unittest.TestCase):
    def listing(self, *links):
        items = "".join(f'<article><h2><a href="{href}">{title}</a></h2></article>' for title, href in links)
        return f"<html><body>{items}</body></html>"

    @mock.patch("core.news_crawler.time.sleep")
    def test_dedupes_and_stops_at_target(self, mock_sleep) -> None:
        links = [
            ("AI startups raise record funding in the latest quarter", "https://news.example.com/a"),
            ("Bitcoin miners pivot toward AI data centers this year", "https://news.example.com/b"),
            ("Blockchain payments reach mainstream retail checkout", "https://news.example.com/c"),
        ]
        story = ARTICLE_HTML.format(body=f"<p>{LONG_TEXT}</p>")
        session = FakeSession(
            {
                "https://news.example.com/ai": self.listing(*links),
                "https://chain.example.com/": self.listing(links[1], links[2]),
                "https://news.example.com/a": story,
                "https://news.example.com/b": story,
                "https://news.example.com/c": story,
            }
        )
        crawler = NewsCrawler(crawler_config(target_articles=2), session=session, logger=LOGGER)

        articles = crawler.crawl_latest_news()

        self.assertEqual([link[0] for link in links[:2]], [article["title"] for article in articles])
        self.assertTrue(all(len(article["content"]) > 200 for article in articles))
        self.assertIn("timestamp", articles[0])
        fetched = [call[0] for call in session.calls]
        self.assertNotIn("https://news.example.com/c", fetched)
        # one pause per listing page, one per article fetched
        self.assertEqual([1, 1, 2, 2], [call.args[0] for call in mock_sleep.call_args_list])

    @mock.patch("core.news_crawler.time.sleep")
    def test_failed_sources_are_skipped(self, _mock_sleep) -> None:
        session = FakeSession({"https://chain.example.com/": requests.Timeout("slow")})
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)
        self.assertEqual([], crawler.crawl_latest_news())

    @mock.patch("core.news_crawler.time.sleep")
    def test_short_articles_are_dropped(self, _mock_sleep) -> None:
        session = FakeSession(
            {
                "https://news.example.com/ai": self.listing(
                    ("AI startups raise record funding in the latest quarter", "https://news.example.com/a")
                ),
                "https://news.example.com/a": ARTICLE_HTML.format(body="<p>Too short.</p>"),
            }
        )
        crawler = NewsCrawler(crawler_config(), session=session, logger=LOGGER)
        self.assertEqual([], crawler.crawl_latest_news())


class TestTopicGeneration(unittest.TestCase):
    def setUp(self) -> None:
        self.crawler = NewsCrawler(crawler_config(), session=FakeSession(), logger=LOGGER)

    def test_ai_article(self) -> None:
        topics = self.crawler.generate_article_topics_from_news(
            [{"title": "AI labs race ahead: new model benchmarks", "content": "Models and benchmarks."}]
        )
        self.assertEqual(1, len(topics))
        self.assertEqual("Latest AI Advancements: AI labs race ahead", topics[0]["topic"])
        self.assertEqual("ai", topics[0]["category"])
        self.assertIn("machine learning", topics[0]["keywords"])

    def test_convergence_article(self) -> None:
        article = {"title": "AI agents trade on blockchain rails", "content": "Crypto wallets for bots."}
        topics = self.crawler.generate_article_topics_from_news([article])
        self.assertEqual(
            ["ai", "blockchain", "technology"],
            [topic["category"] for topic in topics],
        )
        self.assertEqual("AI and Blockchain Convergence: AI agents trade on blockchain rails", topics[2]["topic"])
        self.assertIs(article, topics[2]["source_article"])

    def test_capped_at_max_topics(self) -> None:
        articles = [
            {"title": f"AI agents trade on blockchain rails {i}", "content": "crypto"} for i in range(3)
        ]
        self.assertEqual(3, len(self.crawler.generate_article_topics_from_news(articles)))

    def test_irrelevant_article_has_no_topics(self) -> None:
        topics = self.crawler.generate_article_topics_from_news(
            [{"title": "Weather turns cold", "content": "Snow is expected."}]
        )
        self.assertEqual([], topics)


if __name__ == "__main__":
    unittest.main()
