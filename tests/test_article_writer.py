import logging
import unittest
from types import SimpleNamespace

from core.article_writer import ArticleWriter

LOGGER = logging.getLogger("tests.article_writer")


class FakeCompletions:
    def __init__(self, content: str) -> None:
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content: str):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class FakeMediaService:
    def __init__(self, error=None) -> None:
        self.error = error
        self.payloads = []

    def generate(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error
        return {"success": True, "imageUrl": "https://blob.example.com/cover.png"}


class TestArticleWriter(unittest.TestCase):
    def test_title_from_heading_and_slug(self) -> None:
        client, completions = fake_client("# Agents Take Over: A 2025 Review\n\nIntro text.")
        writer = ArticleWriter(client, logger=LOGGER)

        article = writer.write("AI agents", ["agents", "automation"], tone="casual", word_count=600, include_image=False)

        self.assertEqual("Agents Take Over: A 2025 Review", article["title"])
        self.assertEqual("agents-take-over-a-2025-review", article["slug"])
        self.assertIsNone(article["imageUrl"])
        call = completions.calls[0]
        self.assertEqual("gpt-4o", call["model"])
        self.assertIn("casual", call["messages"][0]["content"])
        self.assertIn("including these keywords: agents, automation", call["messages"][1]["content"])
        self.assertIn("600 words", call["messages"][1]["content"])

    def test_topic_is_title_without_heading(self) -> None:
        client, _ = fake_client("## Section\n\nBody only.")
        article = ArticleWriter(client, logger=LOGGER).write("Quantum Ledgers", include_image=False)
        self.assertEqual("Quantum Ledgers", article["title"])
        self.assertEqual("quantum-ledgers", article["slug"])

    def test_cover_image_requested_at_16_9(self) -> None:
        client, _ = fake_client("# Title\n\nBody")
        media = FakeMediaService()
        article = ArticleWriter(client, media_service=media, logger=LOGGER).write("DeFi yields")

        self.assertEqual("https://blob.example.com/cover.png", article["imageUrl"])
        self.assertEqual("16:9", media.payloads[0]["aspectRatio"])
        self.assertEqual("google/imagen-4", media.payloads[0]["modelIdentifier"])
        self.assertIn("DeFi yields", media.payloads[0]["prompt"])

    def test_image_failure_leaves_no_image(self) -> None:
        client, _ = fake_client("# Title\n\nBody")
        media = FakeMediaService(error=RuntimeError("provider down"))
        article = ArticleWriter(client, media_service=media, logger=LOGGER).write("DeFi yields")
        self.assertIsNone(article["imageUrl"])
        self.assertEqual("# Title\n\nBody", article["content"])


if __name__ == "__main__":
    unittest.main()
