import json
import logging
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from core.content_hash import ContentHashStore, generate_content_hash
from storage.file_storage import FileStorage

LOGGER = logging.getLogger("tests.content_hash")


class SteppingClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


class TestGenerateContentHash(unittest.TestCase):
    def test_normalization_ignores_case_and_punctuation(self) -> None:
        self.assertEqual(
            generate_content_hash("Hello, World!", "AI is   here."),
            generate_content_hash("hello world", "ai is here"),
        )

    def test_different_content_differs(self) -> None:
        self.assertNotEqual(
            generate_content_hash("Title", "one body"),
            generate_content_hash("Title", "another body"),
        )

    def test_hex_sha256(self) -> None:
        digest = generate_content_hash("Title", "Body")
        self.assertEqual(64, len(digest))
        int(digest, 16)


class TestContentHashStore(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "content-hashes.json"
        self.clock = SteppingClock(datetime(2025, 6, 1, tzinfo=timezone.utc))
        self.store = ContentHashStore(
            self.path,
            max_entries=3,
            storage=FileStorage(logger=LOGGER),
            clock=self.clock,
            logger=LOGGER,
        )

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_missing_store_reports_nothing(self) -> None:
        self.assertEqual({"exists": False}, self.store.check_content_hash("Title", "Body"))

    def test_store_then_check(self) -> None:
        digest = self.store.store_content_hash("The Future of AI", "Body text")
        self.assertEqual(generate_content_hash("The Future of AI", "Body text"), digest)

        found = self.store.check_content_hash("the future of ai", "body   text!")
        self.assertTrue(found["exists"])
        self.assertEqual("The Future of AI", found["existingTitle"])
        self.assertEqual("2025-06-01T00:01:00+00:00", found["timestamp"])

        saved = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual({"title", "timestamp", "hash"}, set(saved[digest]))

    def test_prunes_to_most_recent_entries(self) -> None:
        digests = [self.store.store_content_hash(f"Title {i}", f"Body {i}") for i in range(5)]
        saved = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(set(digests[2:]), set(saved))

    def test_corrupt_store_fails_open(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        self.assertEqual({"exists": False}, self.store.check_content_hash("Title", "Body"))

    def test_store_failure_returns_none(self) -> None:
        # a directory where the file should be makes every write fail
        self.path.mkdir()
        self.assertIsNone(self.store.store_content_hash("Title", "Body"))


if __name__ == "__main__":
    unittest.main()
