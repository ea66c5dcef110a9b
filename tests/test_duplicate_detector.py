import logging
import tempfile
import unittest
from pathlib import Path

from core.blog_store import BlogIndex
from core.content_hash import ContentHashStore
from core.duplicate_detector import (
    REASON_CONTENT,
    REASON_ERROR,
    REASON_HASH,
    REASON_PHRASES,
    REASON_TITLE,
    REASON_UNIQUE,
    DuplicateDetector,
    strip_frontmatter,
)
from storage.file_storage import FileStorage

LOGGER = logging.getLogger("tests.duplicate_detector")

INDEX_TEMPLATE = """export interface BlogPost {{
  id: string
  title: string
}}

export const blogPosts: BlogPost[] = [
{entries}
]
"""

LLM_BODY = (
    "Large language models in 2025 reason across longer contexts, call external tools and write "
    "production code. Open weight releases narrowed the gap with frontier systems while inference "
    "costs dropped sharply for enterprises adopting retrieval pipelines."
)


def index_text(*titles: str) -> str:
    entries = "\n".join(f'  {{\n    slug: "post-{i}",\n    title: "{title}",\n  }},' for i, title in enumerate(titles))
    return INDEX_TEMPLATE.format(entries=entries)


class DuplicateDetectorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        root = Path(self.tmpdir.name)
        self.index_path = root / "blog-data.ts"
        self.content_dir = root / "content"
        self.content_dir.mkdir()
        self.index_path.write_text(index_text(), encoding="utf-8")
        self.detector = DuplicateDetector(BlogIndex(self.index_path), self.content_dir, logger=LOGGER)

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def write_post(self, name: str, body: str) -> None:
        text = f'---\ntitle: "{name}"\ncategory: "ai"\n---\n{body}'
        (self.content_dir / f"{name}.md").write_text(text, encoding="utf-8")


class TestTitleThreshold(DuplicateDetectorTestCase):
    def check_titles(self, existing: str, new: str):
        self.index_path.write_text(index_text(existing), encoding="utf-8")
        return self.detector.check_for_duplicates(new, "unrelated body text")

    def test_just_below_threshold(self) -> None:
        # 9 shared tokens out of 13
        result = self.check_titles(
            "alpha bravo charlie delta echo foxtrot golf hotel india juliet kilo",
            "alpha bravo charlie delta echo foxtrot golf hotel india lima mike",
        )
        self.assertFalse(result.is_duplicate)

    def test_exactly_at_threshold_is_not_duplicate(self) -> None:
        # 7 shared tokens out of 10
        result = self.check_titles(
            "alpha bravo charlie delta echo foxtrot golf hotel",
            "alpha bravo charlie delta echo foxtrot golf india juliet",
        )
        self.assertFalse(result.is_duplicate)
        self.assertEqual(REASON_UNIQUE, result.reason)

    def test_just_above_threshold(self) -> None:
        # 5 shared tokens out of 7
        result = self.check_titles(
            "alpha bravo charlie delta echo foxtrot",
            "alpha bravo charlie delta echo golf",
        )
        self.assertTrue(result.is_duplicate)
        self.assertEqual(REASON_TITLE, result.reason)
        self.assertAlmostEqual(5 / 7, result.similarity)

    def test_custom_threshold_override(self) -> None:
        self.index_path.write_text(index_text("alpha bravo charlie delta echo foxtrot golf hotel"), encoding="utf-8")
        result = self.detector.check_for_duplicates(
            "alpha bravo charlie delta echo foxtrot golf india juliet",
            "unrelated body text",
            0.65,
        )
        self.assertTrue(result.is_duplicate)


class TestContentChecks(DuplicateDetectorTestCase):
    def test_llm_article_is_flagged(self) -> None:
        self.index_path.write_text(index_text("The State of Large Language Models in 2025"), encoding="utf-8")
        self.write_post("large-language-models-2025", LLM_BODY)

        result = self.detector.check_for_duplicates("Large Language Models: State in 2025", LLM_BODY)
        self.assertTrue(result.is_duplicate)
        self.assertIn("similar", result.reason.lower())
        self.assertIn(result.reason, (REASON_TITLE, REASON_CONTENT))

    def test_similar_body_is_flagged(self) -> None:
        self.write_post("llm-report", LLM_BODY)
        result = self.detector.check_for_duplicates("A Fresh Headline", LLM_BODY + " Extra closing remark.")
        self.assertTrue(result.is_duplicate)
        self.assertEqual(REASON_CONTENT, result.reason)
        self.assertEqual("llm-report.md", result.similar_file)

    def test_frontmatter_is_ignored(self) -> None:
        self.assertEqual("body\n", strip_frontmatter('---\ntitle: "x"\n---\nbody\n'))
        self.assertEqual("no frontmatter", strip_frontmatter("no frontmatter"))

    def test_shared_phrases_are_flagged(self) -> None:
        filler = " ".join(f"unrelatedword{i}" for i in range(30))
        self.write_post("ledgers", f"{filler} quantum ledger systems scale rapidly {filler}")

        result = self.detector.check_for_duplicates("Ledgers Now", "quantum ledger systems scale rapidly")
        self.assertTrue(result.is_duplicate)
        self.assertEqual(REASON_PHRASES, result.reason)
        self.assertEqual(1.0, result.phrase_overlap)
        self.assertEqual(5, len(result.common_phrases))
        self.assertEqual("ledgers.md", result.to_dict()["similarFile"])

    def test_too_few_common_phrases(self) -> None:
        filler = " ".join(f"unrelatedword{i}" for i in range(30))
        self.write_post("ledgers", f"{filler} quantum ledger {filler}")
        result = self.detector.check_for_duplicates("Ledgers Now", "quantum ledger")
        self.assertFalse(result.is_duplicate)

    def test_unique_content(self) -> None:
        self.write_post("llm-report", LLM_BODY)
        result = self.detector.check_for_duplicates(
            "Tokenized Real Estate",
            "Property deeds recorded on public chains let buyers verify ownership history instantly.",
        )
        self.assertFalse(result.is_duplicate)
        self.assertEqual({"isDuplicate": False, "reason": REASON_UNIQUE}, result.to_dict())

    def test_missing_content_dir_only_checks_titles(self) -> None:
        detector = DuplicateDetector(BlogIndex(self.index_path), self.content_dir / "missing", logger=LOGGER)
        self.assertFalse(detector.check_for_duplicates("Anything", LLM_BODY).is_duplicate)


class TestFailOpen(DuplicateDetectorTestCase):
    def test_missing_index_proceeds(self) -> None:
        self.index_path.unlink()
        result = self.detector.check_for_duplicates("Any title", "Any content")
        self.assertFalse(result.is_duplicate)
        self.assertEqual(REASON_ERROR, result.reason)


class TestContentHashCheck(DuplicateDetectorTestCase):
    def test_hash_match(self) -> None:
        store = ContentHashStore(
            Path(self.tmpdir.name) / "hashes.json",
            storage=FileStorage(logger=LOGGER),
            logger=LOGGER,
        )
        store.store_content_hash("Seen Before", "Same words here")
        detector = DuplicateDetector(BlogIndex(self.index_path), self.content_dir, hash_store=store, logger=LOGGER)

        result = detector.check_content_hash("seen before!", "same words   here")
        self.assertTrue(result.is_duplicate)
        self.assertEqual(REASON_HASH, result.reason)
        self.assertEqual("Seen Before", result.similar_title)

    def test_no_store_means_unique(self) -> None:
        self.assertFalse(self.detector.check_content_hash("Title", "Body").is_duplicate)


if __name__ == "__main__":
    unittest.main()
