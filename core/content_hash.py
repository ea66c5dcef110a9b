"""Bounded store of normalized content hashes for exact-duplicate suppression."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from core.similarity import normalize_words
from storage.file_storage import FileStorage
from utils.logger import setup_logger


def generate_content_hash(title: str, content: str) -> str:
    normalized = " ".join(normalize_words(f"{title}\n{content}"))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContentHashStore:
    """
    JSON-file map of ``hash -> {hash, title, timestamp}``.

    Reads and writes never raise: a broken store degrades to "nothing seen yet".
    """

    def __init__(
        self,
        path: str | Path,
        *,
        max_entries: int = 100,
        storage: Optional[FileStorage] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger=None,
    ) -> None:
        self.path = Path(path)
        self.max_entries = max(1, int(max_entries))
        self.logger = logger or setup_logger(self.__class__.__name__)
        self.storage = storage or FileStorage(logger=self.logger)
        self.clock = clock or _utc_now

    def load(self) -> Dict[str, Dict[str, Any]]:
        return self.storage.load_json(self.path, default={})

    def check_content_hash(self, title: str, content: str) -> Dict[str, Any]:
        try:
            digest = generate_content_hash(title, content)
            entry = self.load().get(digest)
        except Exception as exc:
            self.logger.error("Content hash lookup failed: %s", exc)
            return {"exists": False}
        if not entry:
            return {"exists": False}
        return {
            "exists": True,
            "existingTitle": entry.get("title"),
            "timestamp": entry.get("timestamp"),
        }

    def store_content_hash(self, title: str, content: str) -> Optional[str]:
        try:
            digest = generate_content_hash(title, content)
            hashes = self.load()
            hashes[digest] = {
                "title": title,
                "timestamp": self.clock().isoformat(),
                "hash": digest,
            }
            if not self.storage.save_json(self.path, self.prune(hashes)):
                self.logger.error("Content hash for '%s' was not persisted.", title)
                return None
            return digest
        except Exception as exc:
            self.logger.error("Storing content hash failed: %s", exc)
            return None

    def prune(self, hashes: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        """Keep the ``max_entries`` most recent entries by timestamp."""
        if len(hashes) <= self.max_entries:
            return hashes
        ordered = sorted(
            hashes.items(),
            key=lambda item: _parse_timestamp(item[1].get("timestamp")),
            reverse=True,
        )
        return dict(ordered[: self.max_entries])


def _parse_timestamp(value: Any) -> datetime:
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
