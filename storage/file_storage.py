import json
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from utils.logger import setup_logger


class FileStorage:
    """Resilient file persistence: atomic replace, rolling backups, corrupt-file quarantine."""

    def __init__(self, *, logger=None, keep_backups: int = 3) -> None:
        self.logger = logger or setup_logger(self.__class__.__name__)
        self.keep_backups = keep_backups

    def load_json(self, file_path: Path, default: Any = None) -> Any:
        """
        Load a JSON document from disk.

        Returns a copy of ``default`` (an empty dict when omitted) when the file is
        missing, unreadable, or holds a different top-level type than the default.
        """
        path = Path(file_path)
        fallback = {} if default is None else default
        if not path.exists():
            return type(fallback)(fallback)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, type(fallback)):
                return data
            self.logger.warning(
                "JSON file %s holds %s, expected %s; using default.",
                path,
                type(data).__name__,
                type(fallback).__name__,
            )
        except json.JSONDecodeError as exc:
            self.logger.error("JSON parse error for %s: %s", path, exc)
            self._quarantine_corrupt_file(path)
        except OSError as exc:
            self.logger.error("Unable to read %s: %s", path, exc)

        return type(fallback)(fallback)

    def save_json(self, file_path: Path, data: Any) -> bool:
        """Persist ``data`` as pretty JSON. Returns False (after rollback) on failure."""
        try:
            self.write_text(file_path, json.dumps(data, ensure_ascii=False, indent=2))
            return True
        except OSError:
            return False

    def write_text(self, file_path: Path, text: str) -> Path:
        """
        Replace ``file_path`` with ``text`` through a temporary sibling file.

        The previous version is backed up first and restored if the write fails;
        the OSError is re-raised so callers can fail closed.
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        backup_path = self.backup_file(path)

        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(path)
            return path
        except OSError as exc:
            self.logger.error("Failed to write %s: %s", path, exc)
            tmp_path.unlink(missing_ok=True)
            if backup_path:
                self._restore_backup(backup_path, path)
            raise

    def backup_file(self, file_path: Path) -> Optional[Path]:
        """Create a timestamped backup and trim history to the newest copies."""
        path = Path(file_path)
        if not path.exists():
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = path.with_name(f"{path.name}.{timestamp}.bak")
        shutil.copy2(path, backup_path)
        self._cleanup_old_backups(path)
        return backup_path

    def _cleanup_old_backups(self, file_path: Path) -> None:
        backups = sorted(file_path.parent.glob(f"{file_path.name}.*.bak"), reverse=True)
        for old in backups[self.keep_backups:]:
            try:
                old.unlink()
            except OSError as exc:
                self.logger.warning("Failed to remove old backup %s: %s", old, exc)

    def _quarantine_corrupt_file(self, file_path: Path) -> None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        quarantine_path = file_path.with_name(f"{file_path.name}.{timestamp}.corrupt")
        try:
            shutil.move(str(file_path), str(quarantine_path))
            self.logger.info("Quarantined corrupt file %s to %s", file_path, quarantine_path)
        except OSError as exc:
            self.logger.error("Failed to quarantine corrupt file %s: %s", file_path, exc)

    def _restore_backup(self, backup_path: Path, target_path: Path) -> None:
        try:
            shutil.copy2(backup_path, target_path)
            self.logger.info("Restored backup %s after failed write.", backup_path)
        except OSError as exc:
            self.logger.error("Failed to restore backup %s: %s", backup_path, exc)
