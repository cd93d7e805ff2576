"""
Dedup store for processed mention IDs.

Persists a JSON document {"file_path": ..., "items": [...]} next to the bot.
Loading never fails: a missing or corrupt file yields an empty store.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ValidationError

from services.errors import StorageError

logger = logging.getLogger(__name__)


class StoreDocument(BaseModel):
    """On-disk layout of the dedup store."""

    file_path: str
    items: set[str]


class DedupStore:
    """Set of mention IDs that completed the full pipeline."""

    def __init__(self, file_path: str | Path, items: set[str] | None = None):
        """
        Initialize the store.

        Args:
            file_path: Where persist() writes the store.
            items: Initial mention IDs.
        """
        self.file_path = str(file_path)
        self.items: set[str] = set(items or ())

    @classmethod
    def load(cls, file_path: str | Path) -> "DedupStore":
        """
        Load the store from file_path.

        Any read or parse failure returns an empty store bound to file_path.
        """
        path = Path(file_path)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"[STORAGE] No store at {path}, starting empty")
            return cls(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"[STORAGE] Could not read {path}: {e}. Starting empty")
            return cls(file_path)

        try:
            document = StoreDocument.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"[STORAGE] Discarding malformed store {path}: {e.error_count()} errors")
            return cls(file_path)

        logger.info(f"[STORAGE] Loaded {len(document.items)} processed mentions from {path}")
        return cls(file_path, document.items)

    def contains(self, mention_id: str) -> bool:
        return mention_id in self.items

    def insert(self, mention_id: str) -> bool:
        """Add mention_id. Returns True if it was not already present."""
        if mention_id in self.items:
            return False
        self.items.add(mention_id)
        return True

    def remove(self, mention_id: str) -> bool:
        """Remove mention_id. Returns True if it was present."""
        if mention_id not in self.items:
            return False
        self.items.discard(mention_id)
        return True

    def persist(self) -> None:
        """
        Write the store to disk, replacing any previous contents.

        Writes a temp file in the same directory and renames it over the
        target so a crash never leaves a half-written store.

        Raises:
            StorageError: If the file cannot be written.
        """
        path = Path(self.file_path)
        payload = json.dumps({"file_path": self.file_path, "items": sorted(self.items)})

        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to persist store to {path}: {e}") from e

        logger.info(f"[STORAGE] Saved {len(self.items)} processed mentions to {path}")

    def __contains__(self, mention_id: object) -> bool:
        return mention_id in self.items

    def __len__(self) -> int:
        return len(self.items)
