"""
Local history of successful edits.

History is a most-recent-first list of HistoryItem records, capped at
DEFAULT_HISTORY_LIMIT, stored as one JSON array under a single key of a local
key-value store. Every save replaces the whole list.
"""

import json
import os
import tempfile
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from nanobanana.core.config import DEFAULT_HISTORY_LIMIT
from nanobanana.logging_config import get_logger
from nanobanana.utils.exceptions import PersistenceError

logger = get_logger(__name__)

HISTORY_KEY = "nanoBananaHistory"


@dataclass(frozen=True)
class HistoryItem:
    """One persisted record of a successful edit."""

    id: int  # creation time in milliseconds; strictly increasing per process
    prompt: str
    style: str
    result_url: str  # data URL of the edited image
    base_image: str  # data URL of the image that was edited

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the storage's camelCase keys."""
        return {
            "id": self.id,
            "prompt": self.prompt,
            "style": self.style,
            "resultUrl": self.result_url,
            "baseImage": self.base_image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryItem":
        """
        Build from a stored record.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        try:
            item = cls(
                id=int(data["id"]),
                prompt=data["prompt"],
                style=data["style"],
                result_url=data["resultUrl"],
                base_image=data["baseImage"],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed history record: {e}") from e
        for name in ("prompt", "style", "result_url", "base_image"):
            if not isinstance(getattr(item, name), str):
                raise ValueError(f"Malformed history record: {name} is not a string")
        return item


def push_history(
    history: Sequence[HistoryItem], item: HistoryItem, limit: int = DEFAULT_HISTORY_LIMIT
) -> list[HistoryItem]:
    """Return a new list with item first, truncated to limit entries."""
    return [item, *history][:limit]


def next_history_id(previous_ids: Iterable[int], now_ms: int) -> int:
    """Timestamp id for a new record, bumped past any existing id."""
    latest = max(previous_ids, default=None)
    if latest is not None and now_ms <= latest:
        return latest + 1
    return now_ms


class KeyValueStorage(Protocol):
    """String key-value store (a local equivalent of browser localStorage)."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    """In-memory storage; contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """
    Key-value storage backed by a single JSON object file.

    Reads the file on every get so other processes' writes are seen. Writes
    go to a temporary file in the same directory and replace the original.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise PersistenceError(f"Failed to read storage file {self.path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PersistenceError(f"Storage file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Storage file {self.path} does not hold a JSON object")
        return data

    def get_item(self, key: str) -> str | None:
        value = self._read_all().get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            logger.error(
                "Ignoring key=%s in %s: expected a string, got %s",
                key,
                self.path,
                type(value).__name__,
            )
            return None
        return value

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except PersistenceError:
                logger.warning("Storage file %s unreadable; rewriting it", self.path)
                data = {}
            data[key] = value
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=self.path.parent, prefix=".storage_", suffix=".json"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    Path(tmp_path).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise PersistenceError(f"Failed to write storage file {self.path}: {e}") from e
            logger.debug("Wrote key=%s to %s (%d chars)", key, self.path, len(value))


class HistoryStore:
    """Loads and saves the history list under one storage key."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = HISTORY_KEY,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.storage = storage
        self.key = key
        self.limit = limit

    def load(self) -> list[HistoryItem]:
        """
        Return the stored history, most recent first.

        Never raises: unreadable or malformed history is logged and yields [].
        """
        try:
            raw = self.storage.get_item(self.key)
        except PersistenceError as e:
            logger.error("Error reading history: %s", e)
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("history is not a JSON array")
            items = [HistoryItem.from_dict(entry) for entry in data]
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Error parsing history from storage: %s", e)
            return []
        logger.debug("Loaded %d history items", len(items))
        return items[: self.limit]

    def save(self, items: Sequence[HistoryItem]) -> None:
        """
        Replace the stored history with items.

        Raises:
            PersistenceError: If the storage write fails
        """
        try:
            raw = json.dumps([item.to_dict() for item in items])
            self.storage.set_item(self.key, raw)
        except PersistenceError:
            raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to save history: {e}") from e
        logger.debug("Saved %d history items", len(items))

    def append(self, item: HistoryItem) -> list[HistoryItem]:
        """Load, prepend item, truncate, save; return the new list."""
        items = push_history(self.load(), item, self.limit)
        self.save(items)
        return items
