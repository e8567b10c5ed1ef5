"""Key/value text substrates the store persists into.

A substrate behaves like browser ``localStorage``: string keys, string
values, synchronous get/set/remove and no change notification.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import StorageError

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueSubstrate(Protocol):
    """Minimal synchronous key -> text store."""

    def get_item(self, key: str) -> str | None:
        """Return the stored text, or None if the key is absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store text under key. Raises StorageError on failure."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        ...


class MemorySubstrate:
    """In-process substrate, optionally with a size quota.

    Args:
        max_bytes: If set, a write that would push the total stored size
            past this many bytes fails with StorageError, the way a full
            browser storage quota does.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self.max_bytes = max_bytes

    def _size_with(self, key: str, value: str) -> int:
        size = 0
        for existing_key, existing_value in self._items.items():
            if existing_key != key:
                size += len(existing_key.encode("utf-8")) + len(existing_value.encode("utf-8"))
        return size + len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.max_bytes is not None and self._size_with(key, value) > self.max_bytes:
            raise StorageError(f"Quota of {self.max_bytes} bytes exceeded writing '{key}'")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileSubstrate:
    """Substrate backed by a single JSON object on disk.

    Every write replaces the file atomically (temp file + rename), so a
    crash mid-write leaves the previous contents intact. The file is read
    once and cached; this substrate assumes it is the only writer.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._items: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._items is not None:
            return self._items

        self._items = {}
        if not self.path.exists():
            return self._items

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read storage file %s: %s", self.path, e)
            return self._items

        if not isinstance(data, dict):
            logger.error("Storage file %s does not hold an object, ignoring it", self.path)
            return self._items

        self._items = {str(k): v for k, v in data.items() if isinstance(v, str)}
        return self._items

    def _flush(self, items: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        except OSError as e:
            raise StorageError(f"Could not write storage file {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Could not write storage file {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = dict(self._load())
        items[key] = value
        self._flush(items)
        self._items = items

    def remove_item(self, key: str) -> None:
        items = dict(self._load())
        if key not in items:
            return
        del items[key]
        self._flush(items)
        self._items = items
