"""Durable key-value storage backends for client-side tracker state."""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """Exception raised when the storage backend cannot be read or written."""
    pass


class KeyValueStorage(Protocol):
    """String key-value store with localStorage semantics."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage; one instance is one storage scope."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class JsonFileStorage:
    """Storage persisted as a JSON object in a single file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailableError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailableError(f"Storage file {self.path} does not contain an object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f)
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return str(value) if value is not None else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
            logger.debug(f"Removed {key} from {self.path}")


_process_storage = MemoryStorage()


def process_storage() -> MemoryStorage:
    """Storage scope shared by every page view in this process.

    Used when no storage file is configured, so consecutive page views
    keep the same session id until it is cleared.
    """
    return _process_storage
