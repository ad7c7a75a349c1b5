"""
Local Storage Module

A small key-value area holding string values, in the spirit of a browser's
localStorage. The file backend keeps every key in a single JSON document.
"""

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Dict-backed storage used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = str(value)

    def remove_item(self, key: str):
        self._items.pop(key, None)

    def keys(self):
        return list(self._items.keys())


class FileStorage:
    """Key-value storage persisted as one JSON file on disk."""

    def __init__(self, path: str):
        """
        Initialize file storage.

        Args:
            path: Location of the JSON file (created on first write)
        """
        self.path = path
        self._lock = threading.Lock()

    def _ensure_directory(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local storage file {self.path} is unreadable, treating as empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Local storage file {self.path} does not hold an object, treating as empty")
            return {}

        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write_all(self, items: Dict[str, str]):
        self._ensure_directory()
        directory = os.path.dirname(self.path) or '.'

        # Write to a sibling temp file so readers never see a partial document
        fd, tmp_path = tempfile.mkstemp(prefix='.local_storage.', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(items, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str):
        with self._lock:
            items = self._read_all()
            items[key] = str(value)
            self._write_all(items)

    def remove_item(self, key: str):
        with self._lock:
            items = self._read_all()
            if key not in items:
                return
            del items[key]
            self._write_all(items)

    def keys(self):
        with self._lock:
            return list(self._read_all().keys())


def create_storage(config: Dict[str, Any]):
    """
    Build the storage backend named in the configuration.

    Args:
        config: Full configuration dictionary

    Returns:
        MemoryStorage or FileStorage instance
    """
    storage_config = config.get('storage', {})
    backend = storage_config.get('backend', 'file')

    if backend == 'memory':
        logger.info("Using in-memory local storage")
        return MemoryStorage()

    if backend != 'file':
        logger.warning(f"Unsupported storage backend: {backend}, falling back to file")

    path = storage_config.get('path', 'data/local_storage.json')
    logger.info(f"Using file local storage at {path}")
    return FileStorage(path)
