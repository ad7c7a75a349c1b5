"""
Identity Store Module

Persists enrolled identities as a mapping of name -> list of embedding samples.
The whole mapping lives in one JSON blob under a single storage key; this
module is the only place that reads or writes that key.
"""

import json
import logging
import numbers
import threading
from typing import Any, Dict, List, Optional

import numpy as np

from .errors import DimensionMismatch, InputError, StorageCorrupt
from .local_storage import create_storage

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = 'faceAuthUsers'

Store = Dict[str, List[np.ndarray]]


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _to_vector(values: List[Any]) -> Optional[np.ndarray]:
    """Convert a JSON list of numbers to a float vector, or None if it isn't one."""
    if not values or not all(_is_number(v) for v in values):
        return None
    vector = np.asarray(values, dtype=np.float64)
    if not np.all(np.isfinite(vector)):
        return None
    return vector


def _decode_samples(name: str, value: Any) -> Optional[List[np.ndarray]]:
    """
    Decode the persisted value for one name.

    Accepts the current shape (list of vectors) and the older single-vector
    shape, which is upgraded to a one-sample list.
    """
    if not isinstance(value, list):
        return None

    if not value:
        return []

    if all(_is_number(v) for v in value):
        vector = _to_vector(value)
        if vector is None:
            return None
        logger.info(f"Upgrading single-vector record for '{name}' to sample list")
        return [vector]

    samples = []
    for raw_sample in value:
        vector = _to_vector(raw_sample) if isinstance(raw_sample, list) else None
        if vector is None:
            logger.warning(f"Skipping malformed sample for '{name}'")
            continue
        if samples and len(vector) != len(samples[0]):
            logger.warning(
                f"Skipping sample for '{name}' with dimension {len(vector)} "
                f"(record dimension {len(samples[0])})"
            )
            continue
        samples.append(vector)

    return samples


def decode_store(raw: str) -> Store:
    """
    Parse a persisted blob into a store.

    Raises:
        StorageCorrupt: if the blob is not a JSON object
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise StorageCorrupt(f"Stored identities are not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise StorageCorrupt(f"Stored identities must be an object, got {type(data).__name__}")

    store = {}
    for name, value in data.items():
        samples = _decode_samples(name, value)
        if samples is None:
            logger.warning(f"Skipping unreadable record for '{name}'")
            continue
        store[name] = samples

    return store


def encode_store(store: Store) -> str:
    """Serialize a store to the persisted JSON shape."""
    return json.dumps({
        name: [np.asarray(sample, dtype=np.float64).tolist() for sample in samples]
        for name, samples in store.items()
    })


class IdentityStore:
    """Durable mapping of identity name to enrolled embedding samples."""

    def __init__(self, config: Dict[str, Any], storage=None):
        """
        Initialize identity store.

        Args:
            config: Configuration dictionary with storage settings
            storage: Key-value storage backend (built from config if omitted)
        """
        self.storage_config = config.get('storage', {})
        self.key = self.storage_config.get('key', DEFAULT_STORAGE_KEY)
        self.enforce_global_dimension = self.storage_config.get('enforce_global_dimension', False)

        self.storage = storage if storage is not None else create_storage(config)

        # Serializes load-modify-persist between concurrent writers
        self._lock = threading.Lock()

        logger.info(f"Identity store initialized with key: {self.key}")

    def load(self) -> Store:
        """
        Read the persisted store.

        A missing or corrupt blob yields an empty store; this never raises.
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            return {}

        try:
            return decode_store(raw)
        except StorageCorrupt as e:
            logger.warning(f"Ignoring corrupt identity store: {e}")
            return {}

    def append_sample(self, store: Store, name: str, embedding) -> Store:
        """
        Append one embedding sample under a name and persist the result.

        The persisted store is re-read under the lock and the sample is added
        to that copy, so a stale ``store`` never undoes another writer's
        append or a clear.

        Args:
            store: Caller's view of the store contents
            name: Identity name (trimmed, must be non-empty)
            embedding: Embedding vector

        Returns:
            Updated store (the input mapping is not modified)
        """
        name = self.validate_name(name)
        vector = self._validate_embedding(embedding)

        with self._lock:
            current = self.load()
            if self.names(current) != self.names(store):
                logger.debug(f"Store changed since it was loaded; appending '{name}' to persisted copy")

            existing = current.get(name, [])
            if existing and len(existing[0]) != len(vector):
                raise DimensionMismatch(len(existing[0]), len(vector), name)

            if self.enforce_global_dimension:
                dimension = self.dimension(current)
                if dimension is not None and dimension != len(vector):
                    raise DimensionMismatch(dimension, len(vector))

            updated = current
            updated[name] = list(existing) + [vector]

            self.storage.set_item(self.key, encode_store(updated))

        logger.info(f"Appended sample for '{name}' ({len(updated[name])} total)")
        return updated

    def clear(self):
        """Delete the persisted store. Safe to call when nothing is stored."""
        with self._lock:
            self.storage.remove_item(self.key)
        logger.info("Identity store cleared")

    @staticmethod
    def names(store: Store) -> List[str]:
        """All enrolled names in insertion order."""
        return list(store.keys())

    @staticmethod
    def sample_count(store: Store, name: str) -> int:
        return len(store.get(name, []))

    @staticmethod
    def dimension(store: Store) -> Optional[int]:
        """Dimension of the first stored sample, or None for an empty store."""
        for samples in store.values():
            if samples:
                return len(samples[0])
        return None

    def get_statistics(self, store: Store) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            'total_identities': len(store),
            'total_samples': sum(len(samples) for samples in store.values()),
            'embedding_dimension': self.dimension(store),
            'storage_key': self.key
        }

    @staticmethod
    def validate_name(name: str) -> str:
        name = (name or '').strip()
        if not name:
            raise InputError("Enter username to register")
        return name

    @staticmethod
    def _validate_embedding(embedding) -> np.ndarray:
        if embedding is None:
            raise InputError("Embedding is missing")

        vector = np.asarray(embedding, dtype=np.float64)
        if vector.ndim != 1 or vector.size == 0:
            raise InputError(f"Embedding must be a non-empty vector, got shape {vector.shape}")

        if not np.all(np.isfinite(vector)):
            raise InputError("Embedding contains NaN or infinite values")

        return vector.copy()
