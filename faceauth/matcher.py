"""
Face Matching Module

Nearest-neighbour identity matching over enrolled embeddings. Each identity
is scored by its closest sample (best-sample matching) and the overall
winner is accepted only if its distance is within the threshold.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .errors import DimensionMismatch, NoIdentitiesEnrolled

logger = logging.getLogger(__name__)

DEFAULT_DISTANCE_THRESHOLD = 0.6


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one authentication attempt."""

    distance: float
    name: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.name is not None

    @property
    def label(self) -> str:
        return self.name if self.matched else 'unknown'

    def __str__(self):
        return f"{self.label} ({self.distance:.2f})"


def euclidean_distance(embedding1, embedding2) -> float:
    """
    Euclidean distance between two embeddings.

    Raises:
        DimensionMismatch: if the vectors have different lengths
    """
    a = np.asarray(embedding1, dtype=np.float64)
    b = np.asarray(embedding2, dtype=np.float64)

    if a.shape != b.shape:
        raise DimensionMismatch(len(b), len(a))

    return float(np.linalg.norm(a - b))


class FaceMatcher:
    """Match a query embedding against a store of named samples."""

    def __init__(self, threshold: float = DEFAULT_DISTANCE_THRESHOLD):
        """
        Initialize face matcher.

        Args:
            threshold: Maximum Euclidean distance accepted as a match
        """
        if threshold < 0:
            raise ValueError(f"Distance threshold must be non-negative, got {threshold}")
        self.threshold = float(threshold)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'FaceMatcher':
        recognition_config = config.get('recognition', {})
        return cls(recognition_config.get('distance_threshold', DEFAULT_DISTANCE_THRESHOLD))

    def score_identity(self, query: np.ndarray, samples: List[np.ndarray], name: str = None) -> float:
        """
        Distance from the query to the closest of an identity's samples.

        Args:
            query: Query embedding
            samples: Non-empty list of enrolled samples
            name: Identity name, used in error messages

        Returns:
            Minimum distance across samples
        """
        query = np.asarray(query, dtype=np.float64)
        reference = np.asarray(samples, dtype=np.float64)

        if reference.ndim != 2 or reference.shape[1] != query.shape[0]:
            expected = reference.shape[-1] if reference.ndim >= 1 else 0
            raise DimensionMismatch(expected, query.shape[0], name)

        distances = np.linalg.norm(reference - query, axis=1)
        return float(distances.min())

    def find_best_match(self, query, store: Dict[str, List[np.ndarray]]) -> MatchResult:
        """
        Find the closest enrolled identity for a query embedding.

        Ties between identities go to the one enrolled first.

        Args:
            query: Query embedding vector
            store: Mapping of name -> list of samples

        Returns:
            MatchResult carrying the name when the best distance is within threshold

        Raises:
            NoIdentitiesEnrolled: if no identity has any samples
            DimensionMismatch: if the query length differs from a stored sample
        """
        query = np.asarray(query, dtype=np.float64)
        if query.ndim != 1 or query.size == 0:
            raise ValueError(f"Query embedding must be a non-empty vector, got shape {query.shape}")

        best: Optional[Tuple[str, float]] = None

        for name, samples in store.items():
            if not samples:
                continue

            score = self.score_identity(query, samples, name)
            logger.debug(f"Best-sample distance to '{name}': {score:.4f}")

            if best is None or score < best[1]:
                best = (name, score)

        if best is None:
            raise NoIdentitiesEnrolled("No users registered")

        name, distance = best
        if distance <= self.threshold:
            return MatchResult(distance=distance, name=name)

        return MatchResult(distance=distance)

    @staticmethod
    def has_candidates(store: Dict[str, List[np.ndarray]]) -> bool:
        """True if at least one identity has a sample to compare against."""
        return any(samples for samples in store.values())
