"""Result types returned by an embedding extractor."""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import NoFaceDetected


@dataclass(frozen=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_css(cls, location: Tuple[int, int, int, int]) -> 'BoundingBox':
        """Build from face_recognition's (top, right, bottom, left) tuple."""
        top, right, bottom, left = location
        return cls(x=int(left), y=int(top), width=int(right - left), height=int(bottom - top))

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass
class Capture:
    """One successful extraction: the embedding and where the face was."""

    vector: np.ndarray
    box: BoundingBox
    frame: Optional[np.ndarray] = None


def require_capture(extractor) -> Capture:
    """
    Ask the extractor for a capture, raising if it found no face.

    Raises:
        NoFaceDetected: if the extractor returned None
    """
    capture = extractor.capture_embedding()
    if capture is None:
        raise NoFaceDetected("No face captured")
    return capture
