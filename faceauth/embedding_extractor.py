"""
Embedding Extraction Module

Turns a live camera frame into a face embedding using the face_recognition
library (dlib ResNet, 128 dimensions). A missing face is reported as None,
never as an exception.
"""

import logging
from typing import Any, Dict, Optional

import cv2
import face_recognition
import numpy as np

from .capture import BoundingBox, Capture

logger = logging.getLogger(__name__)


def normalize_embedding(embedding: np.ndarray) -> np.ndarray:
    """
    Normalize embedding vector using L2 normalization.

    Args:
        embedding: Raw embedding vector

    Returns:
        Normalized embedding vector
    """
    if embedding is None or len(embedding) == 0:
        return embedding

    norm = np.linalg.norm(embedding)
    if norm == 0:
        return embedding

    return embedding / norm


class CameraEmbeddingExtractor:
    """Capture a frame from the camera and compute the face embedding."""

    def __init__(self, config: Dict[str, Any], capture_factory=None):
        """
        Initialize embedding extractor.

        Args:
            config: Configuration dictionary with embedding and camera settings
            capture_factory: Callable returning a cv2.VideoCapture-like object
        """
        self.config = config.get('embedding', {})
        self.camera_config = config.get('camera', {})

        self.detection_model = self.config.get('detection_model', 'hog')
        self.encoding_model = self.config.get('encoding_model', 'small')
        self.num_jitters = self.config.get('num_jitters', 1)
        self.upsample_times = self.config.get('upsample_times', 1)
        self.normalization = self.config.get('normalization', False)

        self.device_id = self.camera_config.get('device_id', 0)
        self.frame_width = self.camera_config.get('width', 640)
        self.frame_height = self.camera_config.get('height', 480)

        self._capture_factory = capture_factory or cv2.VideoCapture
        self.cap = None

        logger.info(
            f"Embedding extractor initialized (detection: {self.detection_model}, "
            f"encoding: {self.encoding_model})"
        )

    def _open_camera(self) -> bool:
        if self.cap is not None and self.cap.isOpened():
            return True

        self.cap = self._capture_factory(self.device_id)
        if not self.cap.isOpened():
            logger.error(f"Failed to open camera {self.device_id}")
            return False

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)

        logger.info(f"Camera {self.device_id} opened")
        return True

    def read_frame(self) -> Optional[np.ndarray]:
        """Grab one fresh BGR frame from the camera."""
        if not self._open_camera():
            return None

        ret, frame = self.cap.read()
        if not ret or frame is None:
            logger.warning("Failed to read frame")
            return None

        return frame

    def capture_embedding(self) -> Optional[Capture]:
        """
        Capture a frame and extract the embedding of its largest face.

        Returns:
            Capture, or None if no face was found
        """
        frame = self.read_frame()
        if frame is None:
            return None

        return self.extract(frame)

    def extract(self, frame: np.ndarray) -> Optional[Capture]:
        """
        Extract the embedding of the largest face in a BGR frame.

        Args:
            frame: Image as numpy array (BGR format)

        Returns:
            Capture, or None if no face was found
        """
        if frame is None or frame.size == 0:
            return None

        rgb_image = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

        locations = face_recognition.face_locations(
            rgb_image,
            number_of_times_to_upsample=self.upsample_times,
            model=self.detection_model
        )
        if not locations:
            logger.warning("No face detected")
            return None

        # Use the largest face if several are visible
        location = max(locations, key=lambda loc: BoundingBox.from_css(loc).area)

        encodings = face_recognition.face_encodings(
            rgb_image,
            known_face_locations=[location],
            num_jitters=self.num_jitters,
            model=self.encoding_model
        )
        if len(encodings) == 0:
            logger.warning("No face encoding generated")
            return None

        embedding = np.asarray(encodings[0], dtype=np.float64)
        if self.normalization:
            embedding = normalize_embedding(embedding)

        return Capture(vector=embedding, box=BoundingBox.from_css(location), frame=frame)

    def release(self):
        """Release the camera."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera released")
