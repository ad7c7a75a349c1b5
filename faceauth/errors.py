"""
Error Types

Exceptions raised by the identity store, matcher and enrollment flow.
User-correctable conditions are turned into status strings by the callers;
DimensionMismatch is left to propagate.
"""


class FaceAuthError(Exception):
    """Base class for all face authentication errors."""


class InputError(FaceAuthError, ValueError):
    """Blank name or unusable embedding supplied by the caller."""


class NoFaceDetected(FaceAuthError):
    """The extractor could not find a face in the current frame."""


class NoIdentitiesEnrolled(FaceAuthError):
    """Matching was requested against a store with no comparable samples."""


class StorageCorrupt(FaceAuthError):
    """The persisted blob could not be decoded."""


class DimensionMismatch(FaceAuthError, ValueError):
    """Two embeddings that must be compared have different lengths."""

    def __init__(self, expected: int, actual: int, name: str = None):
        self.expected = expected
        self.actual = actual
        self.name = name
        where = f" for '{name}'" if name else ""
        super().__init__(
            f"Embedding dimension mismatch{where}: expected {expected}, got {actual}"
        )


class EnrollmentBusy(FaceAuthError):
    """Another registration, authentication or clear is already running."""
