"""
FaceAuth

A local face-login demo: captures a face from the webcam, turns it into an
embedding with face_recognition, and matches it against enrolled users whose
embedding samples are kept in a local key-value store.
"""

__version__ = "1.0.0"
__author__ = "FaceAuth Team"

from .identity_store import IdentityStore
from .matcher import FaceMatcher, MatchResult
from .enrollment import EnrollmentConfig, EnrollmentFlow, EnrollmentPhase, EnrollmentState
from .authenticator import AuthResult, FaceAuthenticator

__all__ = [
    "IdentityStore",
    "FaceMatcher",
    "MatchResult",
    "EnrollmentConfig",
    "EnrollmentFlow",
    "EnrollmentPhase",
    "EnrollmentState",
    "AuthResult",
    "FaceAuthenticator"
]
