"""
Face Authentication Module

Service object used by the front-end. Combines the embedding extractor,
identity store, matcher and enrollment flow behind register / authenticate /
clear_all / list_names, and reports every outcome as a short status string.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .capture import Capture, require_capture
from .enrollment import EnrollmentConfig, EnrollmentFlow, EnrollmentPhase, EnrollmentState
from .errors import EnrollmentBusy, NoFaceDetected
from .identity_store import IdentityStore
from .matcher import FaceMatcher, MatchResult

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    status: str
    match: Optional[MatchResult] = None
    capture: Optional[Capture] = None
    no_identities: bool = False

    @property
    def authenticated(self) -> bool:
        return self.match is not None and self.match.matched


class FaceAuthenticator:
    """Register and authenticate users by face."""

    def __init__(self, config: Dict[str, Any], extractor, storage=None, sleep=time.sleep):
        """
        Initialize face authenticator.

        Args:
            config: Configuration dictionary
            extractor: Object with capture_embedding() -> Capture | None
            storage: Key-value storage backend (built from config if omitted)
            sleep: Delay function used between enrollment ticks
        """
        self.config = config
        self.extractor = extractor

        self.identity_store = IdentityStore(config, storage=storage)
        self.matcher = FaceMatcher.from_config(config)
        self.enrollment = EnrollmentFlow(
            self.identity_store,
            extractor,
            EnrollmentConfig.from_config(config),
            sleep=sleep
        )

        # Registration, authentication and clearing never overlap
        self._operation_lock = threading.Lock()

        self.stats = self._empty_statistics()

        logger.info(f"Face authenticator initialized (threshold: {self.matcher.threshold})")

    @staticmethod
    def _empty_statistics() -> Dict[str, Any]:
        return {
            'attempts': 0,
            'matches': 0,
            'rejections': 0,
            'no_face': 0,
            'enrollments_completed': 0,
            'enrollments_aborted': 0,
            'session_start': datetime.now().isoformat()
        }

    def _acquire(self):
        if not self._operation_lock.acquire(blocking=False):
            raise EnrollmentBusy("Another face operation is in progress")

    def register(self, name: str) -> EnrollmentState:
        """
        Run one multi-sample enrollment for a name.

        Args:
            name: Identity name

        Returns:
            Final enrollment state (COMPLETED or ABORTED)
        """
        self._acquire()
        try:
            return self.enrollment.run(name)
        finally:
            self._operation_lock.release()

            phase = self.enrollment.state.phase
            if phase == EnrollmentPhase.COMPLETED:
                self.stats['enrollments_completed'] += 1
            elif phase == EnrollmentPhase.ABORTED:
                self.stats['enrollments_aborted'] += 1

    def cancel_registration(self):
        self.enrollment.cancel()

    def authenticate(self) -> AuthResult:
        """
        Capture a face and match it against every enrolled identity.

        Returns:
            AuthResult with a status string and, when a face was captured,
            the match result
        """
        self._acquire()
        try:
            return self._authenticate()
        finally:
            self._operation_lock.release()

    def _authenticate(self) -> AuthResult:
        store = self.identity_store.load()
        if not self.matcher.has_candidates(store):
            logger.info("Authentication requested with no users registered")
            return AuthResult(status='No users registered', no_identities=True)

        self.stats['attempts'] += 1

        try:
            capture = require_capture(self.extractor)
        except NoFaceDetected as e:
            self.stats['no_face'] += 1
            return AuthResult(status=str(e))

        match = self.matcher.find_best_match(capture.vector, store)

        if match.matched:
            self.stats['matches'] += 1
            status = f"Authenticated: {match.name} (dist {match.distance:.2f})"
            logger.info(status)
        else:
            self.stats['rejections'] += 1
            status = f"No match (distance {match.distance:.2f})"
            logger.info(status)

        return AuthResult(status=status, match=match, capture=capture)

    def clear_all(self) -> str:
        """Remove every enrolled identity."""
        self._acquire()
        try:
            self.identity_store.clear()
        finally:
            self._operation_lock.release()
        return 'Cleared users'

    def list_names(self) -> List[str]:
        return self.identity_store.names(self.identity_store.load())

    def get_statistics(self) -> Dict[str, Any]:
        """Get session and store statistics."""
        store_stats = self.identity_store.get_statistics(self.identity_store.load())
        attempts = self.stats['attempts']

        return {
            **self.stats,
            **store_stats,
            'match_rate': self.stats['matches'] / max(1, attempts),
            'threshold': self.matcher.threshold
        }

    def reset_statistics(self):
        """Reset session statistics."""
        self.stats = self._empty_statistics()

    def close(self):
        """Release the extractor's camera, if it holds one."""
        release = getattr(self.extractor, 'release', None)
        if release is not None:
            release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
