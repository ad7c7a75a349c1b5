"""
Enrollment Module

Multi-sample registration as an explicit state machine:

    IDLE -> CAPTURING(sample, countdown) -> ... -> COMPLETED | ABORTED

Observers subscribe to state transitions; the flow itself knows nothing about
rendering. Samples captured before a failure stay persisted.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import DimensionMismatch, EnrollmentBusy, FaceAuthError, InputError

logger = logging.getLogger(__name__)


class EnrollmentPhase(Enum):
    IDLE = 'idle'
    CAPTURING = 'capturing'
    COMPLETED = 'completed'
    ABORTED = 'aborted'


@dataclass(frozen=True)
class EnrollmentState:
    phase: EnrollmentPhase
    name: Optional[str] = None
    sample_index: int = 0
    sample_target: int = 0
    countdown: int = 0
    sample_count: int = 0
    reason: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.phase in (EnrollmentPhase.COMPLETED, EnrollmentPhase.ABORTED)

    @property
    def status(self) -> str:
        """Short human-readable description of the state."""
        if self.phase == EnrollmentPhase.CAPTURING:
            return (f"Capturing sample {self.sample_index + 1}/{self.sample_target} "
                    f"in {self.countdown}...")
        if self.phase == EnrollmentPhase.COMPLETED:
            return f"Registered {self.name} (samples: {self.sample_count})"
        if self.phase == EnrollmentPhase.ABORTED:
            return self.reason or 'Registration aborted'
        return 'Ready'


IDLE = EnrollmentState(EnrollmentPhase.IDLE)


@dataclass(frozen=True)
class EnrollmentConfig:
    sample_count: int = 3
    per_sample_delay_ms: int = 700
    tick_count: int = 3

    def __post_init__(self):
        if self.sample_count < 1:
            raise ValueError(f"sample_count must be at least 1, got {self.sample_count}")
        if self.per_sample_delay_ms < 0:
            raise ValueError(f"per_sample_delay_ms must be non-negative, got {self.per_sample_delay_ms}")
        if self.tick_count < 0:
            raise ValueError(f"tick_count must be non-negative, got {self.tick_count}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'EnrollmentConfig':
        enrollment_config = config.get('enrollment', {})
        return cls(
            sample_count=enrollment_config.get('sample_count', 3),
            per_sample_delay_ms=enrollment_config.get('per_sample_delay_ms', 700),
            tick_count=enrollment_config.get('tick_count', 3)
        )


class EnrollmentFlow:
    """Coordinate capturing several samples for one name."""

    def __init__(self, identity_store, extractor, config: EnrollmentConfig = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize enrollment flow.

        Args:
            identity_store: IdentityStore receiving the samples
            extractor: Object with capture_embedding() -> Capture | None
            config: Sample count and countdown timing
            sleep: Delay function taking seconds
        """
        self.identity_store = identity_store
        self.extractor = extractor
        self.config = config or EnrollmentConfig()
        self._sleep = sleep

        self.state = IDLE
        self._observers: List[Callable[[EnrollmentState], None]] = []
        self._cancelled = threading.Event()
        self._running = threading.Lock()

    def subscribe(self, callback: Callable[[EnrollmentState], None]):
        """Register a callback invoked on every state transition."""
        self._observers.append(callback)

    def _transition(self, state: EnrollmentState) -> EnrollmentState:
        self.state = state
        for callback in self._observers:
            callback(state)
        return state

    def _abort(self, name: Optional[str], reason: str) -> EnrollmentState:
        logger.warning(f"Enrollment for '{name}' aborted: {reason}")
        return self._transition(EnrollmentState(EnrollmentPhase.ABORTED, name=name, reason=reason))

    def cancel(self):
        """Stop the running enrollment before its next tick or capture."""
        self._cancelled.set()

    @property
    def running(self) -> bool:
        return self._running.locked()

    def run(self, name: str) -> EnrollmentState:
        """
        Capture and persist the configured number of samples for a name.

        Args:
            name: Identity name

        Returns:
            Final COMPLETED or ABORTED state

        Raises:
            DimensionMismatch: if a sample doesn't fit the stored record; the
                flow is ABORTED before the error propagates
        """
        if not self._running.acquire(blocking=False):
            raise EnrollmentBusy("Registration already in progress")

        try:
            self._cancelled.clear()
            self.state = IDLE
            return self._run(name)
        finally:
            self._running.release()

    def _run(self, name: str) -> EnrollmentState:
        try:
            name = self.identity_store.validate_name(name)
        except InputError as e:
            return self._abort(None, str(e))

        target = self.config.sample_count
        delay = self.config.per_sample_delay_ms / 1000.0
        store = self.identity_store.load()

        logger.info(f"Starting enrollment for '{name}' ({target} samples)")

        for sample_index in range(target):
            for countdown in range(self.config.tick_count, 0, -1):
                if self._cancelled.is_set():
                    return self._abort(name, 'Cancelled')
                self._transition(EnrollmentState(
                    EnrollmentPhase.CAPTURING,
                    name=name,
                    sample_index=sample_index,
                    sample_target=target,
                    countdown=countdown
                ))
                self._sleep(delay)

            if self._cancelled.is_set():
                return self._abort(name, 'Cancelled')

            try:
                capture = self.extractor.capture_embedding()
            except Exception as e:
                self._abort(name, f"Capture failed on sample {sample_index + 1}/{target}: {e}")
                raise

            if capture is None:
                return self._abort(name, f"No face detected on sample {sample_index + 1}/{target}")

            # A cancel that arrived during capture discards this sample
            if self._cancelled.is_set():
                return self._abort(name, 'Cancelled')

            try:
                store = self.identity_store.append_sample(store, name, capture.vector)
            except DimensionMismatch as e:
                self._abort(name, str(e))
                raise
            except FaceAuthError as e:
                return self._abort(name, str(e))

        sample_count = self.identity_store.sample_count(store, name)
        logger.info(f"Enrollment for '{name}' completed ({sample_count} samples stored)")
        return self._transition(EnrollmentState(
            EnrollmentPhase.COMPLETED,
            name=name,
            sample_target=target,
            sample_count=sample_count
        ))
