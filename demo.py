#!/usr/bin/env python3
"""
FaceAuth Demo

Shows how to use the authentication service programmatically without a
camera: a scripted extractor hands out synthetic 128-d embeddings.
"""

import sys

import numpy as np

from faceauth import FaceAuthenticator
from faceauth.capture import BoundingBox, Capture


def create_demo_config():
    """Create a minimal configuration for demo."""
    return {
        'storage': {
            'backend': 'memory',
            'key': 'faceAuthUsers'
        },
        'recognition': {
            'distance_threshold': 0.6
        },
        'enrollment': {
            'sample_count': 3,
            'per_sample_delay_ms': 0,
            'tick_count': 3
        }
    }


class ScriptedExtractor:
    """Returns queued embeddings; None once the queue is empty."""

    def __init__(self):
        self.queue = []

    def push(self, *vectors):
        self.queue.extend(vectors)

    def capture_embedding(self):
        if not self.queue:
            return None
        vector = self.queue.pop(0)
        if vector is None:
            return None
        return Capture(vector=np.asarray(vector), box=BoundingBox(100, 80, 120, 120))


def demo_face_auth():
    """Demonstrate registration and authentication."""
    print("FaceAuth Demo")
    print("=" * 40)

    rng = np.random.default_rng(7)
    alice = rng.normal(0, 0.1, 128)
    bob = rng.normal(0, 0.1, 128)

    extractor = ScriptedExtractor()
    authenticator = FaceAuthenticator(create_demo_config(), extractor, sleep=lambda _: None)
    authenticator.enrollment.subscribe(lambda state: print(f"  {state.status}"))

    print("\nLogin before anyone is registered:")
    print(f"  {authenticator.authenticate().status}")

    print("\nRegistering alice (3 samples):")
    extractor.push(*(alice + rng.normal(0, 0.01, 128) for _ in range(3)))
    authenticator.register("alice")

    print("\nRegistering bob, face lost on sample 2:")
    extractor.push(bob, None)
    authenticator.register("bob")

    print(f"\nRegistered users: {authenticator.list_names()}")

    print("\nAlice logs in:")
    extractor.push(alice + rng.normal(0, 0.01, 128))
    print(f"  {authenticator.authenticate().status}")

    print("\nA stranger tries:")
    extractor.push(rng.normal(0, 0.1, 128))
    print(f"  {authenticator.authenticate().status}")

    stats = authenticator.get_statistics()
    print("\nStatistics:")
    print(f"- Attempts: {stats['attempts']}")
    print(f"- Matches: {stats['matches']}")
    print(f"- Identities: {stats['total_identities']} ({stats['total_samples']} samples)")

    print(f"\n{authenticator.clear_all()}")
    print("\nDemo completed successfully!")


if __name__ == '__main__':
    sys.exit(demo_face_auth())
