"""
Test cases for Face Matching Module
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from faceauth.errors import DimensionMismatch, NoIdentitiesEnrolled
from faceauth.matcher import FaceMatcher, MatchResult, euclidean_distance
from fakes import one_hot


class TestFaceMatcher:
    """Test cases for FaceMatcher class."""

    @pytest.fixture
    def matcher(self):
        return FaceMatcher(threshold=0.6)

    @pytest.fixture
    def store(self):
        return {
            'alice': [one_hot(0)],
            'bob': [one_hot(1), one_hot(2)]
        }

    def test_exact_sample_matches_with_zero_distance(self, matcher):
        result = matcher.find_best_match(one_hot(0), {'alice': [one_hot(0)]})
        assert result == MatchResult(distance=0.0, name='alice')
        assert result.matched

    def test_reflexive_for_zero_threshold(self):
        sample = np.random.default_rng(0).normal(size=128)
        result = FaceMatcher(threshold=0.0).find_best_match(sample.copy(), {'alice': [sample]})
        assert result.name == 'alice'
        assert result.distance == 0.0

    def test_far_query_is_unknown(self, matcher):
        query = one_hot(0) + one_hot(1, value=0.8)
        result = matcher.find_best_match(query, {'alice': [one_hot(0)]})

        assert not result.matched
        assert result.name is None
        assert result.label == 'unknown'
        assert result.distance == pytest.approx(0.8)

    def test_best_sample_not_centroid(self, matcher):
        """A query equal to one sample scores 0 however far the others are."""
        store = {'alice': [one_hot(0, value=50.0), one_hot(1)]}
        result = matcher.find_best_match(one_hot(1), store)

        assert result.name == 'alice'
        assert result.distance == 0.0

    def test_global_minimum_across_identities(self, matcher, store):
        query = one_hot(2) + one_hot(5, value=0.1)
        result = matcher.find_best_match(query, store)

        assert result.name == 'bob'
        assert result.distance == pytest.approx(0.1)

    def test_tie_resolves_to_first_enrolled(self, matcher):
        query = one_hot(3, value=0.2)
        first = {'bob': [np.zeros(128)], 'alice': [np.zeros(128)]}
        second = {'alice': [np.zeros(128)], 'bob': [np.zeros(128)]}

        assert matcher.find_best_match(query, first).name == 'bob'
        assert matcher.find_best_match(query, second).name == 'alice'

    def test_threshold_boundary_is_inclusive(self):
        matcher = FaceMatcher(threshold=0.5)
        store = {'alice': [np.zeros(128)]}

        at_threshold = matcher.find_best_match(one_hot(0, value=0.5), store)
        assert at_threshold.matched
        assert at_threshold.distance == 0.5

        beyond = matcher.find_best_match(one_hot(0, value=0.5 + 1e-6), store)
        assert not beyond.matched

    def test_default_threshold_boundary(self, matcher):
        store = {'alice': [np.zeros(128)]}
        assert matcher.find_best_match(one_hot(0, value=0.6), store).matched
        assert not matcher.find_best_match(one_hot(0, value=0.61), store).matched

    def test_empty_sample_lists_are_skipped(self, matcher):
        store = {'ghost': [], 'alice': [one_hot(0)]}
        assert matcher.find_best_match(one_hot(0), store).name == 'alice'

    def test_no_identities_raises(self, matcher):
        with pytest.raises(NoIdentitiesEnrolled):
            matcher.find_best_match(one_hot(0), {})
        with pytest.raises(NoIdentitiesEnrolled):
            matcher.find_best_match(one_hot(0), {'ghost': []})

    def test_dimension_mismatch_fails_loudly(self, matcher, store):
        with pytest.raises(DimensionMismatch) as excinfo:
            matcher.find_best_match(np.zeros(64), store)
        assert excinfo.value.expected == 128
        assert excinfo.value.actual == 64
        assert excinfo.value.name == 'alice'

    def test_invalid_query_rejected(self, matcher, store):
        with pytest.raises(ValueError):
            matcher.find_best_match(np.zeros((2, 64)), store)

    def test_store_not_mutated(self, matcher, store):
        before = {name: [s.copy() for s in samples] for name, samples in store.items()}
        matcher.find_best_match(one_hot(4), store)

        assert list(store.keys()) == list(before.keys())
        for name in store:
            for sample, original in zip(store[name], before[name]):
                np.testing.assert_array_equal(sample, original)

    def test_has_candidates(self, matcher):
        assert not matcher.has_candidates({})
        assert not matcher.has_candidates({'ghost': []})
        assert matcher.has_candidates({'ghost': [], 'alice': [one_hot(0)]})

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            FaceMatcher(threshold=-0.1)

    def test_from_config(self):
        assert FaceMatcher.from_config({}).threshold == 0.6
        assert FaceMatcher.from_config({'recognition': {'distance_threshold': 0.45}}).threshold == 0.45


class TestEuclideanDistance:

    def test_symmetric(self):
        rng = np.random.default_rng(42)
        for _ in range(5):
            a, b = rng.normal(size=128), rng.normal(size=128)
            assert euclidean_distance(a, b) == euclidean_distance(b, a)

    def test_known_value(self):
        assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == 5.0
        assert euclidean_distance(one_hot(7), one_hot(7)) == 0.0

    def test_mismatch(self):
        with pytest.raises(DimensionMismatch):
            euclidean_distance(np.zeros(128), np.zeros(127))


def test_match_result_string():
    assert str(MatchResult(distance=0.4213, name='alice')) == 'alice (0.42)'
    assert str(MatchResult(distance=0.8)) == 'unknown (0.80)'
