"""
Tests for per-source outlier detection, vote aggregation and confidence.

Tests cover:
- IQR cutoff and the MAD fallback
- Strict-greater inclusion
- Plain and confidence-weighted vote fusion
- Confidence clamping
"""

import numpy as np
import pytest

from tapd_sdn.core.outlier import OutlierDetector
from tapd_sdn.core.voting import ConfidenceEstimator, VoteAggregator
from tapd_sdn.exceptions import InputInvalidError


# =============================================================================
# OutlierDetector Tests
# =============================================================================


class TestOutlierDetector:
    """Tests for OutlierDetector."""

    def test_mad_fallback_flags_single_spike(self):
        """Zero IQR falls back to MAD; only the spike exceeds q3."""
        detector = OutlierDetector(eta=1.5)
        row = [0.1, 0.1, 0.1, 0.1, 0.9]
        assert detector.cutoff(row) == pytest.approx(0.1)
        assert detector.detect(row) == {4}

    def test_iqr_cutoff(self):
        """Cutoff is q3 + eta * iqr."""
        detector = OutlierDetector(eta=1.0)
        row = [0.0, 0.1, 0.2, 0.3, 1.0]
        # q1 = 0.1, q3 = 0.3, omega = 0.5
        assert detector.cutoff(row) == pytest.approx(0.5)
        assert detector.detect(row) == {4}

    def test_all_equal_row_is_empty(self):
        detector = OutlierDetector(eta=0.1)
        assert detector.detect([0.25] * 6) == set()

    def test_empty_row_is_empty(self):
        assert OutlierDetector().detect([]) == set()

    def test_value_equal_to_cutoff_not_flagged(self):
        """Inclusion is strictly greater than the cutoff."""
        detector = OutlierDetector(eta=0.0)
        row = [0.1, 0.2, 0.3, 0.4, 0.5]
        # omega = q3 = 0.4
        assert detector.detect(row) == {4}

    def test_negative_eta_rejected(self):
        with pytest.raises(ValueError):
            OutlierDetector(eta=-0.1)

    def test_detect_all_one_set_per_row(self):
        detector = OutlierDetector(eta=1.5)
        errors = np.array(
            [
                [0.1, 0.1, 0.1, 0.1, 0.9],
                [0.2, 0.2, 0.2, 0.2, 0.2],
                [0.8, 0.1, 0.1, 0.1, 0.1],
            ]
        )
        assert detector.detect_all(errors) == [{4}, set(), {0}]


# =============================================================================
# VoteAggregator Tests
# =============================================================================


@pytest.fixture
def votes():
    """Votes from four sources."""
    return [{1, 2}, {2}, {2, 3}, set()]


class TestVoteAggregator:
    """Tests for VoteAggregator."""

    def test_frequencies(self, votes):
        assert VoteAggregator().aggregate(votes) == {1: 1, 2: 3, 3: 1}

    def test_no_votes(self):
        assert VoteAggregator().aggregate([set(), set()]) == {}

    def test_weighted_frequencies(self, votes):
        weighted = VoteAggregator().weighted_aggregate(votes, [1.0, 0.2, 0.8, 0.5])
        assert weighted == pytest.approx({1: 1.0, 2: 2.0, 3: 0.8})

    def test_sources_beyond_votes_contribute_nothing(self):
        weighted = VoteAggregator().weighted_aggregate([{0}], [0.5, 0.9, 0.9])
        assert weighted == {0: 0.5}

    def test_more_votes_than_confidences_rejected(self, votes):
        with pytest.raises(InputInvalidError):
            VoteAggregator().weighted_aggregate(votes, [1.0, 1.0])


# =============================================================================
# ConfidenceEstimator Tests
# =============================================================================


class TestConfidenceEstimator:
    """Tests for ConfidenceEstimator."""

    def test_one_minus_mean_error(self):
        errors = np.array([[0.0, 0.2], [0.5, 0.5]])
        confidence = ConfidenceEstimator().compute(errors)
        assert confidence == pytest.approx([0.9, 0.5])

    def test_clamped_at_zero(self):
        """Mean error above 1 cannot produce a negative weight."""
        confidence = ConfidenceEstimator().compute([[1.5, 1.5]])
        assert confidence[0] == 0.0

    def test_empty_row_full_confidence(self):
        confidence = ConfidenceEstimator().compute([[]])
        assert confidence[0] == 1.0
