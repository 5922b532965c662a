"""
Tests for the statistics kernel.

Tests cover:
- Linear-interpolation percentile and its clamping
- Median and MAD
- The (n+1) percentile convention used by the adaptive decision
- Robust ceil of fractional counts
"""

import pytest

from tapd_sdn.core.stats import ceil_fraction, mad, median, percentile, percentile_exclusive


class TestPercentile:
    """Tests for percentile()."""

    def test_quartiles_of_one_to_five(self):
        """Known quartiles of [1..5]."""
        assert percentile([1, 2, 3, 4, 5], 25) == 2.0
        assert percentile([1, 2, 3, 4, 5], 75) == 4.0

    def test_interpolates_between_ranks(self):
        """Rank 0.75 between 10 and 20."""
        assert percentile([10, 20], 75) == pytest.approx(17.5)

    def test_order_independent(self):
        """Input order does not matter."""
        assert percentile([5, 1, 4, 2, 3], 25) == percentile([1, 2, 3, 4, 5], 25)

    def test_empty_returns_zero(self):
        """Empty input yields 0.0."""
        assert percentile([], 50) == 0.0

    def test_single_value(self):
        """Every percentile of one value is that value."""
        assert percentile([0.3], 0) == 0.3
        assert percentile([0.3], 100) == 0.3

    def test_p_is_clamped(self):
        """Percentiles outside [0, 100] clamp to min and max."""
        assert percentile([1, 2, 3], -10) == 1.0
        assert percentile([1, 2, 3], 250) == 3.0

    def test_does_not_mutate_input(self):
        """A sorted copy is used."""
        values = [3.0, 1.0, 2.0]
        percentile(values, 50)
        assert values == [3.0, 1.0, 2.0]


class TestMedianAndMad:
    """Tests for median() and mad()."""

    def test_median_odd_and_even(self):
        assert median([3, 1, 2]) == 2.0
        assert median([1, 2, 3, 4]) == 2.5

    def test_mad_known_value(self):
        """MAD of [1, 1, 2, 2, 4] is 1."""
        assert mad([1, 1, 2, 2, 4]) == 1.0

    def test_mad_constant_is_zero(self):
        assert mad([0.4] * 7) == 0.0

    def test_mad_empty_is_zero(self):
        assert mad([]) == 0.0


class TestPercentileExclusive:
    """Tests for the (n+1) position convention."""

    def test_low_position_returns_minimum(self):
        """pos = 0.25 * 4 = 1 returns the smallest value."""
        assert percentile_exclusive([0.8, 1.0, 2.0], 25) == 0.8

    def test_high_position_returns_maximum(self):
        """pos = 0.75 * 4 = 3 = n returns the largest value."""
        assert percentile_exclusive([0.8, 1.0, 2.0], 75) == 2.0

    def test_interior_interpolation(self):
        """n=7, p=25: pos=2, value s[1]."""
        values = [1, 2, 3, 4, 5, 6, 7]
        assert percentile_exclusive(values, 25) == 2.0
        # pos = 0.5 * 8 = 4 -> s[3]
        assert percentile_exclusive(values, 50) == 4.0

    def test_fractional_position(self):
        """n=4, p=50: pos=2.5 halfway between s[1] and s[2]."""
        assert percentile_exclusive([1, 2, 3, 4], 50) == pytest.approx(2.5)

    def test_differs_from_inclusive_convention(self):
        """The two conventions disagree on small samples."""
        values = [1, 2, 3, 4, 5]
        assert percentile_exclusive(values, 25) == pytest.approx(1.5)
        assert percentile(values, 25) == 2.0

    def test_empty_returns_zero(self):
        assert percentile_exclusive([], 75) == 0.0


class TestCeilFraction:
    """Tests for ceil_fraction()."""

    @pytest.mark.parametrize(
        "fraction, n, expected",
        [
            (0.1, 30, 3),
            (0.1, 6, 1),
            (0.2, 10, 2),
            (0.2, 11, 3),
            (0.0, 50, 0),
            (1.0, 7, 7),
            (0.7, 10, 7),
        ],
    )
    def test_known_counts(self, fraction, n, expected):
        assert ceil_fraction(fraction, n) == expected
