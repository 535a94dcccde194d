import math

import pytest
from scipy import stats

from cointoss.utils.binomial import (
    binomial_pmf,
    binomial_p_value_two_sided,
    expected_distribution,
    heads_histogram,
    normalized_histogram,
)


class TestPmf:

    @pytest.mark.parametrize('n', [1, 2, 7, 20, 60, 301])
    def test_symmetric_under_fair_coin(self, n):
        for k in range(n + 1):
            assert binomial_pmf(n, k, 0.5) == binomial_pmf(n, n - k, 0.5)

    @pytest.mark.parametrize('p', [0.1, 0.5, 0.9])
    @pytest.mark.parametrize('n', [0, 1, 20, 500])
    def test_sums_to_one(self, n, p):
        total = sum(binomial_pmf(n, k, p) for k in range(n + 1))
        assert total == pytest.approx(1.0, abs=1e-9)

    def test_matches_scipy(self):
        for n, k, p in [(20, 10, 0.5), (20, 3, 0.3), (100, 71, 0.7), (1000, 480, 0.5)]:
            assert binomial_pmf(n, k, p) == pytest.approx(stats.binom.pmf(k, n, p), rel=1e-9)

    def test_out_of_range_is_zero(self):
        assert binomial_pmf(20, -1, 0.5) == 0.0
        assert binomial_pmf(20, 21, 0.5) == 0.0

    def test_degenerate_probabilities(self):
        assert binomial_pmf(10, 0, 0) == 1.0
        assert binomial_pmf(10, 1, 0) == 0.0
        assert binomial_pmf(10, 10, 1) == 1.0
        assert binomial_pmf(10, 9, 1) == 0.0

    def test_large_n_is_finite(self):
        value = binomial_pmf(5000, 2500, 0.5)
        assert math.isfinite(value)
        assert value == pytest.approx(stats.binom.pmf(2500, 5000, 0.5), rel=1e-8)


class TestPValue:

    @pytest.mark.parametrize('n', [2, 20, 60, 1000])
    def test_mode_has_p_value_one(self, n):
        assert binomial_p_value_two_sided(n, n // 2, 0.5) == pytest.approx(1.0)

    def test_never_exceeds_one(self):
        for n in (1, 19, 20, 333):
            for k in range(n + 1):
                assert 0.0 <= binomial_p_value_two_sided(n, k, 0.5) <= 1.0

    def test_symmetric_extremes(self):
        low = binomial_p_value_two_sided(20, 0, 0.5)
        high = binomial_p_value_two_sided(20, 20, 0.5)
        assert low == high
        assert low == pytest.approx(2 * 0.5 ** 20, rel=1e-9)

    def test_matches_scipy_binomtest(self):
        for n, k in [(20, 5), (20, 14), (60, 21), (200, 117)]:
            expected = stats.binomtest(k, n, 0.5, alternative='two-sided').pvalue
            assert binomial_p_value_two_sided(n, k, 0.5) == pytest.approx(expected, rel=1e-9)

    def test_out_of_range_observation(self):
        # PMF of an impossible outcome is 0, so only outcomes that are numerically 0 count
        assert binomial_p_value_two_sided(20, 25, 0.5) == 0.0

    def test_degenerate_probability(self):
        assert binomial_p_value_two_sided(10, 0, 0) == 1.0
        assert binomial_p_value_two_sided(10, 3, 0) == pytest.approx(0.0)


class TestHistogram:

    def test_empty(self):
        assert heads_histogram([], 20) == [0] * 21

    def test_counts(self):
        bins = heads_histogram([0, 20, 20, 5], 20)
        assert bins[20] == 2
        assert bins[0] == 1
        assert bins[5] == 1
        assert sum(bins) == 4

    def test_out_of_range_ignored(self):
        assert heads_histogram([-1, 21, 3], 20) == heads_histogram([3], 20)

    def test_normalized(self):
        assert normalized_histogram([0, 2, 2], 4) == [0.0, 0.5, 0.5]
        assert normalized_histogram([0, 0, 0], 0) == [0.0, 0.0, 0.0]

    def test_expected_distribution(self):
        curve = expected_distribution(20, 0.5)
        assert len(curve) == 21
        assert sum(curve) == pytest.approx(1.0)
        assert curve[10] == pytest.approx(binomial_pmf(20, 10, 0.5))
