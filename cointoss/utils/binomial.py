"""
Exact binomial helpers for the coin toss experiment.

Everything here is pure: the host view calls these on every change of the
result set, and the hypothesis test must be exact, never normal-approximated.
"""

from typing import Iterable, List

import numpy as np
from scipy.special import gammaln

# Absolute slack so the observed outcome itself survives rounding when
# compared against its own probability.
PMF_TOLERANCE = 1e-15


def _log_choose(n: int, k):
    # Evaluate on the smaller side so that C(n, k) and C(n, n-k) round identically
    k = np.minimum(k, n - k)
    return gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)


def binomial_pmf(n: int, k: int, p: float = 0.5) -> float:
    """Probability of exactly k successes in n trials with success probability p."""
    if k < 0 or k > n:
        return 0.0
    if p == 0:
        return 1.0 if k == 0 else 0.0
    if p == 1:
        return 1.0 if k == n else 0.0
    log_probability = _log_choose(n, k) + (k * np.log(p) + (n - k) * np.log(1 - p))
    return float(np.exp(log_probability))


def _pmf_vector(n: int, p: float) -> np.ndarray:
    """PMF for every outcome 0..n, following the same edge rules as binomial_pmf."""
    if p == 0 or p == 1:
        out = np.zeros(n + 1)
        out[0 if p == 0 else n] = 1.0
        return out
    ks = np.arange(n + 1, dtype=float)
    log_probability = _log_choose(n, ks) + (ks * np.log(p) + (n - ks) * np.log(1 - p))
    return np.exp(log_probability)


def binomial_p_value_two_sided(n: int, k: int, p: float = 0.5) -> float:
    """
    Two-sided exact test p-value: total probability of every outcome that is
    no more likely than the observed one.
    """
    pmfs = _pmf_vector(n, p)
    pk = pmfs[k] if 0 <= k <= n else 0.0
    total = float(np.sum(pmfs[pmfs <= pk + PMF_TOLERANCE]))
    # Summation drift can push the total a hair past 1
    return min(1.0, total)


def heads_histogram(heads_counts: Iterable[int], n: int = 20) -> List[int]:
    """Histogram of heads counts (0..n) from many submissions; out-of-range counts are skipped."""
    bins = [0] * (n + 1)
    for count in heads_counts:
        if 0 <= count <= n:
            bins[count] += 1
    return bins


def expected_distribution(n: int = 20, p: float = 0.5) -> List[float]:
    """PMF curve plotted next to the observed histogram."""
    return [float(x) for x in _pmf_vector(n, p)]


def normalized_histogram(histogram: List[int], participants: int) -> List[float]:
    if participants == 0:
        return [0.0 for _ in histogram]
    return [value / participants for value in histogram]
