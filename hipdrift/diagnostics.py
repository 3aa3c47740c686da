"""
hipdrift — Stimulus Diagnostics
===============================
Statistical checks on generated stimuli:

* **Similarity profile** — mean normalized overlap between chain elements
  as a function of index distance (lag).  For a chain of rate ``r`` it
  should fall roughly like ``(1 - r)**lag`` towards the chance level
  ``n_on / size``.
* **Monte-Carlo profile** — the same curve averaged over many freshly
  seeded chains, used to verify that decay is monotonic in expectation.
* **Pairwise difference audit** — the smallest ``n_on - overlap`` over all
  pairs of a vector set, to confirm a min-difference floor.
"""

import numpy as np

from .drift import generate_chain
from .pool import permuted_binary
from .utils import n_differing


# ─────────────────────────────────────────────────────────────────────
# Drift similarity
# ─────────────────────────────────────────────────────────────────────

def similarity_profile(chains, max_lag):
    """
    Mean similarity at lags ``0..max_lag`` pooled over *chains*.

    Returns
    -------
    lags : (max_lag + 1,) int array
    mean : (max_lag + 1,) float array, NaN where no pair exists
    """
    lags = np.arange(max_lag + 1)
    sums = np.zeros(max_lag + 1)
    counts = np.zeros(max_lag + 1)
    for chain in chains:
        M = chain.as_array() if hasattr(chain, "as_array") else np.vstack(chain)
        n_on = M[0].sum()
        L = len(M)
        for lag in range(min(max_lag + 1, L)):
            ov = (M[:L - lag] * M[lag:]).sum(axis=1) / n_on
            sums[lag] += ov.sum()
            counts[lag] += ov.size
    mean = np.full(max_lag + 1, np.nan)
    valid = counts > 0
    mean[valid] = sums[valid] / counts[valid]
    return lags, mean


def monte_carlo_similarity(rate, length, n_chains, size, n_on, rng, max_lag=None):
    """
    Similarity profile averaged over *n_chains* independently seeded chains.
    """
    max_lag = length - 1 if max_lag is None else max_lag
    chains = [generate_chain(permuted_binary(size, n_on, rng), length, rate, rng)
              for _ in range(n_chains)]
    return similarity_profile(chains, max_lag)


def rate_family_profiles(rates, length, n_chains, size, n_on, rng, max_lag=None):
    """``{rate: (lags, mean)}`` for several decay rates."""
    return {r: monte_carlo_similarity(r, length, n_chains, size, n_on, rng, max_lag)
            for r in rates}


def chance_similarity(size, n_on):
    """Expected similarity of two independent permuted-binary vectors."""
    return n_on / size


# ─────────────────────────────────────────────────────────────────────
# Pairwise difference audit
# ─────────────────────────────────────────────────────────────────────

def pairwise_difference_matrix(vectors):
    """(n, n) matrix of ``n_differing`` between every pair (diagonal 0)."""
    n = len(vectors)
    D = np.zeros((n, n), dtype=int)
    for i in range(n):
        for j in range(i + 1, n):
            D[i, j] = D[j, i] = n_differing(vectors[i], vectors[j])
    return D


def min_pairwise_difference(vectors):
    """Smallest difference over all pairs; None for fewer than two vectors."""
    if len(vectors) < 2:
        return None
    D = pairwise_difference_matrix(vectors)
    return int(D[np.triu_indices(len(vectors), k=1)].min())
