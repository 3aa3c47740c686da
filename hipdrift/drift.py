"""
hipdrift — Temporal-Context Drift Chains
========================================
A drift chain is an ordered run of sparse binary vectors ``v[0..L-1]`` where
each ``v[i]`` is a perturbed copy of ``v[i-1]`` (``v[-1]`` being the seed).

Each step replaces every active component with probability ``r``: a binomial
number ``m`` of active components switch off and ``m`` previously inactive
components switch on, so the active count never changes.  The expected
overlap between ``v[i]`` and ``v[i+k]`` therefore falls off roughly like
``(1 - r)**k``, flattening at the chance level of two random vectors.

Generation is a pure function of ``(seed, length, rate, rng state)``.  The
chain remembers the generator state after every element, which is what lets
``derive_chain`` resume drifting from any element bit-for-bit.
"""

import copy
import logging
from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError
from .pool import permuted_binary
from .utils import _readonly, similarity

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# RNG cursor helpers
# ─────────────────────────────────────────────────────────────────────

def _snapshot(rng):
    return copy.deepcopy(rng.bit_generator.state)


def _restore(state):
    """Build a fresh Generator positioned at a saved bit-generator state."""
    bit_gen = getattr(np.random, state["bit_generator"])()
    bit_gen.state = copy.deepcopy(state)
    return np.random.Generator(bit_gen)


# ─────────────────────────────────────────────────────────────────────
# Chain container
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class DriftChain:
    """
    Immutable result of ``generate_chain``.

    Attributes
    ----------
    seed : (n,) array
        The vector the first step drifted away from.
    vectors : tuple of (n,) arrays
        Read-only chain elements.
    rate : float
        Per-step replacement probability.
    cursors : tuple of dict
        Bit-generator state right after producing each element.
    """

    seed: np.ndarray
    vectors: tuple
    rate: float
    cursors: tuple

    def __len__(self):
        return len(self.vectors)

    def __getitem__(self, idx):
        return self.vectors[idx]

    def __iter__(self):
        return iter(self.vectors)

    def as_array(self):
        """(L, n) copy of the chain."""
        return np.vstack(self.vectors)

    def rng_at(self, offset):
        """Generator positioned where the original generator stood after ``self[offset]``."""
        return _restore(self.cursors[offset])

    def lag_similarity(self, lag):
        """Mean similarity of all element pairs *lag* steps apart."""
        if not 0 <= lag < len(self):
            return np.nan
        vals = [similarity(self.vectors[i], self.vectors[i + lag])
                for i in range(len(self) - lag)]
        return float(np.mean(vals))


# ─────────────────────────────────────────────────────────────────────
# Generation
# ─────────────────────────────────────────────────────────────────────

def drift_step(v, rate, rng):
    """
    One drift step: swap a binomial(n_on, rate) number of active components
    for the same number of currently inactive ones.
    """
    on = np.flatnonzero(v > 0)
    off = np.flatnonzero(v <= 0)
    m = min(int(rng.binomial(len(on), rate)), len(off))
    out = np.array(v, dtype=float)
    if m:
        out[rng.choice(on, size=m, replace=False)] = 0.0
        out[rng.choice(off, size=m, replace=False)] = 1.0
    return out


def _check_chain_args(seed, length, rate):
    if length < 1:
        raise ConfigurationError(f"drift chain length must be >= 1, got {length}")
    if not 0.0 < rate <= 1.0:
        raise ConfigurationError(f"drift rate must be in (0, 1], got {rate}")
    if seed.ndim != 1 or not np.any(seed > 0):
        raise ConfigurationError("drift seed must be a 1-D vector with active components")


def generate_chain(seed, length, rate, rng):
    """
    Drift *length* steps away from *seed*.

    Parameters
    ----------
    seed : (n,) array
        Starting vector; its active count is preserved exactly.
    length : int
        Number of elements ``L >= 1``.
    rate : float
        Replacement probability per active component per step, in (0, 1].
        Rates near 1 decorrelate within a step or two; that is allowed.
    rng : numpy.random.Generator
        Consumed in place.

    Returns
    -------
    DriftChain
    """
    seed = np.asarray(seed, dtype=float)
    _check_chain_args(seed, length, rate)
    if rate >= 1.0:
        logger.warning("drift rate %.3g replaces every active component each step", rate)
    elif rate >= 0.5:
        logger.debug("drift rate %.3g decorrelates the chain within a few steps", rate)

    vectors = []
    cursors = []
    v = seed
    for _ in range(length):
        v = drift_step(v, rate, rng)
        vectors.append(_readonly(v))
        cursors.append(_snapshot(rng))
    return DriftChain(seed=_readonly(seed), vectors=tuple(vectors),
                      rate=float(rate), cursors=tuple(cursors))


def derive_chain(chain, offset, length, rate=None, rng=None):
    """
    Continue drifting from ``chain[offset]``.

    With the default ``rng=None`` the generator is restored to the state it
    had right after ``chain[offset]`` was produced, so the derived chain
    reproduces ``chain[offset + 1:]`` element-for-element wherever the two
    overlap and keeps going past the end of the original.

    Parameters
    ----------
    chain : DriftChain
    offset : int
        Index of the element used as the new seed (negative indices allowed).
    length : int
        Length of the derived chain.
    rate : float, optional
        Defaults to ``chain.rate``.
    rng : numpy.random.Generator, optional
        Explicit generator to drift with instead of the stored cursor.
    """
    n = len(chain)
    if not -n <= offset < n:
        raise IndexError(f"offset {offset} outside chain of length {n}")
    offset %= n
    if rng is None:
        rng = chain.rng_at(offset)
    return generate_chain(chain[offset], length,
                          chain.rate if rate is None else rate, rng)


# ─────────────────────────────────────────────────────────────────────
# Multi-rate context channels
# ─────────────────────────────────────────────────────────────────────

def channel_rates(r0, base, n_channels):
    """Decay-rate family ``r0 / base**k`` for ``k = 0..n_channels-1``."""
    return tuple(r0 / base ** k for k in range(n_channels))


def context_channels(length, r0, base, n_channels, size, n_on, rng):
    """
    Build *n_channels* independently drifting chains sharing one RNG stream.

    Each channel gets its own freshly sampled seed, drawn from the same
    generator just before that channel is drifted, so seeds are statistically
    decorrelated while the whole family stays reproducible from one seed.

    Returns
    -------
    tuple of DriftChain, fastest first
    """
    chains = []
    for rate in channel_rates(r0, base, n_channels):
        seed = permuted_binary(size, n_on, rng)
        chains.append(generate_chain(seed, length, rate, rng))
    return tuple(chains)


def derive_channels(chains, offset, length):
    """``derive_chain`` applied to every channel of a context family."""
    return tuple(derive_chain(c, offset, length) for c in chains)
