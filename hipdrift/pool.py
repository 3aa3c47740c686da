"""
hipdrift — Feature Vector Pool
==============================
Random sparse binary feature vectors and the named pool that owns them.

Every stimulus slot (cue, target, context seed) is drawn from a pool.  Vectors
are created with an exact active count, and vectors created *together* under
the min-difference generator are guaranteed to differ in at least
``ceil(min_diff_pct * n_on)`` active components.
"""

import logging
import math

import numpy as np

from .errors import ConfigurationError
from .utils import _readonly, n_differing

logger = logging.getLogger(__name__)

MAX_TRIES = 100


def min_diff_count(min_diff_pct, n_on):
    """Smallest number of differing active components implied by a fraction."""
    return int(math.ceil(min_diff_pct * n_on - 1e-9))


def permuted_binary(size, n_on, rng):
    """One vector of length *size* with exactly *n_on* randomly placed ones."""
    if not 0 <= n_on <= size:
        raise ConfigurationError(f"cannot place {n_on} active components in {size}")
    v = np.zeros(size)
    v[rng.permutation(size)[:n_on]] = 1.0
    return v


def permuted_binary_min_diff(n, size, n_on, min_diff, rng, max_tries=MAX_TRIES):
    """
    Generate *n* permuted-binary vectors that pairwise differ in at least
    *min_diff* active components.

    Offending vectors are reshuffled until every pair satisfies the floor.

    Parameters
    ----------
    n : int
        Number of vectors.
    size, n_on : int
        Vector length and active count.
    min_diff : int
        Required ``n_on - overlap`` for every pair.
    rng : numpy.random.Generator
    max_tries : int
        Full passes over all pairs before giving up.

    Returns
    -------
    list of (size,) arrays
    """
    if min_diff > n_on:
        raise ConfigurationError(
            f"min_diff={min_diff} exceeds the {n_on} active components per vector")
    vecs = [permuted_binary(size, n_on, rng) for _ in range(n)]
    if min_diff <= 0:
        return vecs

    for attempt in range(max_tries):
        clean = True
        for i in range(n):
            for j in range(i + 1, n):
                if n_differing(vecs[i], vecs[j]) < min_diff:
                    vecs[j] = permuted_binary(size, n_on, rng)
                    clean = False
        if clean:
            if attempt:
                logger.debug("min-diff pool of %d settled after %d reshuffle passes",
                             n, attempt)
            return vecs

    raise ConfigurationError(
        f"could not generate {n} vectors of {n_on}/{size} active differing by "
        f">= {min_diff} after {max_tries} passes")


class VectorPool:
    """
    Named library of sparse binary feature vectors.

    ``pool[name]`` is a tuple of read-only vectors.  Entries are written once;
    re-using a name is a configuration error.
    """

    def __init__(self, size, n_on, min_diff_pct=0.0):
        if not 0 < n_on <= size:
            raise ConfigurationError(f"pool needs 0 < n_on <= size, got {n_on}/{size}")
        self.size = size
        self.n_on = n_on
        self.min_diff_pct = min_diff_pct
        self._entries = {}

    @classmethod
    def from_config(cls, config):
        return cls(config.slot_size, config.n_active, config.min_diff_pct)

    @property
    def min_diff(self):
        return min_diff_count(self.min_diff_pct, self.n_on)

    def __getitem__(self, name):
        try:
            return self._entries[name]
        except KeyError:
            raise ConfigurationError(f"pool has no entry {name!r}") from None

    def __contains__(self, name):
        return name in self._entries

    def __len__(self):
        return len(self._entries)

    def names(self):
        return list(self._entries)

    def add(self, name, vectors):
        """Store externally built vectors after checking shape and sparsity."""
        if name in self._entries:
            raise ConfigurationError(f"pool entry {name!r} already exists")
        frozen = []
        for v in vectors:
            v = np.asarray(v, dtype=float)
            if v.shape != (self.size,):
                raise ConfigurationError(
                    f"pool entry {name!r}: vector shape {v.shape} != ({self.size},)")
            if int(np.count_nonzero(v)) != self.n_on:
                raise ConfigurationError(
                    f"pool entry {name!r}: vector has {np.count_nonzero(v)} active, "
                    f"expected {self.n_on}")
            frozen.append(_readonly(v))
        self._entries[name] = tuple(frozen)
        return self._entries[name]

    def generate(self, name, n, rng):
        """Create *n* mutually min-different vectors under *name*."""
        return self.generate_group({name: n}, rng)[name]

    def generate_group(self, counts, rng):
        """
        Create several entries at once, min-different across all of them.

        Parameters
        ----------
        counts : mapping
            ``name -> number of vectors``, in insertion order.
        rng : numpy.random.Generator

        Returns
        -------
        dict name -> tuple of vectors
        """
        total = sum(counts.values())
        vecs = permuted_binary_min_diff(total, self.size, self.n_on, self.min_diff, rng)
        out = {}
        start = 0
        for name, n in counts.items():
            out[name] = self.add(name, vecs[start:start + n])
            start += n
        return out

    def random_vector(self, rng):
        """A fresh permuted-binary vector with the pool's sparsity (not stored)."""
        return _readonly(permuted_binary(self.size, self.n_on, rng))
