"""
hipdrift — Shared Utilities
===========================
Small helpers used across the pool, drift, diagnostics and plotting modules.
"""

import numpy as np


def _readonly(v):
    """Return a read-only float copy of *v*."""
    arr = np.array(v, dtype=float)
    arr.flags.writeable = False
    return arr


def overlap(a, b):
    """Number of components active in both *a* and *b*."""
    return int(np.count_nonzero((np.asarray(a) > 0) & (np.asarray(b) > 0)))


def n_differing(a, b):
    """
    Active components of *a* that are not active in *b*.

    For two vectors with equal active counts this is symmetric and equals
    ``n_active - overlap``.
    """
    return int(np.count_nonzero(a)) - overlap(a, b)


def similarity(a, b):
    """Overlap normalized by the active count of *a* (1.0 = identical)."""
    n = int(np.count_nonzero(a))
    if n == 0:
        return np.nan
    return overlap(a, b) / n


def sweep_key(value):
    """Dictionary key ``sweep_one_param`` files a grid value under."""
    return tuple(value) if isinstance(value, list) else value


def sweep_entry(sweep_results, value):
    """
    Look up the result for one grid value.

    List values are matched by their tuple key; numeric values also match a
    key within 1e-12, so a grid rebuilt with ``np.asarray`` still lines up.
    """
    key = sweep_key(value)
    if key in sweep_results:
        return sweep_results[key]
    if isinstance(key, (int, float, np.number)) and not isinstance(key, bool):
        for k, entry in sweep_results.items():
            if isinstance(k, (int, float, np.number)) and abs(float(k) - float(key)) <= 1e-12:
                return entry
    raise KeyError(f"no sweep entry for {value!r}")
