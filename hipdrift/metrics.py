"""
hipdrift — Recall Metrics
=========================
Aggregate statistics over the raw outputs of ``run_experiment``: learning
curves, recall accuracy per test set, condition summaries and sweep-aligned
scalar extraction.
"""

import numpy as np

from .utils import sweep_entry


# ─────────────────────────────────────────────────────────────────────
# Learning curves & recall accuracy
# ─────────────────────────────────────────────────────────────────────

def learning_curve(train_hits):
    """Mean memory-hit rate per study epoch, averaged over runs."""
    train_hits = np.asarray(train_hits, dtype=float)
    if train_hits.size == 0:
        return np.array([])
    return np.nanmean(train_hits, axis=0)


def recall_accuracy(test_hits):
    """
    Mean recall accuracy for one test set.

    *test_hits* is the (n_runs,) array of per-run hit rates.
    """
    arr = np.asarray(test_hits, dtype=float)
    arr = arr[np.isfinite(arr)]
    return float(np.mean(arr)) if arr.size else np.nan


def sem(values):
    """Standard error of the mean, ignoring NaNs (NaN below two values)."""
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size < 2:
        return np.nan
    return float(np.std(arr, ddof=1) / np.sqrt(arr.size))


def stats_table(records, train=None):
    """
    Stack per-trial statistics into arrays.

    Returns
    -------
    dict with ``sse``, ``memory_hit``, ``false_alarm_rate``, ``miss_rate``,
    ``associative_error`` arrays.
    """
    recs = [r for r in records if train is None or r.train == train]
    fields = ("sse", "memory_hit", "false_alarm_rate", "miss_rate", "associative_error")
    return {f: np.array([getattr(r.stats, f) for r in recs], dtype=float) for f in fields}


def mean_assoc_error_by_epoch(records, n_epochs):
    """Training associative error per epoch, pooled over runs and items."""
    out = np.full(n_epochs, np.nan)
    for e in range(n_epochs):
        vals = [r.stats.associative_error for r in records if r.train and r.epoch == e]
        if vals:
            out[e] = np.mean(vals)
    return out


# ─────────────────────────────────────────────────────────────────────
# Condition summaries
# ─────────────────────────────────────────────────────────────────────

def summarise_condition(results):
    """
    Per-test-set accuracy for one ``run_experiment`` result.

    Returns
    -------
    dict test_set -> {"mean": float, "sem": float, "n_runs": int}
    """
    out = {}
    for name, hits in results["test_hits"].items():
        arr = np.asarray(hits, dtype=float)
        out[name] = {
            "mean": recall_accuracy(arr),
            "sem": sem(arr),
            "n_runs": int(np.count_nonzero(np.isfinite(arr))),
        }
    return out


def summary_rows(condition_results):
    """
    Flatten ``{condition_id: results}`` into run-summary rows.
    """
    rows = []
    for cond_id, results in condition_results.items():
        for test_set, s in summarise_condition(results).items():
            rows.append({"Condition": cond_id, "TestSet": test_set, "NRuns": s["n_runs"],
                         "MeanHit": f"{s['mean']:.6g}", "SemHit": f"{s['sem']:.6g}"})
    return rows


def sweep_scalar_metric_array(sweep_results, param_grid, metric_fn):
    """
    Returns y[i] = metric_fn(results) aligned with param_grid.
    metric_fn should be a closure accepting one ``run_experiment`` result.
    Grid values may be numbers, strings or lists.
    """
    return np.array([metric_fn(sweep_entry(sweep_results, v)) for v in param_grid],
                    dtype=float)


def mean_test_accuracy(results):
    """Recall accuracy pooled over every test set of one result."""
    vals = [recall_accuracy(h) for h in results["test_hits"].values()]
    vals = [v for v in vals if np.isfinite(v)]
    return float(np.mean(vals)) if vals else np.nan
