"""
hipdrift — Visualization Functions
==================================
Plotting routines: drift similarity decay across rates, training learning
curves, recall accuracy per condition and test set, and generic
scalar-metric sweeps.

Every function draws a new figure, calls ``plt.show()`` when *show* is
true, and returns the figure.
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib as mpl

from .diagnostics import chance_similarity
from .metrics import learning_curve, summarise_condition, sweep_scalar_metric_array


# ─────────────────────────────────────────────────────────────────────
# Color palette helpers
# ─────────────────────────────────────────────────────────────────────

def _is_numeric_grid(param_grid):
    return all(isinstance(v, (int, float, np.number)) and not isinstance(v, bool)
               for v in param_grid)


def make_sweep_colors(param_grid, cmap_name="viridis"):
    """
    One colour per grid value.

    Numeric grids are coloured by value; any other grid (list designs,
    retention-interval tuples) by position.  A single-valued grid gets the
    low end of the colormap.

    Returns
    -------
    colors : list of RGBA tuples
    norm : matplotlib.colors.Normalize
        For a colorbar over the value (or position) axis.
    cmap : Colormap
    """
    if _is_numeric_grid(param_grid):
        pos = np.asarray(param_grid, dtype=float)
    else:
        pos = np.arange(len(param_grid), dtype=float)
    cmap = plt.get_cmap(cmap_name)
    lo = float(pos.min())
    hi = float(pos.max())
    norm = mpl.colors.Normalize(vmin=lo, vmax=hi if hi > lo else lo + 1.0)
    return [cmap(norm(p)) for p in pos], norm, cmap


def _add_colorbar(fig, ax, norm, cmap, label):
    sm = mpl.cm.ScalarMappable(norm=norm, cmap=cmap)
    sm.set_array([])
    cbar = fig.colorbar(sm, ax=ax, pad=0.02)
    cbar.set_label(label)


# ─────────────────────────────────────────────────────────────────────
# Drift similarity decay
# ─────────────────────────────────────────────────────────────────────

def plot_similarity_decay(profiles, size=None, n_on=None, cmap_name="viridis",
                          show_colorbar=True, show=True):
    """
    Similarity vs lag, one curve per decay rate.

    Parameters
    ----------
    profiles : dict
        ``{rate: (lags, mean)}`` as returned by
        ``diagnostics.rate_family_profiles``.
    size, n_on : int, optional
        When given, draw the chance-overlap floor.
    """
    rates = sorted(profiles)
    colors, norm, cmap = make_sweep_colors(rates, cmap_name=cmap_name)

    fig, ax = plt.subplots(figsize=(8, 5))
    for rate, color in zip(rates, colors):
        lags, mean = profiles[rate]
        ax.plot(lags, mean, marker="o", color=color, label=f"r={rate:.3g}")

    if size is not None and n_on is not None:
        ax.axhline(chance_similarity(size, n_on), color="gray", linestyle="--",
                   alpha=0.5, label="chance")

    ax.set_title("Context similarity vs chain distance")
    ax.set_xlabel("Lag (chain steps)")
    ax.set_ylabel("Similarity (overlap / active)")
    ax.set_ylim(0, 1.05)
    ax.grid(alpha=0.3)
    ax.legend(frameon=False)
    fig.tight_layout()

    if show_colorbar and len(rates) > 1:
        _add_colorbar(fig, ax, norm, cmap, "decay rate r")
    if show:
        plt.show()
    return fig


# ─────────────────────────────────────────────────────────────────────
# Learning curves
# ─────────────────────────────────────────────────────────────────────

def plot_learning_curves(condition_results, show=True):
    """Training memory-hit rate per epoch, one line per condition."""
    fig, ax = plt.subplots(figsize=(8, 5))
    for cond_id, results in condition_results.items():
        curve = learning_curve(results["train_hits"])
        ax.plot(np.arange(1, len(curve) + 1), curve, marker="o", label=cond_id)

    ax.set_title("Training recall across epochs")
    ax.set_xlabel("Epoch")
    ax.set_ylabel("P(memory hit)")
    ax.set_ylim(-0.05, 1.05)
    ax.grid(alpha=0.3)
    ax.legend(frameon=False)
    fig.tight_layout()
    if show:
        plt.show()
    return fig


# ─────────────────────────────────────────────────────────────────────
# Recall accuracy per condition
# ─────────────────────────────────────────────────────────────────────

def plot_condition_accuracy(condition_results, show=True):
    """Grouped bars: mean test hit rate (± SEM) per condition and test set."""
    summaries = {c: summarise_condition(r) for c, r in condition_results.items()}
    conds = list(summaries)
    test_sets = sorted({t for s in summaries.values() for t in s})

    fig, ax = plt.subplots(figsize=(max(6, 1.6 * len(conds)), 5))
    width = 0.8 / max(1, len(test_sets))
    x = np.arange(len(conds))
    for k, test_set in enumerate(test_sets):
        means = [summaries[c].get(test_set, {}).get("mean", np.nan) for c in conds]
        errs = [summaries[c].get(test_set, {}).get("sem", np.nan) for c in conds]
        errs = np.nan_to_num(np.asarray(errs, dtype=float))
        ax.bar(x + k * width, means, width, yerr=errs, capsize=3, label=test_set)

    ax.set_xticks(x + width * (len(test_sets) - 1) / 2)
    ax.set_xticklabels(conds, rotation=20, ha="right")
    ax.set_ylabel("Recall accuracy")
    ax.set_ylim(0, 1.05)
    ax.set_title("Recall accuracy by condition")
    ax.grid(alpha=0.3, axis="y")
    ax.legend(frameon=False, fontsize="small")
    fig.tight_layout()
    if show:
        plt.show()
    return fig


# ─────────────────────────────────────────────────────────────────────
# Scalar metric vs parameter
# ─────────────────────────────────────────────────────────────────────

def plot_scalar_metric_vs_param(
    sweep_results, param_grid, param_label, metric_fn,
    title, y_label, cmap_name="viridis", show_colorbar=True, show=True,
):
    """
    Scalar metric (e.g. pooled recall accuracy) against a swept parameter.

    Numeric grids are plotted on a value axis with a colorbar; other grids
    get one labelled tick per value and no colorbar.
    """
    numeric = _is_numeric_grid(param_grid)
    x = np.asarray(param_grid, dtype=float) if numeric else np.arange(len(param_grid))
    y = sweep_scalar_metric_array(sweep_results, param_grid, metric_fn)
    colors, norm, cmap = make_sweep_colors(param_grid, cmap_name=cmap_name)

    fig, ax = plt.subplots(figsize=(7.2, 4))
    ax.plot(x, y, color="0.6", linewidth=1.0, zorder=1)
    ax.scatter(x, y, c=colors, s=55, edgecolor="none", zorder=2)
    if not numeric:
        ax.set_xticks(x)
        ax.set_xticklabels([str(v) for v in param_grid])
    ax.set_ylim(-0.05, 1.05)
    ax.set_title(title)
    ax.set_xlabel(param_label)
    ax.set_ylabel(y_label)
    ax.grid(alpha=0.3)

    if show_colorbar and numeric:
        _add_colorbar(fig, ax, norm, cmap, param_label)
    fig.tight_layout()
    if show:
        plt.show()
    return fig
