"""
hipdrift — Sweep Engine
=======================
``sweep_one_param`` varies one field of a drift condition (or of the
experiment config) over a grid while holding everything else fixed.
``run_conditions`` runs several named rows of the experiment table and
returns their results side by side for the run summary.
"""

import dataclasses
from pathlib import Path

from .config import ExperimentConfig, get_condition
from .metrics import summarise_condition
from .simulation import run_experiment
from .utils import sweep_key


def sweep_one_param(param_name, param_grid, condition, config=None, n_epochs=4,
                    n_runs=10, engine_config=None, verbose=True):
    """
    Sweep exactly one parameter.

    Parameters
    ----------
    param_name : str
        A field of ExperimentCondition (e.g. ``"decay_rate"``,
        ``"drift_between_epochs"``) or of ExperimentConfig
        (e.g. ``"mossy_delta_test"``).
    param_grid : list
        Values to sweep.  List values (e.g. for ``retention_intervals``) are
        keyed by their tuple form.
    condition : ExperimentCondition
        Base condition.
    config : ExperimentConfig, optional
        Base config; its seed is incremented per grid point.
    n_epochs, n_runs : int
    engine_config : EngineConfig, optional
    verbose : bool
        Print progress.

    Returns
    -------
    sweep_results : dict
        Keyed by parameter value; each entry is the ``run_experiment``
        result plus ``summary`` and ``param_value``.
    """
    config = config or ExperimentConfig()
    cond_fields = {f.name for f in dataclasses.fields(condition)}
    cfg_fields = {f.name for f in dataclasses.fields(config)}
    if param_name not in cond_fields and param_name not in cfg_fields:
        raise KeyError(f"unknown sweep parameter {param_name!r}")

    sweep_results = {}
    for idx, val in enumerate(param_grid):
        cond, cfg = condition, config.replace(seed=config.seed + idx)
        if param_name in cond_fields:
            cond = condition.replace(**{param_name: val})
        else:
            cfg = cfg.replace(**{param_name: val})

        results = run_experiment(cond, cfg, n_epochs=n_epochs, n_runs=n_runs,
                                 engine_config=engine_config)
        results["summary"] = summarise_condition(results)
        results["param_value"] = val
        sweep_results[sweep_key(val)] = results

        if verbose:
            print(f"  {param_name}={val}  done")

    return sweep_results


def run_conditions(experiment_ids, table, config=None, n_epochs=4, n_runs=10,
                   engine_config=None, log_dir=None, weights_dir=None, verbose=True):
    """
    Run several named conditions from the experiment table.

    Parameters
    ----------
    experiment_ids : list of str
    table : dict
        Experiment table from ``load_experiment_table``.
    log_dir : path, optional
        Each condition writes ``<log_dir>/<id>_trials.tsv``.
    weights_dir : path, optional
        Each condition saves its snapshots under ``<weights_dir>/<id>/``.

    Returns
    -------
    dict experiment_id -> run_experiment result
    """
    config = config or ExperimentConfig()
    conditions = {exp_id: get_condition(table, exp_id) for exp_id in experiment_ids}
    out = {}
    for exp_id, condition in conditions.items():
        log_path = None if log_dir is None else Path(log_dir) / f"{exp_id}_trials.tsv"
        weights = None if weights_dir is None else Path(weights_dir) / exp_id
        if verbose:
            print(f"=== {exp_id}: {condition.description or condition.name} ===")
        out[exp_id] = run_experiment(condition, config, n_epochs=n_epochs, n_runs=n_runs,
                                     engine_config=engine_config, log_path=log_path,
                                     weights_dir=weights, verbose=verbose)
    return out
