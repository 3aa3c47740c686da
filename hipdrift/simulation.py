"""
hipdrift — Simulation Runners
=============================
Builds the pattern sets for one experiment condition and runs the
train-then-test protocol over one or more runs.

Context timeline
----------------
Every pattern's context slots are read from one timeline of drift-chain
positions.  AB study epoch ``e`` sits at ``e * drift_between_epochs``; an AC
list (AB-AC designs) resumes ``drift_between_lists`` steps after the last AB
epoch, continuing the AB chain with ``derive_chain``; test set ``ri`` sits
``ri`` steps after the start of the last study epoch.  Items within an
epoch advance a further ``item_drift`` steps each.

Like the rest of the package, runs are kept "dumb": they produce raw
per-trial records and per-epoch arrays; aggregation lives in metrics.py.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from .config import CurriculumSchedule, ExperimentConfig
from .drift import context_channels, derive_channels
from .engine import EngineConfig, HippocampusEngine
from .errors import ConfigurationError
from .logs import TrialLogWriter, save_weight_snapshot
from .patterns import PatternAssembler, contexts_at
from .pool import VectorPool
from .trial import TrialController

logger = logging.getLogger(__name__)


@dataclass
class ConditionData:
    """Everything built for one run of one condition, before any trial runs."""

    condition: object
    pool: VectorPool
    assembler: PatternAssembler
    chains: tuple
    derived_chains: tuple
    pattern_sets: dict
    schedule: CurriculumSchedule
    test_set_names: tuple
    last_ab_position: int

    @property
    def layout(self):
        return self.assembler.layout

    def context(self, position):
        """Context-slot vectors at a timeline position."""
        if position <= self.last_ab_position:
            return contexts_at(self.chains, position)
        return contexts_at(self.derived_chains, position - self.last_ab_position - 1)


@dataclass
class TrialRecord:
    run: int
    epoch: int
    set_name: str
    trial_name: str
    train: bool
    stats: object
    layer_activity: dict = field(default_factory=dict)

    @property
    def mode(self):
        return "train" if self.train else "test"


# ─────────────────────────────────────────────────────────────────────
# Dataset construction
# ─────────────────────────────────────────────────────────────────────

def _epoch_starts(condition, n_epochs, item_span):
    """Timeline start positions of every AB and AC study epoch."""
    d = condition.drift_between_epochs
    ab = [e * d for e in range(n_epochs)]
    ac = []
    if condition.has_ac_list:
        ac_start = ab[-1] + item_span + condition.drift_between_lists
        ac = [ac_start + e * d for e in range(condition.ac_epochs)]
    return ab, ac


def build_condition(condition, config, n_epochs, rng):
    """
    Build pool, context chains, pattern sets and curriculum for one run.

    Parameters
    ----------
    condition : ExperimentCondition
    config : ExperimentConfig
    n_epochs : int
        Number of AB study epochs.
    rng : numpy.random.Generator

    Returns
    -------
    ConditionData
    """
    if n_epochs < 1:
        raise ConfigurationError(f"n_epochs must be >= 1, got {n_epochs}")
    n = config.n_pairs
    item_span = (n - 1) * condition.item_drift

    pool = VectorPool.from_config(config)
    counts = {"A": n, "B": n}
    if condition.has_ac_list:
        counts["C"] = n
    pool.generate_group(counts, rng)

    ab_starts, ac_starts = _epoch_starts(condition, n_epochs, item_span)
    last_study_start = (ac_starts or ab_starts)[-1]
    test_starts = {ri: last_study_start + ri for ri in condition.retention_intervals}

    last_ab = ab_starts[-1] + item_span
    max_pos = max([last_ab] + [s + item_span for s in ac_starts]
                  + [s + item_span for s in test_starts.values()])

    chains = context_channels(last_ab + 1, condition.decay_rate, config.context_rate_base,
                              config.n_context_slots, config.slot_size, config.n_active, rng)
    derived = ()
    if max_pos > last_ab and chains:
        # the later lists pick up drifting where the AB list left off
        derived = derive_channels(chains, -1, max_pos - last_ab)

    assembler = PatternAssembler.from_config(config)
    data = ConditionData(condition=condition, pool=pool, assembler=assembler,
                         chains=chains, derived_chains=derived, pattern_sets={},
                         schedule=CurriculumSchedule(), test_set_names=(),
                         last_ab_position=last_ab)

    def make_set(name, cue_key, target_key, start):
        contexts = [data.context(start + i * condition.item_drift) for i in range(n)]
        ps = assembler.build_set(name, pool[cue_key], pool[target_key], contexts)
        data.pattern_sets[name] = ps
        return ps

    blocks = []
    lists = [("AB", "A", "B", ab_starts)]
    if condition.has_ac_list:
        lists.append(("AC", "A", "C", ac_starts))
    for label, cue_key, target_key, starts in lists:
        if condition.drift_between_epochs == 0:
            make_set(f"Train{label}", cue_key, target_key, starts[0])
            blocks.append((f"Train{label}", len(starts)))
        else:
            for e, start in enumerate(starts):
                make_set(f"Train{label}_e{e}", cue_key, target_key, start)
                blocks.append((f"Train{label}_e{e}", 1))
    data.schedule = CurriculumSchedule.sequential(blocks)

    test_names = []
    for ri, start in test_starts.items():
        for label, cue_key, target_key, _ in lists:
            name = f"Test{label}_ri{ri}"
            make_set(name, cue_key, target_key, start)
            test_names.append(name)
    data.test_set_names = tuple(test_names)
    return data


# ─────────────────────────────────────────────────────────────────────
# Runs
# ─────────────────────────────────────────────────────────────────────

def _should_stop(stop):
    if stop is None:
        return False
    if hasattr(stop, "is_set"):
        return stop.is_set()
    return bool(stop())


def _layer_activity(engine):
    return {name: float(np.mean(engine.read_activation(name)))
            for name in engine.layer_names}


def prepare_run(condition, config, n_epochs, run=0, engine_config=None, engine_factory=None):
    """
    Build datasets and a checked controller for run number *run*.

    The run's data and engine draw from independent children of
    ``SeedSequence(config.seed + run)``, so runs are reproducible one by one.

    Raises
    ------
    ConfigurationError
        If the condition, config or engine wiring is inconsistent.
    """
    data_ss, engine_ss = np.random.SeedSequence(config.seed + run).spawn(2)
    data = build_condition(condition, config, n_epochs, np.random.default_rng(data_ss))
    engine_rng = np.random.default_rng(engine_ss)
    if engine_factory is None:
        engine = HippocampusEngine(data.layout.size, engine_config or EngineConfig(),
                                   rng=engine_rng)
    else:
        engine = engine_factory(data.layout.size, engine_rng)
    controller = TrialController(engine, config)
    controller.check_engine(data.layout)
    return data, controller


def run_single(data, controller, run=0, stop=None, on_trial=None, log_writer=None,
               weights_dir=None):
    """
    Train through the curriculum, then run every test set once.

    Returns
    -------
    records : list[TrialRecord]
    stopped : bool
        True if *stop* was raised at a trial boundary.
    """
    engine = controller.engine
    records = []
    epochs = data.schedule.resolve(data.pattern_sets)

    def _do(epoch, pset, pattern, train):
        stats = controller.run_trial(pattern, train)
        rec = TrialRecord(run=run, epoch=epoch, set_name=pset.name,
                          trial_name=pattern.name, train=train, stats=stats,
                          layer_activity=_layer_activity(engine))
        records.append(rec)
        if log_writer is not None:
            log_writer.write(rec)
        if on_trial is not None:
            on_trial(rec)

    for epoch, pset in enumerate(epochs):
        for pattern in pset:
            if _should_stop(stop):
                return records, True
            _do(epoch, pset, pattern, True)
        if weights_dir is not None and hasattr(engine, "weights"):
            save_weight_snapshot(Path(weights_dir) / f"run{run:02d}_epoch{epoch:03d}.npz",
                                 engine.weights())

    for name in data.test_set_names:
        pset = data.pattern_sets[name]
        for pattern in pset:
            if _should_stop(stop):
                return records, True
            _do(len(epochs), pset, pattern, False)
    return records, False


def run_experiment(condition, config=None, n_epochs=4, n_runs=1, engine_config=None,
                   engine_factory=None, stop=None, on_trial=None, log_path=None,
                   weights_dir=None, verbose=False):
    """
    Run one condition *n_runs* times.

    Parameters
    ----------
    condition : ExperimentCondition
    config : ExperimentConfig, optional
    n_epochs : int
        AB study epochs per run.
    n_runs : int
    engine_config : EngineConfig, optional
    engine_factory : callable, optional
        ``factory(input_size, rng) -> Engine``; defaults to HippocampusEngine.
    stop : threading.Event or callable, optional
        Polled between trials; a trial in progress always completes.
    on_trial : callable, optional
        Called with each TrialRecord after it is produced.
    log_path : str or Path, optional
        TSV trial log, created only once the first run is configured.
    weights_dir : str or Path, optional
        Per-epoch weight snapshots.
    verbose : bool
        Print progress.

    Returns
    -------
    results : dict
        ``records`` (list of TrialRecord), ``train_hits`` and ``train_sse``
        (n_runs, n_epochs) per-epoch means, ``test_hits`` mapping each test
        set to an (n_runs,) array, ``stopped``, ``condition``, ``config``.
    """
    config = config or ExperimentConfig()
    n_total_epochs = n_epochs + condition.ac_epochs
    results = {
        "condition": condition,
        "config": config,
        "records": [],
        "train_hits": np.full((n_runs, n_total_epochs), np.nan),
        "train_sse": np.full((n_runs, n_total_epochs), np.nan),
        "test_hits": {},
        "stopped": False,
    }

    writer = None
    try:
        for run in range(n_runs):
            data, controller = prepare_run(condition, config, n_epochs, run,
                                           engine_config, engine_factory)
            if log_path is not None and writer is None:
                writer = TrialLogWriter(log_path, controller.engine.layer_names)
            logger.info("condition %s run %d: %d epochs, test sets %s", condition.name,
                        run, data.schedule.n_epochs, list(data.test_set_names))

            records, stopped = run_single(data, controller, run=run, stop=stop,
                                          on_trial=on_trial, log_writer=writer,
                                          weights_dir=weights_dir)
            results["records"].extend(records)
            _fill_run_arrays(results, run, records, data.test_set_names, n_runs)

            if verbose:
                hits = [results["test_hits"][n][run] for n in data.test_set_names]
                print(f"  {condition.name} run {run}  test hit={np.nanmean(hits):.3f}")
            if stopped:
                logger.info("stop requested; ending after run %d", run)
                results["stopped"] = True
                break
    finally:
        if writer is not None:
            writer.close()
    return results


def _fill_run_arrays(results, run, records, test_set_names, n_runs):
    by_epoch = {}
    by_set = {}
    for r in records:
        if r.train:
            by_epoch.setdefault(r.epoch, []).append(r.stats)
        else:
            by_set.setdefault(r.set_name, []).append(r.stats.memory_hit)
    for epoch, stats in by_epoch.items():
        results["train_hits"][run, epoch] = np.mean([s.memory_hit for s in stats])
        results["train_sse"][run, epoch] = np.mean([s.sse for s in stats])
    for name in test_set_names:
        arr = results["test_hits"].setdefault(name, np.full(n_runs, np.nan))
        if name in by_set:
            arr[run] = np.mean(by_set[name])
