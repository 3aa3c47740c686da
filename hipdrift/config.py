"""
hipdrift — Configuration & Constants
====================================
Shared defaults, the immutable experiment configuration, the per-condition
drift record loaded from the experiment table, and the curriculum schedule
that binds epochs to pattern sets.

Nothing here is mutated once a run has been built: conditions and configs
are frozen, and ``replace`` hands back a modified copy.
"""

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

# ── Pattern Geometry ─────────────────────────────────────────────────
SLOT_SIZE = 49          # components per cue / target / context slot
ACTIVE_PCT = 0.2        # target fraction of active components
MIN_DIFF_PCT = 0.5      # pairwise dissimilarity floor for pool vectors

# ── Trial Timing ─────────────────────────────────────────────────────
N_PHASES = 4
CYCLES_PER_PHASE = 10

# ── Pathway Weighting ────────────────────────────────────────────────
MOSSY_SCALE = 1.0
MOSSY_DELTA_TRAIN = 1.0
MOSSY_DELTA_TEST = 0.9

# ── Recall Scoring ───────────────────────────────────────────────────
ACT_THRESH = 0.5
HIT_THRESH_TRAIN = 0.1
HIT_THRESH_TEST = 0.2

# ── Learning-Rate Modulation ─────────────────────────────────────────
LRATE_BASE = 0.1
LRATE_ERR_LO = 0.1
LRATE_ERR_HI = 0.5

BASE_SEED = 2026

EXPERIMENTS_FILE = Path(__file__).resolve().parent / "data" / "experiments.json"

LIST_DESIGNS = ("AB", "AB-AC")


# ─────────────────────────────────────────────────────────────────────
# Experiment configuration
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExperimentConfig:
    """
    Everything a run needs besides the drift condition itself.

    Built once, passed explicitly into the pool, assembler and trial
    controller, never mutated afterwards.
    """

    slot_size: int = SLOT_SIZE
    active_pct: float = ACTIVE_PCT
    min_diff_pct: float = MIN_DIFF_PCT
    n_pairs: int = 4
    n_context_slots: int = 1
    context_rate_base: float = 2.0
    cycles_per_phase: int = CYCLES_PER_PHASE
    mossy_scale: float = MOSSY_SCALE
    mossy_delta_train: float = MOSSY_DELTA_TRAIN
    mossy_delta_test: float = MOSSY_DELTA_TEST
    act_thresh: float = ACT_THRESH
    hit_thresh_train: float = HIT_THRESH_TRAIN
    hit_thresh_test: float = HIT_THRESH_TEST
    lrate_modulation: bool = True
    lrate_base: float = LRATE_BASE
    lrate_err_lo: float = LRATE_ERR_LO
    lrate_err_hi: float = LRATE_ERR_HI
    assoc_early_cycle: int = 0
    replay_passes: int = 0
    seed: int = BASE_SEED

    def __post_init__(self):
        problems = self.validate()
        if problems:
            raise ConfigurationError("invalid ExperimentConfig: " + "; ".join(problems))

    @property
    def n_active(self):
        """Active components per slot vector."""
        return int(round(self.active_pct * self.slot_size))

    def validate(self):
        """Return a list of human-readable problems (empty when valid)."""
        problems = []
        if self.slot_size < 1:
            problems.append(f"slot_size must be >= 1, got {self.slot_size}")
        if not 0.0 < self.active_pct < 1.0:
            problems.append(f"active_pct must be in (0, 1), got {self.active_pct}")
        elif self.n_active < 1:
            problems.append("active_pct * slot_size rounds to zero active components")
        if not 0.0 <= self.min_diff_pct <= 1.0:
            problems.append(f"min_diff_pct must be in [0, 1], got {self.min_diff_pct}")
        if self.n_pairs < 1:
            problems.append(f"n_pairs must be >= 1, got {self.n_pairs}")
        if self.n_context_slots < 0:
            problems.append(f"n_context_slots must be >= 0, got {self.n_context_slots}")
        if self.context_rate_base < 1.0:
            problems.append(f"context_rate_base must be >= 1, got {self.context_rate_base}")
        if self.cycles_per_phase < 1:
            problems.append(f"cycles_per_phase must be >= 1, got {self.cycles_per_phase}")
        if not 0 <= self.assoc_early_cycle < max(self.cycles_per_phase, 1):
            problems.append("assoc_early_cycle must index a cycle within phase 2")
        if self.replay_passes < 0:
            problems.append(f"replay_passes must be >= 0, got {self.replay_passes}")
        if not 0.0 <= self.lrate_base <= 1.0:
            problems.append(f"lrate_base must be in [0, 1], got {self.lrate_base}")
        if not self.lrate_err_lo < self.lrate_err_hi:
            problems.append("lrate_err_lo must be below lrate_err_hi")
        for name in ("hit_thresh_train", "hit_thresh_test", "act_thresh"):
            v = getattr(self, name)
            if not 0.0 <= v <= 1.0:
                problems.append(f"{name} must be in [0, 1], got {v}")
        return problems

    def mossy_window_scale(self, train):
        """DG->CA3 scale used inside the recall window (phases 2-3)."""
        delta = self.mossy_delta_train if train else self.mossy_delta_test
        return max(0.0, self.mossy_scale - delta)

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)

    def to_dict(self):
        return dataclasses.asdict(self)


# ─────────────────────────────────────────────────────────────────────
# Drift conditions (experiment table rows)
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExperimentCondition:
    """
    One named row of the experiment table.

    ``decay_rate`` is the per-step replacement probability of the context
    chain; ``drift_between_epochs`` is how many chain steps separate study
    epochs; each entry of ``retention_intervals`` yields one test set whose
    context sits that many steps past the last training context.
    """

    name: str
    decay_rate: float
    drift_between_epochs: int = 0
    retention_intervals: tuple = (0,)
    item_drift: int = 0
    list_design: str = "AB"
    ac_epochs: int = 0
    drift_between_lists: int = 0
    description: str = ""

    def __post_init__(self):
        # JSON hands us lists
        object.__setattr__(self, "retention_intervals",
                           tuple(int(r) for r in self.retention_intervals))
        problems = []
        if not 0.0 < self.decay_rate <= 1.0:
            problems.append(f"decay_rate must be in (0, 1], got {self.decay_rate}")
        for name in ("drift_between_epochs", "item_drift", "ac_epochs", "drift_between_lists"):
            if getattr(self, name) < 0:
                problems.append(f"{name} must be >= 0")
        if not self.retention_intervals:
            problems.append("retention_intervals must not be empty")
        elif min(self.retention_intervals) < 0:
            problems.append("retention_intervals must be >= 0")
        if self.list_design not in LIST_DESIGNS:
            problems.append(f"list_design must be one of {LIST_DESIGNS}, got {self.list_design!r}")
        elif self.list_design == "AB-AC" and self.ac_epochs < 1:
            problems.append("AB-AC conditions need ac_epochs >= 1")
        if problems:
            raise ConfigurationError(f"invalid condition {self.name!r}: " + "; ".join(problems))

    @property
    def has_ac_list(self):
        return self.list_design == "AB-AC"

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)


def load_experiment_table(path=None):
    """
    Read the experiment table into ``{experiment_id: ExperimentCondition}``.

    Parameters
    ----------
    path : str or Path, optional
        JSON file mapping id -> record.  Defaults to the packaged table.
    """
    path = Path(path) if path is not None else EXPERIMENTS_FILE
    try:
        raw = json.loads(path.read_text())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"experiment table not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"experiment table {path} is not valid JSON: {exc}") from exc

    known = {f.name for f in dataclasses.fields(ExperimentCondition)}
    table = {}
    for exp_id, record in raw.items():
        unknown = set(record) - known
        if unknown:
            raise ConfigurationError(
                f"experiment {exp_id!r} has unknown fields: {sorted(unknown)}")
        try:
            table[exp_id] = ExperimentCondition(name=exp_id, **record)
        except TypeError as exc:
            raise ConfigurationError(f"experiment {exp_id!r}: {exc}") from exc
    return table


def get_condition(table, experiment_id):
    try:
        return table[experiment_id]
    except KeyError:
        raise ConfigurationError(
            f"unknown experiment id {experiment_id!r}; known ids: {sorted(table)}"
        ) from None


# ─────────────────────────────────────────────────────────────────────
# Curriculum schedule
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CurriculumSchedule:
    """
    Ordered ``(start_epoch, stop_epoch, set_name)`` bindings.

    Ranges are half-open and must tile ``[0, n_epochs)`` without gaps or
    overlaps.  The binding is resolved once, before any trial runs.
    """

    bindings: tuple = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "bindings",
                           tuple((int(a), int(b), str(n)) for a, b, n in self.bindings))

    @classmethod
    def sequential(cls, blocks):
        """Build from ``[(set_name, n_epochs), ...]`` laid end to end."""
        bindings = []
        start = 0
        for name, n in blocks:
            bindings.append((start, start + n, name))
            start += n
        return cls(tuple(bindings))

    @property
    def n_epochs(self):
        return self.bindings[-1][1] if self.bindings else 0

    def resolve(self, pattern_sets, n_epochs=None):
        """
        Return a tuple with one PatternSet per epoch.

        Parameters
        ----------
        pattern_sets : mapping
            ``set_name -> PatternSet``.
        n_epochs : int, optional
            Expected total; defaults to the schedule's own extent.
        """
        n_epochs = self.n_epochs if n_epochs is None else n_epochs
        per_epoch = [None] * n_epochs
        for start, stop, name in self.bindings:
            if name not in pattern_sets:
                raise ConfigurationError(f"curriculum refers to unknown pattern set {name!r}")
            if not 0 <= start < stop <= n_epochs:
                raise ConfigurationError(
                    f"curriculum range [{start}, {stop}) does not fit {n_epochs} epochs")
            for e in range(start, stop):
                if per_epoch[e] is not None:
                    raise ConfigurationError(f"curriculum binds epoch {e} twice")
                per_epoch[e] = pattern_sets[name]
        missing = [e for e, ps in enumerate(per_epoch) if ps is None]
        if missing:
            raise ConfigurationError(f"curriculum leaves epochs unbound: {missing}")
        return tuple(per_epoch)
