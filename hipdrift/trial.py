"""
hipdrift — Phase-Structured Trial Controller
============================================
Runs one encode or test trial against an engine as four ordered phases:

    phase 1   cue drive         direct 1, associative 0, mossy full
    phase 2   associative recall direct 0, associative 1, mossy de-weighted
    phase 3   associative recall (same scales as phase 2)
    ── score ──  output read before anything from phase 4 touches it
    phase 4   cue restoration   direct 1, associative 0, mossy full;
                                 training clamps ECout to the phase-1
                                 reconstruction
    ── learn ──  training only, learning rate scaled by associative error

The order is fixed.  All per-trial mutable state lives in ``TrialState``,
which is rebuilt at the start of every trial.
"""

import dataclasses
import logging
from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError
from .scoring import RecallScorer, associative_error, lrate_multiplier

logger = logging.getLogger(__name__)

DIRECT_PATHWAY = "ECinToCA1"
ASSOC_PATHWAY = "CA3ToCA1"
MOSSY_PATHWAY = "DGToCA3"

INPUT_LAYER = "ECin"
OUTPUT_LAYER = "ECout"
ASSOC_LAYER = "CA1"

# phase -> (direct scale, associative scale)
PHASE_SCALES = {
    1: (1.0, 0.0),
    2: (0.0, 1.0),
    3: (0.0, 1.0),
    4: (1.0, 0.0),
}
RECALL_PHASES = (2, 3)


@dataclass
class TrialState:
    """Owned by the controller for the duration of one trial."""

    learn: bool = False
    phase: int = 0
    cycle: int = 0
    direct_scale: float = 1.0
    assoc_scale: float = 0.0
    mossy_scale: float = 1.0
    replay_pass: int = 0


class TrialController:
    """
    Drives an ``Engine`` through the four-phase protocol.

    Parameters
    ----------
    engine : Engine
        Exclusively used by this controller while a trial runs.
    config : ExperimentConfig
    scorer : RecallScorer, optional
        Defaults to one built from *config*.
    """

    def __init__(self, engine, config, scorer=None):
        self.engine = engine
        self.config = config
        self.scorer = scorer or RecallScorer.from_config(config)
        self.state = TrialState()
        self.last_lrate_multiplier = None

    def check_engine(self, layout):
        """
        Fail fast if the engine lacks a layer or pathway this controller
        drives, or its input/output layers do not match *layout*.
        """
        for layer in (INPUT_LAYER, OUTPUT_LAYER):
            size = self.engine.read_activation(layer).size
            if size != layout.size:
                raise ConfigurationError(
                    f"layer {layer!r} has {size} units but patterns have {layout.size}")
        self.engine.read_activation(ASSOC_LAYER)
        self._apply_scales(1, train=False)

    # ─────────────────────────────────────────────────────────────────
    # Trial
    # ─────────────────────────────────────────────────────────────────

    def run_trial(self, pattern, train):
        """
        Run one trial and return its TrialStats.

        Training clamps the full pattern (target view) to ECin and commits a
        weight update at the end; testing clamps the input view and leaves
        the weights alone.
        """
        cfg = self.config
        engine = self.engine
        self.state = TrialState(learn=bool(train))
        self.last_lrate_multiplier = None

        engine.reset_decay_state()
        if cfg.replay_passes:
            self._replay(pattern, train, cfg.replay_passes)
            engine.reset_decay_state()

        clamp = pattern.target_view() if train else pattern.input_view()
        engine.apply_input({INPUT_LAYER: clamp})

        self._run_phase(1, train)
        phase1_recon = engine.read_activation(OUTPUT_LAYER, view=cfg.cycles_per_phase - 1)

        self._run_phase(2, train)
        assoc_early = engine.read_activation(
            ASSOC_LAYER, view=cfg.cycles_per_phase + cfg.assoc_early_cycle)
        self._run_phase(3, train)

        stats = self.scorer.score(engine.read_activation(OUTPUT_LAYER),
                                  pattern.target_view(), pattern.completion_mask(),
                                  train)

        if train:
            engine.apply_input({INPUT_LAYER: clamp, OUTPUT_LAYER: phase1_recon})
        self._run_phase(4, train)

        assoc = associative_error(assoc_early, engine.read_activation(ASSOC_LAYER))
        stats = dataclasses.replace(stats, associative_error=assoc)

        if train:
            mult = 1.0
            if cfg.lrate_modulation:
                mult = lrate_multiplier(assoc, cfg.lrate_err_lo, cfg.lrate_err_hi,
                                        cfg.lrate_base)
            engine.commit_weight_update(mult)
            self.last_lrate_multiplier = mult

        logger.debug("%s %s: hit=%d miss=%.3f fa=%.3f assoc=%.3f",
                     "train" if train else "test", pattern.name, stats.memory_hit,
                     stats.miss_rate, stats.false_alarm_rate, stats.associative_error)
        return stats

    # ─────────────────────────────────────────────────────────────────
    # Phases
    # ─────────────────────────────────────────────────────────────────

    def _apply_scales(self, phase, train):
        direct, assoc = PHASE_SCALES[phase]
        if phase in RECALL_PHASES:
            mossy = self.config.mossy_window_scale(train)
        else:
            mossy = self.config.mossy_scale
        self.engine.set_pathway_scale(DIRECT_PATHWAY, direct)
        self.engine.set_pathway_scale(ASSOC_PATHWAY, assoc)
        self.engine.set_pathway_scale(MOSSY_PATHWAY, mossy)
        st = self.state
        st.phase = phase
        st.direct_scale, st.assoc_scale, st.mossy_scale = direct, assoc, mossy

    def _run_phase(self, phase, train):
        self._apply_scales(phase, train)
        for c in range(self.config.cycles_per_phase):
            self.state.cycle = c
            self.engine.step_cycle()

    def _replay(self, pattern, train, n_passes):
        """Phase-1-style encode passes with the context slots blanked."""
        view = np.array(pattern.target_view() if train else pattern.input_view())
        view[pattern.layout.role_mask("context")] = 0.0
        for p in range(n_passes):
            self.state.replay_pass = p + 1
            self.engine.apply_input({INPUT_LAYER: view})
            self._run_phase(1, train)
        self.state.replay_pass = 0
