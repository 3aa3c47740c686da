"""
hipdrift — Network Engine Contract & Reference Hippocampus
===========================================================
The trial controller only ever talks to an ``Engine``: clamp inputs, step
one cycle, rescale named pathways, read layer activations, commit learning,
reset transient state.  Any rate or spiking model exposing that contract can
be driven by the controller.

``HippocampusEngine`` is the small numpy model this package ships so that
experiments run out of the box:

    ECin ──► DG ──(mossy, DGToCA3)──► CA3 ──(CA3ToCA1)──► CA1 ──► ECout
      │                                ▲                   ▲
      └──────(perforant, ECinToCA3)────┘                   │
      └──────────────────(direct, ECinToCA1)───────────────┘

* DG and CA3 are k-winners-take-all layers.
* Mossy terminals act as detonators: the DG code fires exactly the
  ``ca3_k`` CA3 units it drives hardest, each with unit strength.  At full
  scale that set always wins, so the encoding code is a function of the DG
  code alone.  In the recall window the scale drops and the learned
  perforant input picks the winners.
* CA1 is a clipped rate: direct copy of ECin plus the mean CA3->CA1 row of
  the active CA3 units.  ECout mirrors CA1 unless clamped.
* Learning is CPCA-style Hebbian (``w += lrate * y * (x - w)``) on the
  perforant and associative pathways, computed from the current state when
  ``commit_weight_update`` is called.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

LAYERS = ("ECin", "DG", "CA3", "CA1", "ECout")
PATHWAYS = ("ECinToDG", "ECinToCA3", "DGToCA3", "ECinToCA1", "CA3ToCA1")
CLAMPABLE = ("ECin", "ECout")


# ─────────────────────────────────────────────────────────────────────
# Engine contract
# ─────────────────────────────────────────────────────────────────────

class Engine(ABC):
    """What the trial controller requires from a network engine.

    Unknown layer or pathway names must raise ``ConfigurationError``.
    """

    layer_names = ()
    pathway_names = ()

    @abstractmethod
    def apply_input(self, inputs):
        """Clamp ``{layer_name: vector}``, clearing any previous clamps first."""

    @abstractmethod
    def step_cycle(self):
        """Advance the network by one primitive time step."""

    @abstractmethod
    def set_pathway_scale(self, pathway, value):
        """Set a named pathway's relative contribution."""

    @abstractmethod
    def read_activation(self, layer, view="current"):
        """Current activation, or the activation at cycle index *view*."""

    @abstractmethod
    def commit_weight_update(self, lrate_multiplier=1.0):
        """Apply the accumulated weight change, scaled by *lrate_multiplier*."""

    @abstractmethod
    def reset_decay_state(self):
        """Clear transient activation traces before a trial."""

    def layer_sizes(self):
        return {name: self.read_activation(name).size for name in self.layer_names}


# ─────────────────────────────────────────────────────────────────────
# Reference engine
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EngineConfig:
    dg_size: int = 800
    dg_k: int = 10
    ecdg_conn: float = 0.25
    ca3_size: int = 400
    ca3_k: int = 16
    mossy_conn: float = 0.05
    pp_init: tuple = (0.0, 0.5)
    assoc_init: tuple = (0.0, 0.1)
    lrate: float = 0.5

    def __post_init__(self):
        if not 0 < self.dg_k <= self.dg_size:
            raise ConfigurationError("EngineConfig needs 0 < dg_k <= dg_size")
        if not 0 < self.ca3_k <= self.ca3_size:
            raise ConfigurationError("EngineConfig needs 0 < ca3_k <= ca3_size")
        if not 0.0 < self.mossy_conn <= 1.0:
            raise ConfigurationError(
                f"EngineConfig mossy_conn must be in (0, 1], got {self.mossy_conn}")
        if not 0.0 < self.lrate <= 1.0:
            raise ConfigurationError(f"EngineConfig lrate must be in (0, 1], got {self.lrate}")


def _kwta(net, k):
    """Binary k-winners-take-all over strictly positive net input."""
    act = np.zeros_like(net)
    winners = np.argsort(-net, kind="stable")[:k]
    act[winners[net[winners] > 0]] = 1.0
    return act


class HippocampusEngine(Engine):
    """
    Numpy rate model of the EC-DG-CA3-CA1 loop.

    Parameters
    ----------
    input_size : int
        Size of ECin / CA1 / ECout (the flat pattern length).
    config : EngineConfig, optional
    rng : numpy.random.Generator, optional
        Used only to draw the initial weights.
    """

    layer_names = LAYERS
    pathway_names = PATHWAYS

    def __init__(self, input_size, config=None, rng=None):
        if input_size < 1:
            raise ConfigurationError(f"input_size must be >= 1, got {input_size}")
        self.config = config or EngineConfig()
        rng = rng if rng is not None else np.random.default_rng()
        cfg = self.config
        self.input_size = input_size
        self._sizes = {"ECin": input_size, "DG": cfg.dg_size, "CA3": cfg.ca3_size,
                       "CA1": input_size, "ECout": input_size}

        # fixed projections
        self.w_ecdg = rng.uniform(0.0, 1.0, (input_size, cfg.dg_size)) * (
            rng.random((input_size, cfg.dg_size)) < cfg.ecdg_conn)
        self.w_mossy = rng.uniform(0.0, 1.0, (cfg.dg_size, cfg.ca3_size)) * (
            rng.random((cfg.dg_size, cfg.ca3_size)) < cfg.mossy_conn)
        # learned projections
        self.w_pp = rng.uniform(*cfg.pp_init, (input_size, cfg.ca3_size))
        self.w_assoc = rng.uniform(*cfg.assoc_init, (cfg.ca3_size, input_size))

        self._scales = {"ECinToDG": 1.0, "ECinToCA3": 1.0, "DGToCA3": 1.0,
                        "ECinToCA1": 1.0, "CA3ToCA1": 0.0}
        self._clamps = {}
        self._history = []
        self._act = {}
        self.n_updates = 0
        self.reset_decay_state()

    # ── contract ─────────────────────────────────────────────────────

    def apply_input(self, inputs):
        clamps = {}
        for layer, values in inputs.items():
            if layer not in CLAMPABLE:
                raise ConfigurationError(
                    f"layer {layer!r} cannot be clamped; clampable layers: {CLAMPABLE}")
            v = np.asarray(values, dtype=float)
            if v.shape != (self._sizes[layer],):
                raise ConfigurationError(
                    f"input for {layer!r} has shape {v.shape}, layer expects "
                    f"({self._sizes[layer]},)")
            clamps[layer] = v.copy()
        self._clamps = clamps

    def step_cycle(self):
        s = self._scales
        ec = self._clamps.get("ECin", np.zeros(self.input_size))

        dg = _kwta(s["ECinToDG"] * (ec @ self.w_ecdg), self.config.dg_k)

        mossy = _kwta(dg @ self.w_mossy, self.config.ca3_k)
        n_ec = ec.sum()
        pp = (ec @ self.w_pp) / n_ec if n_ec > 0 else np.zeros(self.config.ca3_size)
        ca3 = _kwta(s["ECinToCA3"] * pp + s["DGToCA3"] * mossy, self.config.ca3_k)

        n_ca3 = ca3.sum()
        recalled = (ca3 @ self.w_assoc) / n_ca3 if n_ca3 > 0 else np.zeros(self.input_size)
        ca1 = np.clip(s["ECinToCA1"] * ec + s["CA3ToCA1"] * recalled, 0.0, 1.0)
        ecout = self._clamps.get("ECout", ca1)

        self._act = {"ECin": ec.copy(), "DG": dg, "CA3": ca3, "CA1": ca1,
                     "ECout": np.array(ecout)}
        self._history.append({k: v.copy() for k, v in self._act.items()})

    def set_pathway_scale(self, pathway, value):
        if pathway not in self._scales:
            raise ConfigurationError(
                f"unknown pathway {pathway!r}; known pathways: {PATHWAYS}")
        if value < 0:
            raise ConfigurationError(f"pathway scale must be >= 0, got {value}")
        self._scales[pathway] = float(value)

    def pathway_scale(self, pathway):
        try:
            return self._scales[pathway]
        except KeyError:
            raise ConfigurationError(f"unknown pathway {pathway!r}") from None

    def read_activation(self, layer, view="current"):
        if layer not in self._sizes:
            raise ConfigurationError(f"unknown layer {layer!r}; known layers: {LAYERS}")
        if isinstance(view, str):
            if view != "current":
                raise ConfigurationError(f"unknown activation view {view!r}")
            return self._act[layer].copy()
        try:
            return self._history[view][layer].copy()
        except IndexError:
            raise ConfigurationError(
                f"no cycle {view} recorded ({len(self._history)} cycles this trial)") from None

    def commit_weight_update(self, lrate_multiplier=1.0):
        lr = self.config.lrate * float(lrate_multiplier)
        if lr <= 0:
            return
        ca3 = self._act["CA3"]
        ec = self._act["ECin"]
        out = self._act["ECout"]
        self.w_pp += lr * (ec[:, None] - self.w_pp) * ca3[None, :]
        self.w_assoc += lr * ca3[:, None] * (out[None, :] - self.w_assoc)
        self.n_updates += 1

    def reset_decay_state(self):
        self._act = {name: np.zeros(n) for name, n in self._sizes.items()}
        self._history = []

    # ── extras ───────────────────────────────────────────────────────

    @property
    def n_cycles(self):
        """Cycles stepped since the last reset."""
        return len(self._history)

    def weights(self):
        """Copies of the learned matrices, keyed by pathway name."""
        return {"ECinToCA3": self.w_pp.copy(), "CA3ToCA1": self.w_assoc.copy()}
