"""
hipdrift — Recall Scoring
=========================
Per-trial recall statistics computed from activation snapshots.

* **missRate** — of the components the network had to complete (on in the
  target, off in the cue it was given), the fraction left below threshold.
* **falseAlarmRate** — of the target-off components, the fraction driven
  above threshold.
* **memoryHit** — 1 when both rates fall below the mode's hit threshold.
* **SSE** — summed squared error between target and output.
* **associativeError** — normalized mean-absolute change of the associative
  readout between an early recall cycle and trial end; drives learning-rate
  modulation only.

A rate whose denominator is empty contributes nothing (0/0 is scored 0.0),
so degenerate trials never produce NaN.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class TrialStats:
    sse: float
    memory_hit: int
    false_alarm_rate: float
    miss_rate: float
    associative_error: float = 0.0

    def as_row(self):
        return {"SSE": self.sse, "MemoryHit": self.memory_hit,
                "FalseAlarmRate": self.false_alarm_rate, "MissRate": self.miss_rate,
                "AssocError": self.associative_error}


def _rate(numer, denom):
    return float(numer) / float(denom) if denom > 0 else 0.0


def associative_error(early, final):
    """
    ``sum|early - final| / (sum early + sum final)``, in [0, 1].

    Two silent snapshots score 0.
    """
    early = np.asarray(early, dtype=float)
    final = np.asarray(final, dtype=float)
    total = np.abs(early).sum() + np.abs(final).sum()
    return _rate(np.abs(early - final).sum(), total)


def lrate_multiplier(error, err_lo, err_hi, base):
    """
    Map an associative error onto a learning-rate multiplier.

    ``base`` at or below *err_lo*, 1.0 at or above *err_hi*, linear between.
    """
    if error <= err_lo:
        return float(base)
    if error >= err_hi:
        return 1.0
    frac = (error - err_lo) / (err_hi - err_lo)
    return float(base + (1.0 - base) * frac)


class RecallScorer:
    """
    Pure scoring of output-layer activation against a pattern's target.

    Parameters
    ----------
    hit_thresh_train, hit_thresh_test : float
        Both miss and false-alarm rates must be strictly below this for a hit.
    act_thresh : float
        Activation at or above which a component counts as on.
    """

    def __init__(self, hit_thresh_train, hit_thresh_test, act_thresh=0.5):
        self.hit_thresh_train = hit_thresh_train
        self.hit_thresh_test = hit_thresh_test
        self.act_thresh = act_thresh

    @classmethod
    def from_config(cls, config):
        return cls(config.hit_thresh_train, config.hit_thresh_test, config.act_thresh)

    def score(self, output, target, completion_mask, train,
              assoc_early=None, assoc_final=None):
        """
        Parameters
        ----------
        output : (n,) array
            Reconstructed output-layer activation (end of phase 3).
        target : (n,) array
            The pattern's target view.
        completion_mask : (n,) bool array
            Target-on components the cue left off.
        train : bool
            Selects the hit threshold.
        assoc_early, assoc_final : (n,) arrays, optional
            Associative-readout snapshots; error is 0 when omitted.

        Returns
        -------
        TrialStats
        """
        output = np.asarray(output, dtype=float)
        target = np.asarray(target, dtype=float)
        completion_mask = np.asarray(completion_mask, dtype=bool)

        on = output >= self.act_thresh
        target_off = target <= 0

        miss = _rate(np.count_nonzero(completion_mask & ~on),
                     np.count_nonzero(completion_mask))
        fa = _rate(np.count_nonzero(target_off & on), np.count_nonzero(target_off))

        thresh = self.hit_thresh_train if train else self.hit_thresh_test
        hit = int(miss < thresh and fa < thresh)

        if assoc_early is None or assoc_final is None:
            assoc = 0.0
        else:
            assoc = associative_error(assoc_early, assoc_final)

        return TrialStats(sse=float(np.sum((target - output) ** 2)), memory_hit=hit,
                          false_alarm_rate=fa, miss_rate=miss, associative_error=assoc)
