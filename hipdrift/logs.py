"""
hipdrift — Run Logs
===================
Tab-separated per-trial logs, run-summary tables, and per-epoch weight
snapshots.  Everything here is an output sink: nothing reads these files
back during a run.
"""

import csv
import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)

TRIAL_COLUMNS = ["RunId", "Epoch", "TrialName", "Mode", "SSE", "MemoryHit",
                 "FalseAlarmRate", "MissRate", "AssocError"]
SUMMARY_COLUMNS = ["Condition", "TestSet", "NRuns", "MeanHit", "SemHit"]


class TrialLogWriter:
    """
    One TSV row per trial.

    Parameters
    ----------
    path : str or Path
        Created (with parents) on construction.
    layer_names : sequence of str
        One ``<Layer>ActAvg`` column per layer.
    """

    def __init__(self, path, layer_names=()):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.layer_names = tuple(layer_names)
        self.columns = TRIAL_COLUMNS + [f"{n}ActAvg" for n in self.layer_names]
        self._fh = self.path.open("w", newline="")
        self._writer = csv.writer(self._fh, delimiter="\t")
        self._writer.writerow(self.columns)
        self.n_rows = 0
        logger.info("writing trial log to %s", self.path)

    def write(self, record):
        s = record.stats
        row = [record.run, record.epoch, record.trial_name, record.mode,
               f"{s.sse:.6g}", s.memory_hit, f"{s.false_alarm_rate:.6g}",
               f"{s.miss_rate:.6g}", f"{s.associative_error:.6g}"]
        row += [f"{record.layer_activity.get(n, np.nan):.6g}" for n in self.layer_names]
        self._writer.writerow(row)
        self.n_rows += 1

    def close(self):
        if not self._fh.closed:
            self._fh.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_tsv(path):
    """Rows of a TSV written by this module, as dicts of strings."""
    with Path(path).open(newline="") as fh:
        return list(csv.DictReader(fh, delimiter="\t"))


def write_run_summary(path, rows):
    """
    Write condition-level recall accuracy.

    Parameters
    ----------
    rows : iterable of dict
        Keys ``SUMMARY_COLUMNS`` (see ``metrics.summary_rows``).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=SUMMARY_COLUMNS, delimiter="\t",
                                extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def save_weight_snapshot(path, weights):
    """Dump ``{pathway: matrix}`` to a compressed ``.npz``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **weights)
    return path
