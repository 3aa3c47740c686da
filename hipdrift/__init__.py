"""
hipdrift: drifting-context paired-associate learning in a hippocampal model.

Modules
-------
config        : Shared constants, experiment config, experiment table, curriculum.
errors        : Package exceptions.
pool          : Min-difference sparse binary vector pools.
drift         : Drifting context chains and resumable derivation.
patterns      : Slot layouts and cue/target/context pattern assembly.
engine        : Engine contract and the reference numpy hippocampus.
trial         : Four-phase trial controller.
scoring       : Recall statistics and learning-rate modulation.
simulation    : Condition builders and multi-run experiment runners.
logs          : TSV trial logs, run summaries, weight snapshots.
metrics       : Learning curves, recall accuracy, condition summaries.
diagnostics   : Drift-similarity and pool-difference checks.
visualization : All plotting functions.
sweep         : Parameter sweep orchestration.
cli           : Command-line entry point.
utils         : Shared helpers.
"""

from .config import *
from .errors import ConfigurationError, HipDriftError
from .simulation import run_experiment
from .sweep import sweep_one_param
