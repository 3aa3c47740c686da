"""
hipdrift — Command Line
=======================
Run named conditions from the experiment table and write their trial logs
and run summary::

    hipdrift --experiment no_drift --experiment fast_drift --runs 10
    hipdrift --experiment all --epochs 6 --log-dir out --plot

Exit status is 0 on success and 2 when the configuration is rejected.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import BASE_SEED, ExperimentConfig, load_experiment_table
from .errors import ConfigurationError
from .logs import write_run_summary
from .metrics import summary_rows
from .sweep import run_conditions

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="hipdrift",
        description="Drifting-context paired-associate experiments.")
    parser.add_argument("--experiment", action="append", default=None,
                        help="experiment id from the table (repeatable), or 'all'")
    parser.add_argument("--epochs", type=int, default=4, help="AB study epochs per run")
    parser.add_argument("--runs", type=int, default=1)
    parser.add_argument("--seed", type=int, default=BASE_SEED)
    parser.add_argument("--experiments-file", default=None,
                        help="JSON experiment table (defaults to the bundled one)")
    parser.add_argument("--log-dir", default="logs")
    parser.add_argument("--no-log", action="store_true", help="skip the trial logs")
    parser.add_argument("--weights", action="store_true",
                        help="save per-epoch weight snapshots under the log dir")
    parser.add_argument("--plot", action="store_true")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _resolve_ids(requested, table):
    if not requested or "all" in requested:
        return list(table)
    return list(dict.fromkeys(requested))


def run(args):
    table = load_experiment_table(args.experiments_file)
    ids = _resolve_ids(args.experiment, table)
    log_dir = Path(args.log_dir)

    all_results = run_conditions(ids, table, ExperimentConfig(seed=args.seed),
                                 n_epochs=args.epochs, n_runs=args.runs,
                                 log_dir=None if args.no_log else log_dir,
                                 weights_dir=log_dir / "weights" if args.weights else None)

    rows = summary_rows(all_results)
    for row in rows:
        print(f"  {row['Condition']:<22s} {row['TestSet']:<14s} "
              f"hit={row['MeanHit']}  sem={row['SemHit']}")
    if not args.no_log:
        path = write_run_summary(log_dir / "run_summary.tsv", rows)
        logger.info("run summary written to %s", path)

    if args.plot:
        from .visualization import plot_condition_accuracy, plot_learning_curves
        plot_learning_curves(all_results)
        plot_condition_accuracy(all_results)
    return all_results


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    try:
        run(args)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
