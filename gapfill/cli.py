"""Command line interface for the gap-filling experiments.

Result tables go to stdout (or ``--out``); warnings and progress go to stderr
through :mod:`logging`.
"""

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from .config import load_config
from .errors import GapFillError
from .experiment import fill_node, results_to_frame, run_network
from .metrics import METRICS, calc_errors
from .network_topology import build_network
from .timetable import check_negative, read_series
from .utils.data_saver import DataSaver, summarize


logger = logging.getLogger(__name__)


def _write(df: pd.DataFrame, out: Optional[str]) -> None:
    if out:
        df.to_csv(out, index=False)
        logger.info(f"Wrote {len(df)} rows to {out}")
    else:
        df.to_csv(sys.stdout, index=False)


def cmd_run(args: argparse.Namespace) -> None:
    config = load_config(args.config, seed=args.seed, workers=args.workers)
    network = build_network(args.network)
    logger.info(f"Network loaded: {network.get_topology_info()}")
    sink = DataSaver(args.debug_dir) if args.debug_dir else None
    results = run_network(network, config, sink=sink)
    df = results_to_frame(results, network, config.export_attrs, config.errors)
    _write(df, args.out)
    if args.summary:
        print(summarize(df).to_string(index=False), file=sys.stderr)


def cmd_fill(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    network = build_network(args.network)
    filled = fill_node(network, args.node, args.method, config)
    _write(filled.rename("value").reset_index(), args.out)


def cmd_check(args: argparse.Namespace) -> None:
    series = read_series(args.file, args.name or args.file, columns=args.columns)
    negatives = check_negative(series)
    print(f"{series.name}: {negatives} negative values in {len(series)} readings")


def cmd_error(args: argparse.Namespace) -> None:
    df = pd.read_csv(args.file)
    missing = [c for c in (args.obs, args.sim) if c not in df.columns]
    if missing:
        raise ValueError(f"Columns {missing} not found in {args.file}")
    obs = pd.to_numeric(df[args.obs], errors="coerce")
    sim = pd.to_numeric(df[args.sim], errors="coerce")
    for name, value in zip(args.metrics, calc_errors(obs, sim, args.metrics)):
        print(f"{name}\t{value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gapfill", description="Gap-filling strategy evaluation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the gap-filling experiments")
    run_parser.add_argument("--network", required=True, help="Path to the network JSON file")
    run_parser.add_argument("--config", required=True, help="Path to the experiment YAML file")
    run_parser.add_argument("--out", default=None, help="CSV file for the results; stdout if omitted")
    run_parser.add_argument("--debug-dir", default=None, help="Directory for per-trial tables")
    run_parser.add_argument("--seed", type=int, default=None, help="Override the configured seed")
    run_parser.add_argument("--workers", type=int, default=None, help="Threads used for trials")
    run_parser.add_argument("--summary", action="store_true", help="Print mean scores to stderr")
    run_parser.set_defaults(func=cmd_run)

    fill_parser = subparsers.add_parser("fill", help="Fill the gaps of one node's series")
    fill_parser.add_argument("--network", required=True, help="Path to the network JSON file")
    fill_parser.add_argument("--config", required=True, help="Path to the experiment YAML file")
    fill_parser.add_argument("--node", required=True, help="Node whose series is filled")
    fill_parser.add_argument("--method", default="linear", help="Fill method, e.g. linear or input_ratio:area")
    fill_parser.add_argument("--out", default=None, help="CSV file for the filled series")
    fill_parser.set_defaults(func=cmd_fill)

    check_parser = subparsers.add_parser("check", help="Report negative readings in a series")
    check_parser.add_argument("file", help="CSV file with date and value columns")
    check_parser.add_argument("--columns", nargs=2, default=None, metavar=("DATE", "VALUE"))
    check_parser.add_argument("--name", default=None, help="Name used in messages")
    check_parser.set_defaults(func=cmd_check)

    error_parser = subparsers.add_parser("error", help="Error metrics between two CSV columns")
    error_parser.add_argument("file", help="CSV file")
    error_parser.add_argument("--obs", required=True, help="Column with observed values")
    error_parser.add_argument("--sim", required=True, help="Column with simulated values")
    error_parser.add_argument("--metrics", nargs="+", default=list(METRICS), help="Metric names")
    error_parser.set_defaults(func=cmd_error)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        args.func(args)
    except (GapFillError, ValueError) as exc:
        logger.error(str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
