"""Gap-filling experiments over a station network.

For each node an aligned :class:`~gapfill.timetable.TimeTable` is built once.
Each trial then withholds a random set of target readings, reconstructs them
with every configured strategy and scores the reconstruction with every
configured metric.  Scores are collected per ``(strategy, metric)`` pair in
trial order and exposed as named series ``{prefix}_{strategy}_{metric}``.

Trials are independent: each one gets its own random generator spawned from
the experiment's generator and writes into its own pre-allocated slot, so the
results only depend on the seed, whether trials run sequentially or on a
thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import ExperimentConfig
from .errors import DataError, InsufficientData
from .masking import draw_withheld_mask, withhold
from .metrics import calc_error
from .network_topology import Network
from .strategies import FillStrategy, fill, ratio_factor
from .timetable import Loader, TimeTable, build_time_table, check_row_count, read_series


logger = logging.getLogger(__name__)


@dataclass
class ExperimentResult:
    """Scores of all trials on one node."""

    node: str
    prefix: str = "fill"
    rows: int = 0
    samples: int = 0
    strategies: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    scores: Dict[Tuple[str, str], np.ndarray] = field(default_factory=dict)
    skipped: Optional[str] = None

    @property
    def experiments(self) -> int:
        return len(next(iter(self.scores.values()), ()))

    @property
    def series(self) -> Dict[str, np.ndarray]:
        """Score vectors keyed by ``{prefix}_{strategy}_{metric}``."""
        return {
            f"{self.prefix}_{label}_{metric}": values
            for (label, metric), values in self.scores.items()
        }


def run_trial(
    table: TimeTable,
    strategies: Sequence[FillStrategy],
    factors: Dict[FillStrategy, float],
    errors: Sequence[str],
    samples: int,
    rng: np.random.Generator,
    sink: Optional[Any] = None,
    trial: int = 0,
) -> Dict[Tuple[str, str], float]:
    """Withhold ``samples`` target readings, refill them and score each strategy."""
    mask = draw_withheld_mask(table.row_count, samples, rng)
    masked_values, truth = withhold(table.values(), mask)
    masked = pd.Series(masked_values, index=table.frame.index, name=table.node)
    scores: Dict[Tuple[str, str], float] = {}
    for strategy in strategies:
        filled = fill(strategy, table, masked, factors.get(strategy, np.nan))
        sim = filled.to_numpy(dtype=float)[mask]
        for metric in errors:
            scores[(strategy.label, metric)] = calc_error(truth, sim, metric)
        if sink is not None:
            frame = table.frame.assign(masked=masked, filled=filled)
            sink.write_trial(table.node, trial, strategy.label, frame)
    return scores


def run_experiment(
    network: Network,
    node: str,
    config: ExperimentConfig,
    rng: Optional[np.random.Generator] = None,
    sink: Optional[Any] = None,
    loader: Loader = read_series,
) -> ExperimentResult:
    """Run ``config.experiments`` trials on one node.

    :param network: Frozen station network.
    :param node: Target node.
    :param config: Experiment configuration.
    :param rng: Random generator; defaults to one seeded with ``config.seed``.
    :param sink: Optional debug sink with a ``write_trial`` method.
    :param loader: Series loader used to build the table.
    :returns: The result, with ``skipped`` set if the node had too few rows.
    :raises DataError: If the node's table cannot be built.
    """
    strategies = config.fill_strategies
    result = ExperimentResult(
        node=node,
        prefix=config.prefix,
        strategies=[s.label for s in strategies],
        errors=list(config.errors),
    )
    table = build_time_table(
        network,
        node,
        config.file_template,
        columns=config.columns,
        header=config.header,
        date_format=config.date_format,
        join=config.join,
        loader=loader,
    )
    result.rows = table.row_count
    try:
        check_row_count(table, config.min_row_count)
    except InsufficientData as exc:
        logger.warning(f"Skipping {node}: {exc}")
        result.skipped = str(exc)
        return result

    samples = config.samples
    if samples > table.row_count:
        logger.warning(f"{node}: withholding {table.row_count} rows instead of {samples}")
        samples = table.row_count
    result.samples = samples

    factors = {s: ratio_factor(network, node, s) for s in strategies if s.is_ratio}
    if rng is None:
        rng = np.random.default_rng(config.seed)
    trial_rngs = rng.spawn(config.experiments)
    result.scores = {
        (s.label, metric): np.full(config.experiments, np.nan)
        for s in strategies
        for metric in config.errors
    }

    def trial(index: int) -> None:
        scores = run_trial(table, strategies, factors, config.errors, samples, trial_rngs[index], sink, index)
        for key, value in scores.items():
            result.scores[key][index] = value

    if config.workers > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            list(pool.map(trial, range(config.experiments)))
    else:
        for index in range(config.experiments):
            trial(index)

    logger.info(f"{node}: {config.experiments} trials of {samples} samples over {table.row_count} rows")
    return result


def run_network(
    network: Network,
    config: ExperimentConfig,
    rng: Optional[np.random.Generator] = None,
    sink: Optional[Any] = None,
    loader: Loader = read_series,
) -> Dict[str, ExperimentResult]:
    """Run the experiment on ``config.nodes``, or on every node upstream first.

    Nodes with too few rows are skipped with a warning.  A :class:`DataError`
    aborts the run unless ``config.keep_going`` is set.
    """
    nodes = list(config.nodes) if config.nodes else network.order()
    unknown = [n for n in nodes if n not in network]
    if unknown:
        raise ValueError(f"Nodes not in network: {unknown}")
    if rng is None:
        rng = np.random.default_rng(config.seed)
    results: Dict[str, ExperimentResult] = {}
    for node, node_rng in zip(nodes, rng.spawn(len(nodes))):
        try:
            results[node] = run_experiment(network, node, config, node_rng, sink, loader)
        except DataError as exc:
            if not config.keep_going:
                raise
            logger.error(f"Skipping {node}: {exc}")
            results[node] = ExperimentResult(node=node, prefix=config.prefix, skipped=str(exc))
    done = sum(1 for r in results.values() if r.skipped is None)
    logger.info(f"Experiments finished on {done} of {len(nodes)} nodes")
    return results


def results_to_frame(
    results: Dict[str, ExperimentResult],
    network: Network,
    attrs: Sequence[str] = ("name",),
    errors: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Flatten results into ``{attrs}, experiment_index, method, {errors}`` rows."""
    if errors is None:
        errors = next((r.errors for r in results.values() if r.skipped is None), [])
    rows: List[Dict[str, Any]] = []
    for node, result in results.items():
        if result.skipped is not None:
            continue
        head = {attr: network.raw_attribute(node, attr) for attr in attrs}
        for index in range(result.experiments):
            for label in result.strategies:
                row = dict(head, experiment_index=index, method=label)
                for metric in errors:
                    row[metric] = result.scores[(label, metric)][index]
                rows.append(row)
    columns = list(attrs) + ["experiment_index", "method"] + list(errors)
    return pd.DataFrame(rows, columns=columns)


def fill_node(
    network: Network,
    node: str,
    strategy: Union[str, FillStrategy],
    config: ExperimentConfig,
    loader: Loader = read_series,
) -> pd.Series:
    """Fill the real gaps of a node's series with one strategy.

    Every target timestamp is kept, including the ones without a reading;
    neighbour series are left-joined for the ratio strategies.
    """
    if isinstance(strategy, str):
        strategy = FillStrategy.parse(strategy, default_attr=config.ratio_var)
    table = build_time_table(
        network,
        node,
        config.file_template,
        columns=config.columns,
        header=config.header,
        date_format=config.date_format,
        join="left",
        drop_missing_target=False,
        loader=loader,
    )
    filled = fill(strategy, table, table.target, ratio_factor(network, node, strategy))
    missing = int(table.target.isna().sum())
    remaining = int(filled.isna().sum())
    logger.info(f"{node}: filled {missing - remaining} of {missing} gaps with {strategy}")
    return filled
