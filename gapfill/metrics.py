"""Error metrics between observed (withheld) values and reconstructed values.

Every metric ignores the positions where either sequence is NaN.  Division by
zero is not an error here: an empty set of valid pairs or a zero denominator
gives NaN or Inf, which is returned unchanged.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, List, Tuple

import numpy as np

from .errors import UnknownMetric


def _as_arrays(obs, sim) -> Tuple[np.ndarray, np.ndarray]:
    obs = np.asarray(obs, dtype=float)
    sim = np.asarray(sim, dtype=float)
    if obs.shape != sim.shape:
        raise ValueError(f"Sequences differ in length: {obs.shape} vs {sim.shape}")
    return obs, sim


def _valid_pairs(obs, sim) -> Tuple[np.ndarray, np.ndarray]:
    obs, sim = _as_arrays(obs, sim)
    valid = ~(np.isnan(obs) | np.isnan(sim))
    return obs[valid], sim[valid]


def rmse(obs, sim) -> float:
    """Root mean squared error."""
    o, s = _valid_pairs(obs, sim)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.sqrt(np.sum((s - o) ** 2) / np.float64(o.size)))


def nrmse(obs, sim) -> float:
    """RMSE divided by the mean of the observed values."""
    o, s = _valid_pairs(obs, sim)
    n = np.float64(o.size)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.sqrt(np.sum((s - o) ** 2) / n) / (np.sum(o) / n))


def abserr(obs, sim) -> float:
    """Mean absolute error."""
    o, s = _valid_pairs(obs, sim)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.sum(np.abs(s - o)) / np.float64(o.size))


def nse(obs, sim) -> float:
    """Nash-Sutcliffe efficiency.

    The observed mean is taken over every non-NaN observation, while the
    squared errors and the variance term only use the valid pairs.
    """
    obs, sim = _as_arrays(obs, sim)
    observed = obs[~np.isnan(obs)]
    o, s = _valid_pairs(obs, sim)
    with np.errstate(divide="ignore", invalid="ignore"):
        mean = np.sum(observed) / np.float64(observed.size)
        mse = np.sum((s - o) ** 2)
        denom = np.sum((mean - o) ** 2)
        return float(1.0 - mse / denom)


METRICS: Dict[str, Callable[..., float]] = {
    "rmse": rmse,
    "nrmse": nrmse,
    "abserr": abserr,
    "nse": nse,
}


def metric_name(name: str) -> str:
    """Normalise a metric name, raising :class:`UnknownMetric` if unsupported."""
    key = str(name).strip().lower()
    if key not in METRICS:
        raise UnknownMetric(name)
    return key


def calc_error(obs, sim, name: str) -> float:
    """Compute the metric called ``name`` between ``obs`` and ``sim``."""
    return METRICS[metric_name(name)](obs, sim)


def calc_errors(obs, sim, names: Iterable[str]) -> List[float]:
    return [calc_error(obs, sim, name) for name in names]


def calc_attr_error(network, attr1: str, attr2: str, name: str = "rmse") -> float:
    """Metric between two numeric node attributes across the whole network.

    Nodes lacking either attribute contribute NaN and are therefore skipped.
    """
    obs = []
    sim = []
    for node in network.order():
        a = network.attribute(node, attr1)
        b = network.attribute(node, attr2)
        obs.append(math.nan if a is None else a)
        sim.append(math.nan if b is None else b)
    return calc_error(obs, sim, name)
