"""Gap-filling strategies.

Temporal strategies only look at the target column.  Ratio strategies use the
neighbouring stations: the sum of the upstream inputs, or the downstream
output, scaled by the ratio of a node attribute such as the catchment area.

Strategies are written as ``name`` or ``name:attr``, e.g. ``linear`` or
``input_ratio:area``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Union

import numpy as np
import pandas as pd

from .errors import UnknownStrategy
from .network_topology import Network
from .timetable import TimeTable


logger = logging.getLogger(__name__)


class FillMethod(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    LINEAR = "linear"
    NEAREST = "nearest"
    MEAN = "mean"
    MIN = "min"
    MAX = "max"
    ZERO = "zero"
    ONE = "one"
    INPUT_RATIO = "input_ratio"
    OUTPUT_RATIO = "output_ratio"


ALIASES = {"ratio": FillMethod.INPUT_RATIO, "oratio": FillMethod.OUTPUT_RATIO}
RATIO_METHODS = (FillMethod.INPUT_RATIO, FillMethod.OUTPUT_RATIO)


@dataclass(frozen=True)
class FillStrategy:
    """A fill method, plus the attribute name for ratio methods."""

    method: FillMethod
    attr: Optional[str] = None

    @classmethod
    def parse(cls, text: str, default_attr: Optional[str] = None) -> "FillStrategy":
        """Parse ``name`` or ``name:attr``.

        Ratio methods without an explicit attribute fall back to
        ``default_attr``; every other method rejects an attribute.
        """
        name, _, data = str(text).strip().partition(":")
        key = name.strip().lower()
        data = data.strip()
        try:
            method = ALIASES.get(key) or FillMethod(key)
        except ValueError as exc:
            raise UnknownStrategy(f"Data fill method {name!r} not recognized") from exc
        if method in RATIO_METHODS:
            attr = data or default_attr
            if not attr:
                raise UnknownStrategy(f"Data fill method {name!r} requires an attribute")
            return cls(method, attr)
        if data:
            raise UnknownStrategy(f"Unused part {data!r} for data fill method {name!r}")
        return cls(method)

    @property
    def is_ratio(self) -> bool:
        return self.method in RATIO_METHODS

    @property
    def label(self) -> str:
        """Name used in output series and CSV exports."""
        if self.attr is None:
            return self.method.value
        return f"{self.method.value}_{self.attr}"

    def __str__(self) -> str:
        if self.attr is None:
            return self.method.value
        return f"{self.method.value}:{self.attr}"


def _nearest(series: pd.Series) -> pd.Series:
    times = pd.Series(series.index.to_numpy(dtype=float), index=series.index)
    known = times.where(series.notna())
    prev_t = known.ffill()
    next_t = known.bfill()
    use_prev = (times - prev_t) <= (next_t - times)
    estimate = series.ffill().where(use_prev, series.bfill())
    inside = prev_t.notna() & next_t.notna()
    return series.where(series.notna(), estimate.where(inside))


def _constant(value: float) -> Callable[[pd.Series], pd.Series]:
    def fill_constant(series: pd.Series) -> pd.Series:
        return series.where(series.notna(), value)

    return fill_constant


def _statistic(name: str) -> Callable[[pd.Series], pd.Series]:
    def fill_statistic(series: pd.Series) -> pd.Series:
        return series.where(series.notna(), getattr(series, name)())

    return fill_statistic


TEMPORAL_FILLS: Dict[FillMethod, Callable[[pd.Series], pd.Series]] = {
    FillMethod.FORWARD: lambda s: s.ffill(),
    FillMethod.BACKWARD: lambda s: s.bfill(),
    # timestamps are the x axis; edges without a neighbour on both sides stay NaN
    FillMethod.LINEAR: lambda s: s.interpolate(method="index", limit_area="inside"),
    FillMethod.NEAREST: _nearest,
    FillMethod.MEAN: _statistic("mean"),
    FillMethod.MIN: _statistic("min"),
    FillMethod.MAX: _statistic("max"),
    FillMethod.ZERO: _constant(0.0),
    FillMethod.ONE: _constant(1.0),
}


def ratio_factor(network: Network, node: str, strategy: FillStrategy) -> float:
    """Scale factor ``val / ival`` (inputs) or ``val / oval`` (output).

    Any missing attribute, missing neighbour or zero denominator gives NaN,
    so the ratio strategy reconstructs NaN rather than a wrong number.
    """
    if not strategy.is_ratio:
        return math.nan
    if strategy.method is FillMethod.INPUT_RATIO:
        others = network.inputs(node)
    else:
        output = network.output(node)
        others = [output] if output is not None else []
    val = network.attribute(node, strategy.attr)
    if val is None or not others:
        logger.debug(f"{node}: no {strategy.attr!r} value or no neighbours for {strategy}")
        return math.nan
    values = [network.attribute(other, strategy.attr) for other in others]
    if any(v is None for v in values):
        logger.debug(f"{node}: neighbour without {strategy.attr!r} for {strategy}")
        return math.nan
    denom = sum(values)
    if denom == 0:
        logger.debug(f"{node}: zero {strategy.attr!r} total for {strategy}")
        return math.nan
    return val / denom


def fill(
    strategy: FillStrategy,
    table: TimeTable,
    masked: Union[pd.Series, np.ndarray],
    factor: float = math.nan,
) -> pd.Series:
    """Reconstruct the missing values of ``masked``, the partially hidden target.

    :param strategy: Strategy to apply.
    :param table: Table the target belongs to; never modified.
    :param masked: Target values with NaN where readings are missing.
    :param factor: Precomputed :func:`ratio_factor` for ratio strategies.
    :returns: New series on the table's index.  Values that cannot be
        reconstructed are left as NaN.
    """
    if not isinstance(masked, pd.Series):
        masked = pd.Series(masked, index=table.frame.index, name=table.node, dtype=float)
    if strategy.method in TEMPORAL_FILLS:
        return TEMPORAL_FILLS[strategy.method](masked)

    if strategy.method is FillMethod.INPUT_RATIO:
        estimate = table.frame[list(table.inputs)].sum(axis=1, skipna=False) * factor
    elif table.output is not None:
        estimate = table.frame[table.output] * factor
    else:
        estimate = pd.Series(np.nan, index=masked.index)
    return masked.where(masked.notna(), estimate)
