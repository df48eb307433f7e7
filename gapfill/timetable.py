"""Loading node series and aligning them into one timestamp-keyed table.

A :class:`TimeTable` holds the series of one target node together with the
series of its direct upstream inputs and its downstream output, joined on a
shared ``timestamp`` index (epoch milliseconds).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import DataError, InsufficientData
from .network_topology import Network


logger = logging.getLogger(__name__)

JOINS = ("inner", "left")

Loader = Callable[..., pd.Series]


@dataclass(frozen=True)
class TimeTable:
    """Aligned series of a target node and its direct neighbours."""

    node: str
    frame: pd.DataFrame
    inputs: Tuple[str, ...] = ()
    output: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.frame)

    @property
    def timestamps(self) -> np.ndarray:
        return self.frame.index.to_numpy()

    @property
    def target(self) -> pd.Series:
        return self.frame[self.node]

    def values(self, column: Optional[str] = None) -> np.ndarray:
        """Copy of a column's values (the target column by default)."""
        return self.frame[column or self.node].to_numpy(dtype=float, copy=True)


def _to_epoch_ms(dates: pd.Series, date_format: Optional[str]) -> pd.Series:
    if pd.api.types.is_numeric_dtype(dates) and date_format is None:
        return dates.astype("float64")
    parsed = pd.to_datetime(dates, format=date_format)
    if parsed.dt.tz is not None:
        parsed = parsed.dt.tz_convert(None)
    epoch = (parsed - pd.Timestamp("1970-01-01")) // pd.Timedelta(milliseconds=1)
    return epoch.astype("float64")


def read_series(
    path: Union[str, Path],
    name: str,
    columns: Optional[Sequence] = None,
    header: bool = True,
    date_format: Optional[str] = None,
) -> pd.Series:
    """Read a two-column (date, value) series from a CSV file.

    :param path: CSV file to read.
    :param name: Node name; becomes the name of the returned series.
    :param columns: Optional ``(date, value)`` column names (positions when
        ``header`` is false).  The first two columns are used when omitted.
    :param header: Whether the file has a header row.
    :param date_format: Optional strptime format for the date column.
    :returns: Float series indexed by ``timestamp`` in epoch milliseconds,
        sorted, one reading per timestamp.
    :raises DataError: If the file or the columns cannot be read.
    """
    try:
        df = pd.read_csv(path, header=0 if header else None)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise DataError(name, "read", f"cannot read {path}: {exc}") from exc
    if columns is not None:
        if len(columns) != 2:
            raise DataError(name, "read", f"expected (date, value) columns, got {columns!r}")
        date_col, value_col = columns
        if not header:
            date_col, value_col = int(date_col), int(value_col)
        missing = [c for c in (date_col, value_col) if c not in df.columns]
        if missing:
            raise DataError(name, "read", f"columns {missing} not found in {path}")
    else:
        if df.shape[1] < 2:
            raise DataError(name, "read", f"{path} needs a date and a value column")
        date_col, value_col = df.columns[0], df.columns[1]

    try:
        epoch = _to_epoch_ms(df[date_col], date_format)
    except (ValueError, TypeError) as exc:
        raise DataError(name, "read", f"cannot parse dates in {path}: {exc}") from exc
    values = pd.to_numeric(df[value_col], errors="coerce")
    keep = epoch.notna()
    series = pd.Series(
        values[keep].to_numpy(dtype=float),
        index=pd.Index(epoch[keep].astype("int64").to_numpy(), name="timestamp"),
        name=name,
    )
    duplicated = series.index.duplicated(keep="first")
    if duplicated.any():
        logger.warning(f"{name}: dropping {int(duplicated.sum())} duplicate timestamps in {path}")
        series = series[~duplicated]
    return series.sort_index()


def build_time_table(
    network: Network,
    node: str,
    template: str,
    *,
    columns: Optional[Sequence] = None,
    header: bool = True,
    date_format: Optional[str] = None,
    join: str = "inner",
    drop_missing_target: bool = True,
    loader: Loader = read_series,
) -> TimeTable:
    """Build the aligned table for ``node`` and its direct neighbours.

    The target series is loaded first, then every input and the output, each
    from its own rendered path.  With ``join="inner"`` only timestamps where
    every series has a reading survive; with ``join="left"`` all target
    readings are kept and neighbour columns may contain NaN.

    :raises DataError: If any series cannot be loaded or no rows survive.
    :raises ValueError: If ``join`` is not ``inner`` or ``left``.
    """
    if join not in JOINS:
        raise ValueError(f"Unsupported join {join!r}, expected one of {JOINS}")

    def load(name: str) -> pd.Series:
        path = network.render_path(name, template)
        logger.debug(f"Loading {name} from {path}")
        return loader(path, name, columns=columns, header=header, date_format=date_format)

    inputs = network.inputs(node)
    output = network.output(node)
    neighbours: List[str] = inputs + ([output] if output is not None else [])

    frame = load(node).to_frame()
    for neighbour in neighbours:
        frame = frame.join(load(neighbour), how=join)

    if join == "inner":
        frame = frame.dropna(how="any")
    elif drop_missing_target:
        frame = frame.dropna(subset=[node])
    if frame.empty:
        raise DataError(node, "join", f"no rows left after joining {[node] + neighbours}")
    logger.info(f"{node}: {len(frame)} aligned rows with neighbours {neighbours}")
    return TimeTable(node=node, frame=frame, inputs=tuple(inputs), output=output)


def check_row_count(table: TimeTable, required: int) -> None:
    """Raise :class:`InsufficientData` if the table is shorter than ``required``."""
    if table.row_count < required:
        raise InsufficientData(table.node, table.row_count, required)


def check_negative(series: pd.Series, name: Optional[str] = None) -> int:
    """Count negative readings in a series, warning when there are any."""
    negatives = int((series < 0).sum())
    if negatives > 0:
        logger.warning(f"{name or series.name}: {negatives} negative values in series")
    return negatives
