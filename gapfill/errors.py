"""
Exceptions raised while building and running gap-filling experiments.

Degenerate scores (NaN or Inf from a zero denominator) are not errors: they
are returned as values so callers can filter them.
"""


class GapFillError(Exception):
    """Base class for all gapfill errors."""


class DataError(GapFillError):
    """A node's series could not be read, rendered or joined."""

    def __init__(self, node: str, operation: str, message: str):
        self.node = node
        self.operation = operation
        super().__init__(f"{node}: {operation} failed: {message}")


class InsufficientData(GapFillError):
    """Too few joined rows to run an experiment on a node."""

    def __init__(self, node: str, rows: int, required: int):
        self.node = node
        self.rows = rows
        self.required = required
        super().__init__(f"{node}: only {rows} usable rows, at least {required} required")


class UnknownMetric(GapFillError, ValueError):
    """Error metric name is not one of rmse/nrmse/abserr/nse."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown error metric {name!r}")


class UnknownStrategy(GapFillError, ValueError):
    """Fill strategy string cannot be parsed."""
