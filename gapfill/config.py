"""
Configuration module for experiment parameters.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Sequence, Union

import yaml

from .metrics import METRICS, metric_name
from .strategies import FillStrategy
from .timetable import JOINS


TEMPORAL_DEFAULTS = ["forward", "backward", "linear"]
RATIO_DEFAULTS = ["input_ratio", "output_ratio"]


@dataclass
class ExperimentConfig:
    """
    Configuration parameters for the gap-filling experiments.
    """
    # Trials
    experiments: int = 10
    samples: int = 100  # withheld rows per trial
    seed: Optional[int] = None
    workers: int = 1

    # Strategies and scoring
    strategies: Optional[List[str]] = None
    ratio_var: Optional[str] = None
    errors: List[str] = field(default_factory=lambda: list(METRICS))
    prefix: str = "fill"

    # Input files
    file_template: str = "{name}.csv"
    columns: Optional[Sequence] = None  # (date, value)
    header: bool = True
    date_format: Optional[str] = None
    join: str = "inner"  # inner or left

    # Run control
    min_rows: Optional[int] = None
    keep_going: bool = False
    nodes: Optional[List[str]] = None
    export_attrs: List[str] = field(default_factory=lambda: ["name"])

    def __post_init__(self):
        """Validate values and parse strategies and metrics up front."""
        if self.experiments <= 0:
            raise ValueError(f"experiments must be positive, got {self.experiments}")
        if self.samples <= 0:
            raise ValueError(f"samples must be positive, got {self.samples}")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.min_rows is not None and self.min_rows <= 0:
            raise ValueError(f"min_rows must be positive, got {self.min_rows}")
        if self.join not in JOINS:
            raise ValueError(f"join must be one of {JOINS}, got {self.join!r}")
        if self.columns is not None:
            if len(self.columns) != 2:
                raise ValueError(f"columns must be (date, value), got {self.columns!r}")
            self.columns = tuple(self.columns)
        if self.strategies is None:
            self.strategies = TEMPORAL_DEFAULTS + (RATIO_DEFAULTS if self.ratio_var else [])
        self.errors = [metric_name(e) for e in self.errors]
        labels = [s.label for s in self.fill_strategies]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate fill strategies: {labels}")

    @property
    def fill_strategies(self) -> List[FillStrategy]:
        """Parsed strategies, ratio ones defaulting to ``ratio_var``."""
        return [FillStrategy.parse(s, default_attr=self.ratio_var) for s in self.strategies]

    @property
    def min_row_count(self) -> int:
        """Rows a node needs before its experiment runs at all."""
        if self.min_rows is not None:
            return self.min_rows
        return max(1, self.samples // 10)


def load_config(path: Union[str, Path], **overrides) -> ExperimentConfig:
    """Load an :class:`ExperimentConfig` from a YAML file.

    Keyword overrides that are not None replace the file's values.

    :raises ValueError: On unknown keys or invalid values.
    """
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Configuration {path} must be a mapping")
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    known = {f.name for f in fields(ExperimentConfig)}
    unknown = sorted(set(cfg) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {path}: {unknown}")
    return ExperimentConfig(**cfg)
