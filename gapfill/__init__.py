"""
gapfill

Evaluates gap-filling strategies for time series measured at the stations of
a river-like network, by withholding known readings and scoring how well each
strategy reconstructs them.
"""

from .config import ExperimentConfig, load_config
from .errors import DataError, InsufficientData, UnknownMetric, UnknownStrategy
from .network_topology import Network, Node, build_network
from .timetable import TimeTable, build_time_table, read_series
from .strategies import FillMethod, FillStrategy, fill
from .metrics import calc_error, calc_errors
from .experiment import ExperimentResult, run_experiment, run_network, results_to_frame, fill_node

__version__ = "0.1.0"

__all__ = [
    'ExperimentConfig',
    'load_config',
    'DataError',
    'InsufficientData',
    'UnknownMetric',
    'UnknownStrategy',
    'Network',
    'Node',
    'build_network',
    'TimeTable',
    'build_time_table',
    'read_series',
    'FillMethod',
    'FillStrategy',
    'fill',
    'calc_error',
    'calc_errors',
    'ExperimentResult',
    'run_experiment',
    'run_network',
    'results_to_frame',
    'fill_node',
]
