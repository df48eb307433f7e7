"""Shared helpers for the gapfill tests."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from gapfill.network_topology import Network, Node

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def make_network(attrs, edges):
    """Build a frozen network from ``{node: attrs}`` and ``[(u, v)]``."""
    net = Network()
    for node_id, node_attrs in attrs.items():
        net.add_node(Node(id=node_id, attrs=node_attrs))
    for u, v in edges:
        net.add_edge(u, v)
    return net.freeze()


def make_series(name, values, start=0, step=86_400_000):
    """Series on an epoch-millisecond ``timestamp`` index."""
    index = pd.Index(start + step * np.arange(len(values), dtype="int64"), name="timestamp")
    return pd.Series(np.asarray(values, dtype=float), index=index, name=name)


class DictLoader:
    """Loader returning in-memory series instead of reading files."""

    def __init__(self, series):
        self.series = series
        self.paths = []

    def __call__(self, path, name, **kwargs):
        self.paths.append(path)
        return self.series[name].rename(name)


class FixedMaskRng:
    """Stand-in generator whose every trial withholds the same rows."""

    def __init__(self, rows):
        self.rows = np.asarray(rows)

    def spawn(self, n):
        return [self] * n

    def choice(self, row_count, size, replace=False):
        assert size == len(self.rows)
        return self.rows.copy()


@pytest.fixture
def sample_dir():
    return DATA_DIR
