"""Tests for experiment configuration."""

import pytest

from gapfill.config import ExperimentConfig, load_config
from gapfill.errors import UnknownMetric, UnknownStrategy
from gapfill.strategies import FillMethod

from conftest import DATA_DIR


def test_default_strategies():
    """Temporal strategies by default, ratio ones once a ratio variable is set."""
    config = ExperimentConfig()
    assert [s.label for s in config.fill_strategies] == ["forward", "backward", "linear"]
    config = ExperimentConfig(ratio_var="area")
    assert [s.label for s in config.fill_strategies] == [
        "forward", "backward", "linear", "input_ratio_area", "output_ratio_area",
    ]
    assert config.errors == ["rmse", "nrmse", "abserr", "nse"]


def test_unknown_names_fail_at_construction():
    with pytest.raises(UnknownStrategy):
        ExperimentConfig(strategies=["spline"])
    with pytest.raises(UnknownStrategy):
        # ratio strategy without any attribute
        ExperimentConfig(strategies=["input_ratio"])
    with pytest.raises(UnknownMetric):
        ExperimentConfig(errors=["rmse", "mape"])


def test_metric_names_are_normalized():
    assert ExperimentConfig(errors=["RMSE", "Nse"]).errors == ["rmse", "nse"]


@pytest.mark.parametrize("kwargs", [
    {"experiments": 0},
    {"samples": -1},
    {"workers": 0},
    {"min_rows": 0},
    {"join": "outer"},
    {"columns": ["date"]},
    {"strategies": ["linear", "linear"]},
])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ExperimentConfig(**kwargs)


def test_min_row_count():
    assert ExperimentConfig(samples=100).min_row_count == 10
    assert ExperimentConfig(samples=5).min_row_count == 1
    assert ExperimentConfig(samples=5, min_rows=7).min_row_count == 7


def test_load_sample_config():
    config = load_config(DATA_DIR / "experiment.yml")
    assert config.seed == 42
    assert config.columns == ("date", "discharge")
    methods = [s.method for s in config.fill_strategies]
    assert FillMethod.INPUT_RATIO in methods
    assert all(s.attr == "area" for s in config.fill_strategies if s.is_ratio)


def test_load_config_overrides(tmp_path):
    path = tmp_path / "cfg.yml"
    path.write_text("experiments: 4\nsamples: 8\nseed: 1\n")
    config = load_config(path, seed=99, workers=None)
    assert config.experiments == 4
    assert config.seed == 99
    assert config.workers == 1


def test_load_config_rejects_bad_files(tmp_path):
    path = tmp_path / "cfg.yml"
    path.write_text("experiments: 4\nsamplez: 8\n")
    with pytest.raises(ValueError, match="samplez"):
        load_config(path)
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(path)
    path.write_text("")
    assert load_config(path).experiments == 10
