"""Tests for loading series and building aligned tables."""

import json

import numpy as np
import pandas as pd
import pytest

from gapfill.errors import DataError, InsufficientData
from gapfill.network_topology import build_network
from gapfill.timetable import build_time_table, check_negative, check_row_count, read_series

DAY_MS = 86_400_000


def write_csv(path, dates, values, columns=("date", "flow")):
    pd.DataFrame({columns[0]: dates, columns[1]: values}).to_csv(path, index=False)


@pytest.fixture
def river(tmp_path):
    """Two tributaries ``a`` and ``b`` joining at ``t``, which drains to ``o``."""
    topo = {
        "nodes": [
            {"id": "a", "attrs": {"area": 1}},
            {"id": "b", "attrs": {"area": 2}},
            {"id": "t", "attrs": {"area": 3}},
            {"id": "o", "attrs": {"area": 4}},
        ],
        "edges": [{"u": "a", "v": "t"}, {"u": "b", "v": "t"}, {"u": "t", "v": "o"}],
    }
    (tmp_path / "net.json").write_text(json.dumps(topo))
    dates = pd.date_range("2021-01-01", periods=6, freq="D").strftime("%Y-%m-%d")
    write_csv(tmp_path / "t.csv", dates, [1.0, 2.0, 3.0, None, 5.0, 6.0])
    write_csv(tmp_path / "a.csv", dates[1:], [1.0, 1.0, 1.0, 1.0, 1.0])
    write_csv(tmp_path / "b.csv", dates, [2.0, 2.0, None, 2.0, 2.0, 2.0])
    write_csv(tmp_path / "o.csv", dates, [9.0] * 6)
    return build_network(tmp_path / "net.json")


def test_read_series_parses_dates_to_epoch(tmp_path):
    path = tmp_path / "s.csv"
    write_csv(path, ["1970-01-03", "1970-01-02", "1970-01-02"], [3.0, 2.0, 99.0])
    series = read_series(path, "s")
    assert series.name == "s"
    assert series.index.name == "timestamp"
    assert list(series.index) == [DAY_MS, 2 * DAY_MS]
    # first reading wins for duplicated timestamps
    assert list(series) == [2.0, 3.0]


def test_read_series_explicit_columns(tmp_path):
    path = tmp_path / "s.csv"
    pd.DataFrame({"x": [0, 1], "when": ["2000-01-01", "2000-01-02"], "q": ["1.5", "bad"]}).to_csv(path, index=False)
    series = read_series(path, "s", columns=("when", "q"))
    assert series.iloc[0] == 1.5
    assert np.isnan(series.iloc[1])


def test_read_series_without_header(tmp_path):
    path = tmp_path / "s.csv"
    path.write_text("100,1.0\n200,2.0\n")
    series = read_series(path, "s", header=False)
    assert list(series.index) == [100, 200]
    assert list(series) == [1.0, 2.0]


def test_read_series_errors(tmp_path):
    with pytest.raises(DataError) as info:
        read_series(tmp_path / "missing.csv", "s")
    assert info.value.node == "s"
    assert info.value.operation == "read"
    path = tmp_path / "s.csv"
    write_csv(path, ["2000-01-01"], [1.0])
    with pytest.raises(DataError):
        read_series(path, "s", columns=("date", "discharge"))
    (tmp_path / "one.csv").write_text("date\n2000-01-01\n")
    with pytest.raises(DataError):
        read_series(tmp_path / "one.csv", "s")
    write_csv(tmp_path / "bad.csv", ["not a date", "2000-01-01"], [1.0, 2.0])
    with pytest.raises(DataError):
        read_series(tmp_path / "bad.csv", "s", date_format="%Y-%m-%d")


def test_inner_join_drops_incomplete_rows(river):
    """Only timestamps where every neighbour has a reading survive."""
    table = build_time_table(river, "t", "{name}.csv")
    assert list(table.frame.columns) == ["t", "a", "b", "o"]
    assert table.inputs == ("a", "b")
    assert table.output == "o"
    # day 0 lacks a, day 2 lacks b, day 3 lacks t
    assert table.row_count == 3
    assert list(table.target) == [2.0, 5.0, 6.0]
    assert not table.frame.isna().any().any()


def test_left_join_keeps_target_rows(river):
    table = build_time_table(river, "t", "{name}.csv", join="left")
    assert table.row_count == 5
    assert table.frame["a"].isna().sum() == 1
    assert table.frame["b"].isna().sum() == 1
    assert not table.target.isna().any()


def test_left_join_can_keep_target_gaps(river):
    table = build_time_table(river, "t", "{name}.csv", join="left", drop_missing_target=False)
    assert table.row_count == 6
    assert table.target.isna().sum() == 1


def test_headwater_table_has_only_output(river):
    table = build_time_table(river, "a", "{name}.csv")
    assert table.inputs == ()
    assert list(table.frame.columns) == ["a", "t"]


def test_missing_neighbour_file(river, tmp_path):
    (tmp_path / "b.csv").unlink()
    with pytest.raises(DataError) as info:
        build_time_table(river, "t", "{name}.csv")
    assert info.value.node == "b"


def test_no_overlap_is_data_error(river, tmp_path):
    write_csv(tmp_path / "o.csv", ["1999-01-01"], [1.0])
    with pytest.raises(DataError) as info:
        build_time_table(river, "t", "{name}.csv")
    assert info.value.operation == "join"


def test_unknown_join(river):
    with pytest.raises(ValueError):
        build_time_table(river, "t", "{name}.csv", join="outer")


def test_row_count_check(river):
    table = build_time_table(river, "t", "{name}.csv")
    check_row_count(table, 3)
    with pytest.raises(InsufficientData) as info:
        check_row_count(table, 4)
    assert info.value.rows == 3
    assert info.value.required == 4


def test_check_negative(caplog):
    series = pd.Series([1.0, -2.0, 0.0, -0.5], name="gauge")
    with caplog.at_level("WARNING"):
        assert check_negative(series) == 2
    assert "gauge" in caplog.text
    assert check_negative(series.abs()) == 0
