"""Tests for grouped statistics and enumerator flags."""

import math

import pandas as pd
import pytest

from hfc.engine.stats import (
    answer_counts,
    enumerator_daily_average,
    flag_outliers,
    group_summary,
    is_outlier,
    other_value_counts,
)


class TestGroupSummary:
    """Grouped count, mean and standard deviation."""

    def test_summary_matches_pandas(self):
        frame = pd.DataFrame(
            {"enum_id": ["E1", "E1", "E1", "E2", "E2", None], "minutes": [10, 20, 30, "15", "x", 99]}
        )
        summary = group_summary(frame, "enum_id", "minutes").set_index("enum_id")
        assert summary.loc["E1", "count"] == 3
        assert summary.loc["E1", "mean"] == pytest.approx(20.0)
        assert summary.loc["E1", "stddev"] == pytest.approx(10.0)
        assert summary.loc["E2", "count"] == 1
        assert pd.isna(summary.loc["E2", "stddev"])
        assert list(summary.index) == ["E1", "E2"]

    def test_empty_input(self):
        frame = pd.DataFrame({"enum_id": [], "minutes": []})
        assert group_summary(frame, "enum_id", "minutes").empty


class TestOutliers:
    """Two-sided standard deviation flags."""

    @pytest.mark.parametrize("k", [0.5, 1.9, 2.1, 3.0, 5.0])
    def test_flag_is_symmetric(self, k):
        mean, stddev, sdvalue = 10.0, 2.0, 2.0
        above = is_outlier(mean + k * stddev, mean, stddev, sdvalue)
        below = is_outlier(mean - k * stddev, mean, stddev, sdvalue)
        assert above == below
        assert above is (k > sdvalue)

    def test_zero_spread_flags_nothing(self):
        assert not is_outlier(5.0, 5.0, 0.0, 1.0)
        assert flag_outliers({"A": 3, "B": 3, "C": 3}, 1.0)[2] == {}

    def test_flag_outliers(self):
        values = {"A": 10, "B": 10, "C": 10, "D": 10, "E": 30}
        mean, stddev, flagged = flag_outliers(values, 1.5)
        assert mean == pytest.approx(14.0)
        assert stddev == pytest.approx(80 ** 0.5)
        assert list(flagged) == ["E"]
        assert flagged["E"] == pytest.approx(16 / 80 ** 0.5)
        assert flag_outliers(values, 2.0)[2] == {}

    def test_single_enumerator_cannot_be_flagged(self):
        mean, stddev, flagged = flag_outliers({"A": 4}, 1.0)
        assert mean == 4.0
        assert math.isnan(stddev)
        assert flagged == {}

    def test_enumerator_daily_average(self):
        frame = pd.DataFrame({"enum_id": ["E1", "E1", "E1", "E2"]})
        days = pd.Series(["2024-03-04", "2024-03-04", "2024-03-05", "2024-03-04"])
        daily = enumerator_daily_average(frame, "enum_id", days).set_index("enum_id")
        assert daily.loc["E1", "days"] == 2
        assert daily.loc["E1", "submissions"] == 3
        assert daily.loc["E1", "daily_average"] == pytest.approx(1.5)
        assert daily.loc["E2", "daily_average"] == pytest.approx(1.0)


class TestAnswerCounts:
    """Per-question answer counts and "other" distinctness."""

    def test_answer_counts(self):
        frame = pd.DataFrame(
            {"enum_id": ["E1", "E1", "E2"], "q1": [1, None, ""], "q2": ["a", "b", "c"]}
        )
        counts = answer_counts(frame, "enum_id", ["q1", "q2"])
        indexed = counts.set_index(["enum_id", "question"])["answers"]
        assert indexed[("E1", "q1")] == 1
        assert indexed[("E2", "q1")] == 0
        assert indexed[("E2", "q2")] == 1

    def test_other_value_counts(self):
        frame = pd.DataFrame(
            {
                "enum_id": ["E1", "E1", "E1", "E2"],
                "water_oth": ["tank", "Tank ", "tank", ""],
                "crop_other": ["yam", None, "", "okra"],
                "mother_age": [30, 31, 32, 33],
            }
        )
        report = other_value_counts(frame, "enum_id", r"_oth(er)?$")
        assert set(report["field"]) == {"water_oth", "crop_other"}
        water = report[report["field"] == "water_oth"].set_index("enum_id")
        assert water.loc["E1", "distinct_values"] == 2
        assert "E2" not in water.index
