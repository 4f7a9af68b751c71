"""Tests for the per-site tracking sheet."""

import pandas as pd
import pytest

from hfc.engine.formula import FormulaError
from hfc.engine.tracking import build_tracking_sheet


@pytest.fixture
def interviews():
    return pd.DataFrame(
        {
            "key": ["A", "B", "C", "D", "E"],
            "site": ["North", "North", "North", "South", " South "],
            "consent": ["1", "1", "2", "1", "3"],
            "hfc_flagged": [False, False, False, True, False],
        }
    )


@pytest.fixture
def targets():
    return pd.DataFrame(
        {"site": ["North", "South", "East"], "target": [5, 2, 4], "total_points": [8, 4, 6]}
    )


def sheet_for(interviews, targets, formulas=None, site_order=()):
    return build_tracking_sheet(
        interviews,
        targets,
        "site",
        "site",
        formulas if formulas is not None else {"achieved": "done - deleted"},
        site_order,
        consent_field="consent",
        consent_values=("1",),
        outcome_labels={1: "completed", "2": "no"},
    )


class TestTrackingSheet:
    """Counts, formula columns and variance per site."""

    def test_counts_per_site(self, interviews, targets):
        sheet = sheet_for(interviews, targets).set_index("site")
        assert sheet.loc["North", "submitted"] == 3
        assert sheet.loc["North", "done"] == 2
        assert sheet.loc["North", "completed"] == 2
        assert sheet.loc["North", "no"] == 1
        assert sheet.loc["South", "deleted"] == 1
        assert sheet.loc["South", "outcome_3"] == 1

    def test_variance_is_formula_minus_target(self, interviews, targets):
        sheet = sheet_for(interviews, targets).set_index("site")
        for site in ("North", "South"):
            row = sheet.loc[site]
            assert row["achieved"] == row["done"] - row["deleted"]
            assert row["variance"] == row["achieved"] - row["target"]

    def test_site_without_records_gets_zero_row(self, interviews, targets):
        """Sites in the plan but absent from the data still appear."""
        sheet = sheet_for(interviews, targets).set_index("site")
        east = sheet.loc["East"]
        assert east["submitted"] == 0 and east["done"] == 0
        assert east["variance"] == -4

    def test_target_columns_are_operands(self, interviews, targets):
        sheet = sheet_for(
            interviews, targets, formulas={"points_left": "total_points - done"}
        ).set_index("site")
        assert sheet.loc["North", "points_left"] == 6
        assert sheet.loc["North", "variance"] == 6 - 5

    def test_rows_follow_site_order(self, interviews, targets):
        sheet = sheet_for(interviews, targets, site_order=["South"])
        assert sheet["site"].tolist() == ["South", "North", "East"]

    def test_sites_missing_from_targets_are_appended(self, interviews, targets):
        extra = pd.concat(
            [interviews, pd.DataFrame({"key": ["F"], "site": ["West"], "consent": ["1"], "hfc_flagged": [False]})],
            ignore_index=True,
        )
        sheet = sheet_for(extra, targets)
        assert sheet["site"].tolist() == ["North", "South", "East", "West"]
        assert pd.isna(sheet.set_index("site").loc["West", "variance"])

    def test_without_formulas_variance_uses_done(self, interviews, targets):
        sheet = build_tracking_sheet(
            interviews, targets, "site", "site", None, (),
            consent_field="consent", consent_values=("1",),
        ).set_index("site")
        assert sheet.loc["North", "variance"] == 2 - 5

    def test_unknown_operand_rejected(self, interviews, targets):
        with pytest.raises(FormulaError):
            sheet_for(interviews, targets, formulas={"x": "done - refused"})

    def test_site_join_ignores_case(self, targets):
        """Data spelled ``north`` counts toward the ``North`` target row."""
        interviews = pd.DataFrame(
            {"key": ["A", "B"], "site": ["north", "NORTH "], "consent": ["1", "1"]}
        )
        sheet = sheet_for(interviews, targets, site_order=["south"])
        assert sheet["site"].tolist() == ["South", "North", "East"]
        north = sheet.set_index("site").loc["North"]
        assert north["submitted"] == 2
        assert north["variance"] == 2 - 5
