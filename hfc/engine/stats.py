"""Grouped statistics and enumerator-level flags."""

from __future__ import annotations

import math
import re
import statistics
from typing import Any, Iterable, Mapping

import duckdb
import pandas as pd

from hfc.engine.records import is_missing, missing_mask


def _label(value: Any) -> str | None:
    return None if is_missing(value) else str(value).strip()


def _query(frame: pd.DataFrame, sql: str) -> pd.DataFrame:
    with duckdb.connect() as con:
        con.register("records", frame)
        return con.execute(sql).df()


def group_summary(frame: pd.DataFrame, key: str, value_field: str) -> pd.DataFrame:
    """Count, mean and sample standard deviation of ``value_field`` per ``key``."""
    columns = [key, "count", "mean", "stddev"]
    working = pd.DataFrame(
        {
            "grp": frame[key].map(_label),
            "val": pd.to_numeric(frame[value_field], errors="coerce"),
        }
    ).dropna()
    if working.empty:
        return pd.DataFrame(columns=columns)
    summary = _query(
        working.astype({"grp": str, "val": float}),
        """
        SELECT grp,
               COUNT(val) AS count,
               AVG(val) AS mean,
               STDDEV_SAMP(val) AS stddev
        FROM records
        GROUP BY grp
        ORDER BY grp
        """,
    )
    return summary.rename(columns={"grp": key})[columns]


def enumerator_daily_average(
    frame: pd.DataFrame, enumerator_field: str, days: pd.Series
) -> pd.DataFrame:
    """Submissions per active day for every enumerator."""
    columns = [enumerator_field, "days", "submissions", "daily_average"]
    working = pd.DataFrame(
        {"enumerator": frame[enumerator_field].map(_label), "visit_day": days.map(_label)}
    ).dropna()
    if working.empty:
        return pd.DataFrame(columns=columns)
    result = _query(
        working.astype(str),
        """
        WITH daily AS (
            SELECT enumerator, visit_day, COUNT(*) AS n
            FROM records
            GROUP BY enumerator, visit_day
        )
        SELECT enumerator,
               COUNT(*) AS days,
               CAST(SUM(n) AS BIGINT) AS submissions,
               AVG(n) AS daily_average
        FROM daily
        GROUP BY enumerator
        ORDER BY enumerator
        """,
    )
    return result.rename(columns={"enumerator": enumerator_field})[columns]


def is_outlier(value: float, mean: float, stddev: float, sdvalue: float) -> bool:
    if stddev is None or math.isnan(stddev) or stddev <= 0:
        return False
    return abs(value - mean) > sdvalue * stddev


def flag_outliers(
    values: Mapping[str, float], sdvalue: float
) -> tuple[float, float, dict[str, float]]:
    """Return ``(mean, stddev, {key: z_score})`` for keys beyond ``sdvalue`` deviations."""
    numbers = [float(v) for v in values.values()]
    if len(numbers) < 2:
        return (numbers[0] if numbers else float("nan")), float("nan"), {}
    mean = statistics.mean(numbers)
    stddev = statistics.stdev(numbers)
    flagged = {
        key: (float(value) - mean) / stddev
        for key, value in values.items()
        if is_outlier(float(value), mean, stddev, sdvalue)
    }
    return mean, stddev, flagged


def answer_counts(
    frame: pd.DataFrame, enumerator_field: str, questions: Iterable[str]
) -> pd.DataFrame:
    """Non-missing answers per (enumerator, question)."""
    enumerators = frame[enumerator_field].map(_label)
    parts: list[pd.DataFrame] = []
    for question in questions:
        answered = (~missing_mask(frame[question])).astype(int)
        counts = (
            answered.groupby(enumerators).sum().rename("answers").reset_index()
        )
        counts.columns = [enumerator_field, "answers"]
        counts.insert(1, "question", question)
        parts.append(counts)
    if not parts:
        return pd.DataFrame(columns=[enumerator_field, "question", "answers"])
    return pd.concat(parts, ignore_index=True)


def other_value_counts(
    frame: pd.DataFrame, enumerator_field: str, pattern: str | re.Pattern[str]
) -> pd.DataFrame:
    """Distinct "other, specify" answers per enumerator for every matching field."""
    regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
    fields = [
        column
        for column in frame.columns
        if column != enumerator_field and regex.search(str(column))
    ]
    columns = [enumerator_field, "field", "distinct_values", "values"]
    records: list[dict[str, object]] = []
    enumerators = frame[enumerator_field].map(_label)
    for field in fields:
        answers = frame[field].map(_label)
        working = pd.DataFrame({"enum": enumerators, "value": answers}).dropna()
        for enum, group in working.groupby("enum", sort=True):
            distinct = sorted(group["value"].unique())
            records.append(
                {
                    enumerator_field: enum,
                    "field": field,
                    "distinct_values": len(distinct),
                    "values": "; ".join(distinct),
                }
            )
    return pd.DataFrame(records, columns=columns)
