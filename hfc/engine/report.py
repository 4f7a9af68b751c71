"""Build uniform error reports and the per-run issue log."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Sequence

import pandas as pd

from hfc.engine.constants import ISSUE_TYPE_MAP, NO_ERRORS_MESSAGE, REASON_COLUMN
from hfc.engine.models import CheckResult

ISSUE_LOG_COLUMNS = [
    "run_ts",
    "check_name",
    "check_id",
    "issue_type",
    "status",
    "affected_rows",
    "total_rows",
    "affected_pct",
    "diagnostics",
]

Flag = tuple[Any, str]


def build_report(
    dataset: pd.DataFrame,
    flags: Iterable[Flag],
    reporting_columns: Sequence[str],
) -> pd.DataFrame:
    """Turn ``(row label, reason)`` pairs into report rows in dataset order."""
    columns = list(dict.fromkeys(reporting_columns))
    position = {label: pos for pos, label in enumerate(dataset.index)}
    ordered = sorted(
        enumerate(flags), key=lambda item: (position[item[1][0]], item[0])
    )
    records: list[dict[str, object]] = []
    for _, (label, reason) in ordered:
        row = dataset.loc[label]
        entry = {column: row.get(column) for column in columns}
        entry[REASON_COLUMN] = reason
        records.append(entry)
    return pd.DataFrame(records, columns=columns + [REASON_COLUMN])


def empty_report(reporting_columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=[*reporting_columns, REASON_COLUMN])


def build_issue_log(results: Iterable[CheckResult], run_ts: datetime) -> pd.DataFrame:
    records: list[dict[str, object]] = []
    for result in results:
        affected_pct = (
            result.flagged_count / result.total_rows if result.total_rows else 0.0
        )
        records.append(
            {
                "run_ts": run_ts.isoformat(),
                "check_name": result.name or result.check_id,
                "check_id": result.check_id,
                "issue_type": ISSUE_TYPE_MAP.get(result.check_id, "invalid"),
                "status": result.status,
                "affected_rows": result.flagged_count,
                "total_rows": result.total_rows,
                "affected_pct": affected_pct,
                "diagnostics": "; ".join(result.diagnostics),
            }
        )
    return pd.DataFrame(records, columns=ISSUE_LOG_COLUMNS)


def format_report(result: CheckResult) -> str:
    if result.skipped:
        return f"{result.check_id} could not run: " + "; ".join(result.diagnostics)
    if result.report.empty:
        return NO_ERRORS_MESSAGE.format(check_id=result.check_id)
    return result.report.to_string(index=False)
