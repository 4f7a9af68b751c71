"""Data models for the check runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Sequence

import pandas as pd

from hfc.engine.geo import PolygonArea, SamplePoint


@dataclass
class AuditReferences:
    polygons: Sequence[PolygonArea] = ()
    points: Mapping[str, SamplePoint] = field(default_factory=dict)
    targets: pd.DataFrame | None = None
    now: datetime | None = None


@dataclass
class CheckResult:
    check_id: str
    dataset: pd.DataFrame
    report: pd.DataFrame
    diagnostics: list[str] = field(default_factory=list)
    flagged_count: int = 0
    total_rows: int = 0
    name: str = ""

    @property
    def skipped(self) -> bool:
        return bool(self.diagnostics)

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "flagged" if self.flagged_count else "ok"


@dataclass
class AuditSummary:
    run_ts: datetime
    dataset: pd.DataFrame
    results: list[CheckResult]
    issue_log: pd.DataFrame
