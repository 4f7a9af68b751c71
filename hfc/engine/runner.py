"""Check runner: dispatches one check or an ordered pipeline of checks."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd

from hfc.engine.check_executor import CheckEvaluator
from hfc.engine.config import (
    AuditSettings,
    CheckSpec,
    ConfigurationError,
    load_pipeline,
    parse_flag,
)
from hfc.engine.constants import ISSUE_TYPE_MAP
from hfc.engine.models import AuditReferences, AuditSummary, CheckResult
from hfc.engine.paths import PIPELINE_PATH
from hfc.engine.records import drop_flagged, mark_flagged
from hfc.engine.report import build_issue_log, empty_report
from hfc.logger import get_logger

logger = get_logger(__name__)


def run_check(
    check_id: str,
    dataset: pd.DataFrame,
    settings: AuditSettings,
    options: Mapping[str, Any] | None = None,
    references: AuditReferences | None = None,
    name: str = "",
) -> CheckResult:
    """Run one check; configuration defects become diagnostics instead of errors."""
    options = dict(options or {})
    references = references or AuditReferences()
    log = logger.bind(check_id=check_id, check_name=name or check_id)
    if not dataset.index.is_unique:
        dataset = dataset.reset_index(drop=True)
    total_rows = len(dataset)

    log.debug("check_started", rows=total_rows)
    evaluator = CheckEvaluator(settings, references)
    try:
        delete = parse_flag(
            options.get("delete_flagged"), "delete_flagged", settings.delete_flagged
        )
        flagged, report = evaluator.evaluate(check_id, dataset, options)
    except ConfigurationError as exc:
        log.warning("check_skipped", diagnostic=str(exc))
        return CheckResult(
            check_id=check_id,
            dataset=dataset,
            report=empty_report(settings.reporting_columns),
            diagnostics=[str(exc)],
            total_rows=total_rows,
            name=name,
        )

    labels = list(dict.fromkeys(flagged))
    if delete:
        dataset = drop_flagged(dataset, labels)
    elif labels:
        mark_flagged(dataset, labels)

    if ISSUE_TYPE_MAP.get(check_id) == "summary":
        affected = 0
    else:
        affected = len(labels) or len(report)
    log.info(
        "check_completed",
        report_rows=len(report),
        flagged_records=len(labels),
        remaining_records=len(dataset),
    )
    return CheckResult(
        check_id=check_id,
        dataset=dataset,
        report=report,
        flagged_count=affected,
        total_rows=total_rows,
        name=name,
    )


class AuditRunner:
    def __init__(
        self,
        settings: AuditSettings,
        checks: Sequence[CheckSpec],
        references: AuditReferences | None = None,
    ) -> None:
        self.settings = settings
        self.checks = list(checks)
        self.references = references or AuditReferences()

    @classmethod
    def from_config(
        cls, path: Path = PIPELINE_PATH, references: AuditReferences | None = None
    ) -> "AuditRunner":
        settings, checks = load_pipeline(path)
        return cls(settings, checks, references)

    def run(self, dataset: pd.DataFrame) -> AuditSummary:
        run_ts = datetime.now(timezone.utc)
        current = dataset.copy()
        results: list[CheckResult] = []
        for spec in self.checks:
            result = run_check(
                spec.check,
                current,
                self.settings,
                spec.options,
                self.references,
                name=spec.id,
            )
            results.append(result)
            current = result.dataset

        skipped = [result.name for result in results if result.skipped]
        logger.info(
            "audit_completed",
            checks=len(results),
            skipped=len(skipped),
            records=len(current),
        )
        return AuditSummary(
            run_ts=run_ts,
            dataset=current,
            results=results,
            issue_log=build_issue_log(results, run_ts),
        )
