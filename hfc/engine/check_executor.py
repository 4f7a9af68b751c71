"""Check implementations dispatched by the runner."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

import pandas as pd

from hfc.engine import constants as checks
from hfc.engine.config import AuditSettings, ConfigurationError, parse_flag
from hfc.engine.geo import buffer_distance, record_coordinates, site_mismatch_reason
from hfc.engine.models import AuditReferences
from hfc.engine.option_utils import OptionResolverMixin
from hfc.engine.records import active_mask, is_missing
from hfc.engine.report import Flag, build_report
from hfc.engine.stats import (
    answer_counts,
    enumerator_daily_average,
    flag_outliers,
    group_summary,
    other_value_counts,
)
from hfc.engine.temporal import TEMPORAL_RULES, duration_minutes, parse_timestamp
from hfc.engine.tracking import build_tracking_sheet

Evaluation = tuple[list[Any], pd.DataFrame]


class CheckEvaluator(OptionResolverMixin):
    def __init__(self, settings: AuditSettings, references: AuditReferences) -> None:
        self.settings = settings
        self.references = references

    def evaluate(
        self, check_id: str, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        handler: Callable[[pd.DataFrame, Mapping[str, Any]], Evaluation] | None = {
            checks.DUPLICATE_ID: self._handle_duplicate_id,
            checks.MISSING_VALUES: self._handle_missing_values,
            checks.SITE_MISMATCH: self._handle_site_mismatch,
            checks.GPS_BUFFER: self._handle_gps_buffer,
            checks.END_BEFORE_START: self._handle_end_before_start,
            checks.CROSS_DAY: self._handle_cross_day,
            checks.FUTURE_DATE: self._handle_future_date,
            checks.PRE_COLLECTION: self._handle_pre_collection,
            checks.SHORT_DURATION: self._handle_short_duration,
            checks.TRACKING_SHEET: self._handle_tracking_sheet,
            checks.PRODUCTIVITY_OUTLIERS: self._handle_productivity_outliers,
            checks.DURATION_SUMMARY: self._handle_duration_summary,
            checks.ANSWERS_PER_QUESTION: self._handle_answers_per_question,
            checks.OTHER_VALUES: self._handle_other_values,
        }.get(check_id)
        if not handler:
            raise ConfigurationError(f"No handler for check '{check_id}'")
        return handler(dataset, options)

    def _flag_report(self, dataset: pd.DataFrame, flags: list[Flag]) -> Evaluation:
        report = build_report(dataset, flags, self.settings.reporting_columns)
        return [label for label, _ in flags], report

    def _handle_duplicate_id(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        unique_id = self.settings.unique_id
        self._require(dataset, unique_id)
        active = dataset[active_mask(dataset)]
        ids = active[unique_id].map(lambda v: None if is_missing(v) else str(v).strip())
        counts = ids.value_counts()
        flags: list[Flag] = []
        for label, value in ids.items():
            if value is None:
                flags.append((label, f"missing {unique_id}"))
            elif counts[value] > 1:
                flags.append(
                    (label, f"duplicate {unique_id} '{value}' ({counts[value]} records)")
                )
        return self._flag_report(dataset, flags)

    def _handle_missing_values(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        fields = list(self._option(options, "fields"))
        self._require(dataset, *fields)
        consented = self._consented(dataset)
        flags: list[Flag] = []
        for label, row in dataset[consented].iterrows():
            for field in fields:
                if is_missing(row.get(field)):
                    flags.append((label, f"missing value for {field}"))
        return self._flag_report(dataset, flags)

    def _handle_site_mismatch(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        s = self.settings
        self._require(dataset, s.latitude_field, s.longitude_field, s.site_field)
        polygons = list(self.references.polygons)
        if not polygons:
            raise ConfigurationError("Site mismatch check requires polygon areas")
        correct = parse_flag(options.get("correct"), "correct")
        flags: list[Flag] = []
        corrected: list[Flag] = []
        for label, row in dataset.iterrows():
            reason, matched = site_mismatch_reason(
                row, polygons, s.latitude_field, s.longitude_field, s.site_field
            )
            if reason is None:
                continue
            if correct and matched is not None:
                dataset.at[label, s.site_field] = matched
                corrected.append((label, f"{reason} (corrected)"))
            else:
                flags.append((label, reason))
        report = build_report(dataset, [*flags, *corrected], s.reporting_columns)
        return [label for label, _ in flags], report

    def _handle_gps_buffer(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        s = self.settings
        point_id_field = options.get("point_id_field")
        self._require(dataset, s.latitude_field, s.longitude_field, point_id_field)
        points = self.references.points
        if not points:
            raise ConfigurationError("GPS buffer check requires sample points")
        radius = self._number_option(options, "radius_m", None)
        flags: list[Flag] = []
        for label, row in dataset.iterrows():
            distance, point = buffer_distance(
                row, points, s.latitude_field, s.longitude_field, point_id_field
            )
            if point is not None:
                limit = point.radius_m if radius is None else radius
                if distance <= limit:
                    continue
                reason = (
                    f"{distance:.0f} m from sample point {point.point_id} "
                    f"(buffer {limit:.0f} m)"
                )
            elif record_coordinates(row, s.latitude_field, s.longitude_field) is None:
                reason = "missing or invalid GPS coordinates"
            else:
                reason = "no assigned sample point"
            flags.append((label, reason))
        return self._flag_report(dataset, flags)

    def _temporal(
        self, dataset: pd.DataFrame, rule_name: str, **params: Any
    ) -> Evaluation:
        fields = self._time_fields()
        self._require(dataset, fields.start, fields.end)
        rule = TEMPORAL_RULES[rule_name]
        flags: list[Flag] = []
        for label, row in dataset[self._consented(dataset)].iterrows():
            reason = rule(row, fields, **params)
            if reason:
                flags.append((label, reason))
        return self._flag_report(dataset, flags)

    def _handle_end_before_start(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        return self._temporal(dataset, checks.END_BEFORE_START)

    def _handle_cross_day(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        return self._temporal(dataset, checks.CROSS_DAY)

    def _handle_future_date(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        now = self.references.now or datetime.now(timezone.utc)
        return self._temporal(dataset, checks.FUTURE_DATE, now=now)

    def _handle_pre_collection(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        raw = self._option(options, "official_start_date")
        official = parse_timestamp(raw)
        if official is None:
            raise ConfigurationError(f"Unparsable official_start_date: {raw!r}")
        return self._temporal(
            dataset, checks.PRE_COLLECTION, official_start_date=official
        )

    def _handle_short_duration(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        minimum = self._number_option(options, "min_duration")
        return self._temporal(dataset, checks.SHORT_DURATION, min_duration=minimum)

    def _handle_tracking_sheet(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        s = self.settings
        self._require_columns_only(dataset, [s.site_field, s.consent_field])
        sheet = build_tracking_sheet(
            dataset,
            self.references.targets,
            s.site_field,
            options.get("target_site_field", s.site_field),
            options.get("formulas"),
            options.get("site_order") or (),
            consent_field=s.consent_field,
            consent_values=s.consent_values,
            outcome_labels=options.get("outcome_labels"),
            target_field=options.get("target_field", "target"),
            variance_of=options.get("variance_of"),
        )
        return [], sheet

    def _days(self, dataset: pd.DataFrame) -> pd.Series:
        field = self.settings.submission_date_field or self.settings.start_field

        def _day(value: Any) -> str | None:
            parsed = parse_timestamp(value)
            return parsed.date().isoformat() if parsed else None

        return dataset[field].map(_day)

    def _handle_productivity_outliers(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        s = self.settings
        enumerator = s.enumerator_field
        date_field = s.submission_date_field or s.start_field
        self._require_columns_only(dataset, [enumerator, date_field])
        sdvalue = self._number_option(options, "sdvalue", checks.DEFAULT_SDVALUE)
        completed = dataset[self._consented(dataset)]
        daily = enumerator_daily_average(completed, enumerator, self._days(completed))
        values = dict(zip(daily[enumerator], daily["daily_average"]))
        mean, stddev, flagged = flag_outliers(values, sdvalue)
        report = daily[daily[enumerator].isin(list(flagged))].copy()
        report["mean"] = mean
        report["stddev"] = stddev
        report["z_score"] = report[enumerator].map(flagged)
        report[checks.REASON_COLUMN] = [
            f"daily average {average:.2f} is {abs(z):.2f} sd "
            f"{'above' if z > 0 else 'below'} the mean {mean:.2f}"
            for average, z in zip(report["daily_average"], report["z_score"])
        ]
        return [], report.reset_index(drop=True)

    def _handle_duration_summary(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        s = self.settings
        duration_field = options.get("duration_field")
        self._require_columns_only(
            dataset,
            [s.enumerator_field, duration_field]
            if duration_field
            else [s.enumerator_field, s.start_field, s.end_field],
        )
        completed = dataset[self._consented(dataset)].copy()
        if duration_field:
            minutes = pd.to_numeric(completed[duration_field], errors="coerce")
        else:
            fields = self._time_fields()
            minutes = pd.Series(
                [duration_minutes(row, fields) for _, row in completed.iterrows()],
                index=completed.index,
                dtype=float,
            )
        completed["duration_minutes"] = minutes
        summary = group_summary(completed, s.enumerator_field, "duration_minutes")
        return [], summary

    def _handle_answers_per_question(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        enumerator = self.settings.enumerator_field
        questions = list(self._option(options, "questions"))
        self._require_columns_only(dataset, [enumerator, *questions])
        min_answers = self._number_option(options, "min_answers", 1)
        counts = answer_counts(dataset[self._consented(dataset)], enumerator, questions)
        report = counts[counts["answers"] < min_answers].copy()
        report[checks.REASON_COLUMN] = [
            f"{answers} answers to {question} (minimum {min_answers:g})"
            for question, answers in zip(report["question"], report["answers"])
        ]
        return [], report.reset_index(drop=True)

    def _handle_other_values(
        self, dataset: pd.DataFrame, options: Mapping[str, Any]
    ) -> Evaluation:
        enumerator = self.settings.enumerator_field
        self._require_columns_only(dataset, [enumerator])
        pattern = options.get("pattern") or checks.DEFAULT_OTHER_PATTERN
        try:
            regex = re.compile(str(pattern), re.IGNORECASE)
        except re.error as exc:
            raise ConfigurationError(f"Invalid pattern {pattern!r}: {exc}") from exc
        return [], other_value_counts(dataset, enumerator, regex)
