"""Timestamp parsing and start/end consistency rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from dateutil import parser as date_parser

from hfc.engine.records import is_missing


@dataclass(frozen=True)
class TimeFields:
    start: str
    end: str


def parse_timestamp(value: Any) -> datetime | None:
    if is_missing(value):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError, date_parser.ParserError):
            return None
    if hasattr(parsed, "to_pydatetime"):
        parsed = parsed.to_pydatetime()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _interval(
    record: Mapping[str, Any], fields: TimeFields
) -> tuple[datetime | None, datetime | None, str | None]:
    start = parse_timestamp(record.get(fields.start))
    end = parse_timestamp(record.get(fields.end))
    if start is None or end is None:
        bad = [
            name
            for name, parsed in ((fields.start, start), (fields.end, end))
            if parsed is None
        ]
        return start, end, f"missing or unparsable timestamp in {', '.join(bad)}"
    return start, end, None


def end_before_start(record: Mapping[str, Any], fields: TimeFields) -> str | None:
    start, end, malformed = _interval(record, fields)
    if malformed:
        return malformed
    if end < start:
        return f"{fields.end} ({end:%Y-%m-%d %H:%M}) is before {fields.start} ({start:%Y-%m-%d %H:%M})"
    return None


def cross_day(record: Mapping[str, Any], fields: TimeFields) -> str | None:
    start, end, malformed = _interval(record, fields)
    if malformed:
        return malformed
    if end.date() != start.date():
        return f"interview spans {start:%Y-%m-%d} to {end:%Y-%m-%d}"
    return None


def future_date(
    record: Mapping[str, Any], fields: TimeFields, now: datetime
) -> str | None:
    start, end, malformed = _interval(record, fields)
    if malformed:
        return malformed
    now = parse_timestamp(now)
    late = [
        name for name, stamp in ((fields.start, start), (fields.end, end)) if stamp > now
    ]
    if late:
        return f"{', '.join(late)} after evaluation time {now:%Y-%m-%d %H:%M}"
    return None


def pre_collection(
    record: Mapping[str, Any], fields: TimeFields, official_start_date: Any
) -> str | None:
    start = parse_timestamp(record.get(fields.start))
    if start is None:
        return f"missing or unparsable timestamp in {fields.start}"
    official = parse_timestamp(official_start_date)
    if start < official:
        return f"{fields.start} ({start:%Y-%m-%d}) is before data collection began ({official:%Y-%m-%d})"
    return None


def short_duration(
    record: Mapping[str, Any], fields: TimeFields, min_duration: float
) -> str | None:
    start, end, malformed = _interval(record, fields)
    if malformed:
        return malformed
    duration = end - start
    if duration < timedelta(minutes=min_duration):
        minutes = duration.total_seconds() / 60
        return f"duration {minutes:.1f} min is below minimum {min_duration:g} min"
    return None


def duration_minutes(record: Mapping[str, Any], fields: TimeFields) -> float | None:
    start, end, malformed = _interval(record, fields)
    if malformed:
        return None
    return (end - start).total_seconds() / 60


TemporalRule = Callable[..., "str | None"]

TEMPORAL_RULES: dict[str, TemporalRule] = {
    "end_before_start": end_before_start,
    "cross_day": cross_day,
    "future_date": future_date,
    "pre_collection": pre_collection,
    "short_duration": short_duration,
}
