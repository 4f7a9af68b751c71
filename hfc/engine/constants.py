"""Shared constants for audit checks."""

from __future__ import annotations

FLAG_COLUMN = "hfc_flagged"
REASON_COLUMN = "reason"

DUPLICATE_ID = "duplicate_id"
MISSING_VALUES = "missing_values"
SITE_MISMATCH = "site_mismatch"
GPS_BUFFER = "gps_buffer"
END_BEFORE_START = "end_before_start"
CROSS_DAY = "cross_day"
FUTURE_DATE = "future_date"
PRE_COLLECTION = "pre_collection"
SHORT_DURATION = "short_duration"
TRACKING_SHEET = "tracking_sheet"
PRODUCTIVITY_OUTLIERS = "productivity_outliers"
DURATION_SUMMARY = "duration_summary"
ANSWERS_PER_QUESTION = "answers_per_question"
OTHER_VALUES = "other_values"

ISSUE_TYPE_MAP = {
    DUPLICATE_ID: "duplicate",
    MISSING_VALUES: "missing",
    SITE_MISMATCH: "location",
    GPS_BUFFER: "location",
    END_BEFORE_START: "inconsistency",
    CROSS_DAY: "inconsistency",
    FUTURE_DATE: "invalid",
    PRE_COLLECTION: "invalid",
    SHORT_DURATION: "invalid",
    TRACKING_SHEET: "summary",
    PRODUCTIVITY_OUTLIERS: "productivity",
    DURATION_SUMMARY: "summary",
    ANSWERS_PER_QUESTION: "productivity",
    OTHER_VALUES: "summary",
}

EARTH_RADIUS_M = 6_371_008.8
DEFAULT_SDVALUE = 2.0
DEFAULT_OTHER_PATTERN = r"_oth(er)?$"
NO_ERRORS_MESSAGE = "No errors found for {check_id}."
