"""Helpers for loading audit settings and check pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import yaml


class ConfigurationError(ValueError):
    """A check references a field, option or reference that does not exist."""


@dataclass(frozen=True)
class AuditSettings:
    unique_id: str = "key"
    consent_field: str | None = "consent"
    consent_values: tuple[str, ...] = ("1",)
    enumerator_field: str = "enum_id"
    site_field: str = "site"
    start_field: str = "starttime"
    end_field: str = "endtime"
    latitude_field: str = "gps_latitude"
    longitude_field: str = "gps_longitude"
    submission_date_field: str | None = None
    reporting_columns: tuple[str, ...] = ("key", "enum_id", "site")
    delete_flagged: bool = False


@dataclass(frozen=True)
class CheckSpec:
    id: str
    check: str
    description: str = ""
    options: dict[str, Any] = field(default_factory=dict)


def normalize_code(value: Any) -> str:
    """Render a consent/outcome code as a comparable string (``1.0`` -> ``"1"``)."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    if text.endswith(".0") and text[:-2].lstrip("-").isdigit():
        text = text[:-2]
    return text


TRUE_WORDS = {"true", "yes", "y", "on", "1"}
FALSE_WORDS = {"false", "no", "n", "off", "0", ""}


def parse_flag(value: Any, name: str, default: bool = False) -> bool:
    """Read a yes/no option; quoted strings such as ``"false"`` are parsed, not truth-tested."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    raise ConfigurationError(f"Option '{name}' must be true or false, got {value!r}")


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, int, float)):
        return (str(value),)
    return tuple(str(item) for item in value)


def settings_from_mapping(raw: dict[str, Any] | None) -> AuditSettings:
    raw = raw or {}
    defaults = AuditSettings()
    consent_values = raw.get("consent_values", defaults.consent_values)
    return AuditSettings(
        unique_id=str(raw.get("unique_id", defaults.unique_id)),
        consent_field=raw.get("consent_field", defaults.consent_field),
        consent_values=tuple(normalize_code(v) for v in _as_tuple(consent_values)),
        enumerator_field=str(raw.get("enumerator_field", defaults.enumerator_field)),
        site_field=str(raw.get("site_field", defaults.site_field)),
        start_field=str(raw.get("start_field", defaults.start_field)),
        end_field=str(raw.get("end_field", defaults.end_field)),
        latitude_field=str(raw.get("latitude_field", defaults.latitude_field)),
        longitude_field=str(raw.get("longitude_field", defaults.longitude_field)),
        submission_date_field=raw.get(
            "submission_date_field", defaults.submission_date_field
        ),
        reporting_columns=_as_tuple(
            raw.get("reporting_columns", defaults.reporting_columns)
        ),
        delete_flagged=parse_flag(
            raw.get("delete_flagged"), "delete_flagged", defaults.delete_flagged
        ),
    )


def load_pipeline(path: Path) -> tuple[AuditSettings, list[CheckSpec]]:
    raw = yaml.safe_load(path.read_text()) or {}
    settings = settings_from_mapping(raw.get("settings"))
    entries: Iterable[dict[str, Any]] = raw.get("checks") or []
    checks: list[CheckSpec] = []
    for entry in entries:
        check = entry.get("check") or entry.get("id")
        if not check:
            raise ConfigurationError(f"Pipeline entry without a check name: {entry!r}")
        checks.append(
            CheckSpec(
                id=str(entry.get("id", check)),
                check=str(check),
                description=entry.get("description", ""),
                options=dict(entry.get("options") or {}),
            )
        )
    return settings, checks
