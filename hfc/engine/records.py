"""Record store helpers over pandas DataFrames."""

from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from hfc.engine.config import ConfigurationError, normalize_code
from hfc.engine.constants import FLAG_COLUMN


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def missing_mask(series: pd.Series) -> pd.Series:
    return series.map(is_missing).astype(bool)


def require_columns(frame: pd.DataFrame, columns: Iterable[str | None]) -> None:
    wanted = [column for column in columns if column]
    missing = [column for column in wanted if column not in frame.columns]
    if missing:
        raise ConfigurationError(f"Missing dataset columns: {', '.join(missing)}")


def active_mask(frame: pd.DataFrame) -> pd.Series:
    """Rows not already marked for deletion by an earlier check."""
    if FLAG_COLUMN not in frame.columns:
        return pd.Series(True, index=frame.index)
    return ~frame[FLAG_COLUMN].fillna(False).astype(bool)


def consent_mask(
    frame: pd.DataFrame, consent_field: str | None, consent_values: Iterable[str]
) -> pd.Series:
    values = set(consent_values)
    if not consent_field or not values:
        return pd.Series(True, index=frame.index)
    codes = frame[consent_field].map(
        lambda value: None if is_missing(value) else normalize_code(value)
    )
    return codes.isin(values)


def mark_flagged(frame: pd.DataFrame, index: Iterable[Any]) -> pd.DataFrame:
    """Mark rows for deletion in place, keeping them in the dataset."""
    if FLAG_COLUMN not in frame.columns:
        frame[FLAG_COLUMN] = False
    labels = list(index)
    if labels:
        frame.loc[labels, FLAG_COLUMN] = True
    return frame


def drop_flagged(frame: pd.DataFrame, index: Iterable[Any]) -> pd.DataFrame:
    labels = list(dict.fromkeys(index))
    if not labels:
        return frame
    return frame.drop(index=labels)
