"""Helpers for resolving check options and required columns."""

from __future__ import annotations

from typing import Any, Mapping

import pandas as pd

from hfc.engine.config import AuditSettings, ConfigurationError
from hfc.engine.records import consent_mask, require_columns
from hfc.engine.temporal import TimeFields

_REQUIRED = object()


class OptionResolverMixin:
    settings: AuditSettings

    @staticmethod
    def _option(options: Mapping[str, Any], name: str, default: Any = _REQUIRED) -> Any:
        value = options.get(name)
        if value is None:
            if default is _REQUIRED:
                raise ConfigurationError(f"Missing required option '{name}'")
            return default
        return value

    def _number_option(
        self, options: Mapping[str, Any], name: str, default: Any = _REQUIRED
    ) -> float | None:
        value = self._option(options, name, default)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Option '{name}' must be numeric, got {value!r}") from exc

    def _require(self, dataset: pd.DataFrame, *columns: str | None) -> None:
        require_columns(dataset, [*self.settings.reporting_columns, *columns])

    @staticmethod
    def _require_columns_only(dataset: pd.DataFrame, columns: list[str | None]) -> None:
        require_columns(dataset, columns)

    def _time_fields(self) -> TimeFields:
        return TimeFields(start=self.settings.start_field, end=self.settings.end_field)

    def _consented(self, dataset: pd.DataFrame) -> pd.Series:
        require_columns(dataset, [self.settings.consent_field])
        return consent_mask(
            dataset, self.settings.consent_field, self.settings.consent_values
        )
