"""Per-site tracking sheet comparing achieved and targeted interview counts."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import pandas as pd

from hfc.engine.config import ConfigurationError, normalize_code
from hfc.engine.formula import check_operands, evaluate, parse_formula
from hfc.engine.records import active_mask, consent_mask, is_missing

BASE_COLUMNS = ("submitted", "done", "deleted")
NO_SITE = "(no site)"


def _site_name(value: Any) -> str:
    return NO_SITE if is_missing(value) else str(value).strip()


def _site_key(value: Any) -> str:
    return _site_name(value).casefold()


def _display_names(*columns: Iterable[Any]) -> dict[str, str]:
    """First spelling seen for each site key; earlier columns take precedence."""
    names: dict[str, str] = {}
    for column in columns:
        for value in column:
            names.setdefault(_site_key(value), _site_name(value))
    return names


def _outcome_label(code: str, outcome_labels: Mapping[str, str]) -> str:
    return outcome_labels.get(code) or f"outcome_{code}"


def _ordered_sites(
    site_order: Iterable[str], target_sites: list[str], data_sites: list[str]
) -> list[str]:
    ordered = [_site_key(site) for site in site_order]
    for site in (*target_sites, *sorted(data_sites)):
        if site not in ordered:
            ordered.append(site)
    return ordered


def _target_table(
    targets: pd.DataFrame | None, target_site_field: str, target_field: str
) -> tuple[pd.DataFrame, list[str]]:
    if targets is None:
        raise ConfigurationError("Tracking sheet requires sampling targets")
    for column in (target_site_field, target_field):
        if column not in targets.columns:
            raise ConfigurationError(f"Missing target column: {column}")
    table = targets.copy()
    table["_site"] = table[target_site_field].map(_site_key)
    numeric = [target_field] + [
        column
        for column in table.columns
        if column not in (target_site_field, target_field, "_site")
        and pd.api.types.is_numeric_dtype(table[column])
    ]
    for column in numeric:
        table[column] = pd.to_numeric(table[column], errors="coerce")
    table = table.drop_duplicates("_site", keep="first").set_index("_site")
    return table[numeric], numeric


def build_tracking_sheet(
    dataset: pd.DataFrame,
    targets: pd.DataFrame | None,
    site_field: str,
    target_site_field: str,
    formulas: Mapping[str, str] | None = None,
    site_order: Iterable[str] = (),
    *,
    consent_field: str | None = None,
    consent_values: Iterable[str] = (),
    outcome_labels: Mapping[Any, str] | None = None,
    target_field: str = "target",
    variance_of: str | None = None,
) -> pd.DataFrame:
    formulas = dict(formulas or {})
    labels = {normalize_code(code): str(label) for code, label in (outcome_labels or {}).items()}
    target_values, target_columns = _target_table(targets, target_site_field, target_field)

    sites = dataset[site_field].map(_site_key)
    done = consent_mask(dataset, consent_field, consent_values)
    if consent_field and not set(consent_values):
        done = pd.Series(False, index=dataset.index)
    deleted = ~active_mask(dataset)

    counts = pd.DataFrame(
        {
            "_site": sites,
            "submitted": 1,
            "done": done.astype(int),
            "deleted": deleted.astype(int),
        },
        index=dataset.index,
    )
    outcome_columns: list[str] = list(dict.fromkeys(labels.values()))
    if consent_field:
        codes = dataset[consent_field].map(
            lambda value: None if is_missing(value) else normalize_code(value)
        )
        for code in sorted(codes.dropna().unique()):
            label = _outcome_label(code, labels)
            if label in BASE_COLUMNS:
                continue
            counts[label] = counts.get(label, 0) + (codes == code).astype(int)
            if label not in outcome_columns:
                outcome_columns.append(label)
    for label in outcome_columns:
        if label not in counts.columns:
            counts[label] = 0
    count_columns = list(BASE_COLUMNS) + [
        label for label in outcome_columns if label not in BASE_COLUMNS
    ]
    grouped = counts.groupby("_site")[count_columns].sum()

    known = set(count_columns) | set(target_columns)
    parsed = {}
    for name, text in formulas.items():
        expr = parse_formula(text)
        check_operands(expr, known, text)
        parsed[name] = expr
    if variance_of and variance_of not in parsed:
        raise ConfigurationError(f"variance_of refers to unknown formula: {variance_of}")
    variance_source = variance_of or (next(iter(parsed)) if parsed else None)

    site_order = list(site_order)
    names = _display_names(targets[target_site_field], dataset[site_field], site_order)
    order = _ordered_sites(
        site_order, list(target_values.index), list(grouped.index)
    )
    rows: list[dict[str, object]] = []
    for site in order:
        values: dict[str, float] = {
            column: float(grouped.at[site, column]) if site in grouped.index else 0.0
            for column in count_columns
        }
        for column in target_columns:
            values[column] = (
                float(target_values.at[site, column])
                if site in target_values.index
                else float("nan")
            )
        row: dict[str, object] = {site_field: names[site]}
        row.update({column: int(values[column]) for column in count_columns})
        results = {name: evaluate(expr, values) for name, expr in parsed.items()}
        row.update(results)
        row.update({column: values[column] for column in target_columns})
        achieved = results[variance_source] if variance_source else values["done"]
        row["variance"] = achieved - values[target_field]
        rows.append(row)

    columns = (
        [site_field] + count_columns + list(parsed) + target_columns + ["variance"]
    )
    return pd.DataFrame(rows, columns=columns)
