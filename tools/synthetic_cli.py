"""Orchestrates CSV writing and metadata exports for the synthetic survey generator."""

import csv
import json
import shutil
import textwrap
from datetime import datetime, timezone
from pathlib import Path

try:
    from tools.synthetic_builder import (
        build_interviews,
        build_points,
        build_polygons,
        build_targets,
        stable_id,
    )
except ModuleNotFoundError:
    from synthetic_builder import (
        build_interviews,
        build_points,
        build_polygons,
        build_targets,
        stable_id,
    )

REPO_ROOT = Path(__file__).resolve().parents[1]
RAW_BASE = REPO_ROOT / "data" / "raw"

FIELD_SETS = {
    "survey.csv": (
        "key",
        "enum_id",
        "site",
        "point_id",
        "consent",
        "starttime",
        "endtime",
        "gps_latitude",
        "gps_longitude",
        "hh_size",
        "water_source",
        "water_source_other",
        "income",
    ),
    "targets.csv": ("site", "target", "total_points"),
    "points.csv": ("point_id", "site", "latitude", "longitude", "radius_m"),
}


def write_csv(path: Path, columns: tuple[str, ...], rows: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow(
                {col: (row.get(col) if row.get(col) is not None else "") for col in columns}
            )


def generate_dataset(dataset_name: str, seed: int, force: bool = False, count: int = 30) -> dict:
    raw_path = RAW_BASE / dataset_name / str(seed)
    if raw_path.exists():
        if force:
            shutil.rmtree(raw_path)
        else:
            raise SystemExit(
                f"Run directory {raw_path} already exists. Use --force to overwrite."
            )
    raw_path.mkdir(parents=True, exist_ok=True)

    points = build_points(dataset_name, seed)
    data_map = {
        "survey.csv": build_interviews(dataset_name, seed, points, count),
        "targets.csv": build_targets(),
        "points.csv": points,
    }
    for csv_name, rows in data_map.items():
        write_csv(raw_path / csv_name, FIELD_SETS[csv_name], rows)
    (raw_path / "sites.geojson").write_text(json.dumps(build_polygons(), indent=2))

    metadata = {
        "dataset_name": dataset_name,
        "seed": seed,
        "run_id": stable_id("run", str(seed), dataset_name, seed),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    (raw_path / "run_metadata.json").write_text(json.dumps(metadata, indent=2))

    print(
        textwrap.dedent(
            f"""\
            Generated synthetic survey "{dataset_name}" with seed {seed}.
            Exports written under {raw_path}.
            Run ID: {metadata['run_id']}.
            """
        ).strip()
    )
    return metadata
