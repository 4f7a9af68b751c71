#!/usr/bin/env python3
"""CLI that runs the configured check pipeline over a survey export."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import pandas as pd

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from hfc.engine.geo import SamplePoint, polygons_from_geojson
from hfc.engine.models import AuditReferences, AuditSummary
from hfc.engine.paths import LATEST_REPORT_DIR, PIPELINE_PATH
from hfc.engine.report import format_report
from hfc.engine.runner import AuditRunner
from hfc.engine.temporal import parse_timestamp
from hfc.logger import configure_logging

DEFAULT_RADIUS_M = 50.0


def load_points(path: Path, default_radius: float) -> dict[str, SamplePoint]:
    frame = pd.read_csv(path, dtype={"point_id": str})
    missing = {"point_id", "latitude", "longitude"} - set(frame.columns)
    if missing:
        raise SystemExit(f"Sample points file {path} lacks columns: {', '.join(sorted(missing))}")
    points: dict[str, SamplePoint] = {}
    for row in frame.itertuples(index=False):
        radius = getattr(row, "radius_m", default_radius)
        points[str(row.point_id).strip()] = SamplePoint(
            point_id=str(row.point_id).strip(),
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            radius_m=default_radius if pd.isna(radius) else float(radius),
        )
    return points


def build_references(args: argparse.Namespace) -> AuditReferences:
    references = AuditReferences(now=parse_timestamp(args.now) if args.now else None)
    if args.targets:
        if not args.targets.exists():
            raise SystemExit(f"Targets file not found at {args.targets}")
        references.targets = pd.read_csv(args.targets)
    if args.polygons:
        if not args.polygons.exists():
            raise SystemExit(f"Polygon file not found at {args.polygons}")
        payload = json.loads(args.polygons.read_text())
        references.polygons = polygons_from_geojson(payload, args.join_key)
    if args.points:
        if not args.points.exists():
            raise SystemExit(f"Sample points file not found at {args.points}")
        references.points = load_points(args.points, args.default_radius)
    return references


def write_outputs(summary: AuditSummary, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    for result in summary.results:
        result.report.to_csv(output_dir / f"{result.name or result.check_id}.csv", index=False)
    summary.issue_log.to_csv(output_dir / "issue_log.csv", index=False)
    summary.dataset.to_csv(output_dir / "cleaned_dataset.csv", index=False)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run high-frequency checks over a survey export."
    )
    parser.add_argument("--dataset", type=Path, required=True, help="Survey export (CSV).")
    parser.add_argument(
        "--config",
        type=Path,
        default=PIPELINE_PATH,
        help="Pipeline YAML with settings and ordered checks.",
    )
    parser.add_argument("--targets", type=Path, help="Per-site sampling targets (CSV).")
    parser.add_argument("--polygons", type=Path, help="Site areas as GeoJSON.")
    parser.add_argument(
        "--join-key", default="site", help="GeoJSON property holding the site name."
    )
    parser.add_argument("--points", type=Path, help="Sample points (CSV).")
    parser.add_argument(
        "--default-radius",
        type=float,
        default=DEFAULT_RADIUS_M,
        help="Buffer radius in metres for points without radius_m.",
    )
    parser.add_argument("--now", help="Override the evaluation time for future-date checks.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=LATEST_REPORT_DIR,
        help="Directory that receives one CSV per check.",
    )
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-format", choices=["console", "json"], default="console")
    args = parser.parse_args()

    configure_logging(args.log_level, args.log_format)
    if not args.dataset.exists():
        raise SystemExit(f"Dataset not found at {args.dataset}")
    if not args.config.exists():
        raise SystemExit(f"Pipeline config not found at {args.config}")

    dataset = pd.read_csv(args.dataset, dtype=str, keep_default_na=False)
    runner = AuditRunner.from_config(args.config, build_references(args))
    summary = runner.run(dataset)
    write_outputs(summary, args.output_dir)

    for result in summary.results:
        print(f"== {result.name or result.check_id}")
        print(format_report(result))
    print(
        f"Audit complete · {len(summary.results)} checks · "
        f"{len(summary.dataset)} records kept · reports under {args.output_dir}"
    )


if __name__ == "__main__":
    main()
