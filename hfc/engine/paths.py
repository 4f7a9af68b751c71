"""Path helpers for audit configuration and outputs."""

from __future__ import annotations

from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[2]
PIPELINE_PATH = REPO_ROOT / "hfc" / "config" / "checks.yml"
REPORTS_BASE = REPO_ROOT / "reports"
LATEST_REPORT_DIR = REPORTS_BASE / "latest"
