#!/usr/bin/env python3
"""List overdue and upcoming activities for a planned crop."""
from __future__ import annotations

import argparse
import json
from datetime import date
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
from scripts import ensure_repo_root_on_path

ROOT = ensure_repo_root_on_path()

from crop_engine.const import DEFAULT_HORIZON_DAYS
from crop_engine.errors import CropEngineError
from crop_engine.generator import generate
from crop_engine.reminders import upcoming
from crop_engine.templates import TemplateRegistry, load_default_registry
from crop_engine.utils import as_date


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Show activities due within the reminder horizon")
    parser.add_argument("crop", help="Crop name as listed in the templates")
    parser.add_argument("start_date", help="Schedule start date (YYYY-MM-DD)")
    parser.add_argument("--today", help="Reference date (defaults to today)")
    parser.add_argument(
        "--horizon",
        type=int,
        default=DEFAULT_HORIZON_DAYS,
        help=f"Look-ahead window in days (default {DEFAULT_HORIZON_DAYS})",
    )
    parser.add_argument("--templates", type=Path, help="Alternative template file (JSON or YAML)")
    args = parser.parse_args(argv)

    if args.horizon < 0:
        parser.error("--horizon must be non-negative")
    try:
        registry = TemplateRegistry.from_file(args.templates) if args.templates else load_default_registry()
        today = as_date(args.today) if args.today else date.today()
    except CropEngineError as err:
        parser.error(str(err))

    result = generate(args.crop, args.start_date, registry=registry)
    if not result.ok:
        parser.error(str(result.error))

    entries = upcoming(result.unwrap(), today, args.horizon)
    print(json.dumps([entry.to_dict() for entry in entries], indent=2))


if __name__ == "__main__":  # pragma: no cover
    main()
