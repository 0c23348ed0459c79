#!/usr/bin/env python3
"""Generate a dated activity timeline for a crop."""
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

from crop_engine.activity_state import classify_activity
from crop_engine.errors import CropEngineError
from crop_engine.generator import generate
from crop_engine.templates import TemplateRegistry, load_default_registry
from crop_engine.utils import as_date


def load_registry(path: Path | None) -> TemplateRegistry:
    return TemplateRegistry.from_file(path) if path else load_default_registry()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Preview the activity schedule of a crop")
    parser.add_argument("crop", help="Crop name as listed in the templates, e.g. Wheat")
    parser.add_argument("start_date", help="Sowing or transplanting date (YYYY-MM-DD)")
    parser.add_argument("--templates", type=Path, help="Alternative template file (JSON or YAML)")
    parser.add_argument("--today", help="Reference date for labels (defaults to today)")
    parser.add_argument("--output", type=Path, help="Optional path to write the schedule JSON")
    args = parser.parse_args(argv)

    try:
        registry = load_registry(args.templates)
        today = as_date(args.today) if args.today else date.today()
    except CropEngineError as err:
        parser.error(str(err))

    result = generate(args.crop, args.start_date, registry=registry)
    if not result.ok:
        parser.error(str(result.error))
    schedule = result.unwrap()

    payload = schedule.to_payload()
    labels = {item.id: classify_activity(item, today).value for item in schedule.iter_activities()}
    for item in payload["activities"]:
        item["label"] = labels[item["id"]]

    text = json.dumps(payload, indent=2)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text)
    else:
        print(text)


if __name__ == "__main__":  # pragma: no cover
    main()
