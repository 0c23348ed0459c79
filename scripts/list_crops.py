#!/usr/bin/env python3
"""List crops with schedule templates."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
from scripts import ensure_repo_root_on_path

ROOT = ensure_repo_root_on_path()

from crop_engine.errors import TemplateConfigError
from crop_engine.templates import TemplateRegistry, load_default_registry


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="List crops that have schedule templates")
    parser.add_argument("--templates", type=Path, help="Alternative template file (JSON or YAML)")
    parser.add_argument("--details", action="store_true", help="Include durations and activity counts")
    args = parser.parse_args(argv)

    try:
        registry = TemplateRegistry.from_file(args.templates) if args.templates else load_default_registry()
    except TemplateConfigError as err:
        parser.error(str(err))
    if not args.details:
        print(json.dumps(registry.crop_names(), indent=2))
        return
    details = {
        template.crop_name: {
            "duration": {"min": template.duration.min_days, "max": template.duration.max_days},
            "stages": [stage.name for stage in template.stages],
            "activities": template.activity_count,
        }
        for template in registry
    }
    print(json.dumps(details, indent=2))


if __name__ == "__main__":  # pragma: no cover
    main()
