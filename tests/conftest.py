from __future__ import annotations

from dataclasses import replace
from datetime import date
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crop_engine.log_utils import reset_warnings  # noqa: E402
from crop_engine.generator import generate  # noqa: E402
from crop_engine.schedule import Schedule  # noqa: E402
from crop_engine.templates import TemplateRegistry, clear_registry_cache  # noqa: E402

SAMPLE_TEMPLATES = {
    "Basil": {
        "duration": {"min": 40, "max": 60},
        "stages": [
            {
                "name": "Nursery",
                "dayOffset": -10,
                "duration": 10,
                "activities": [
                    {"task": "Sow trays", "day": 0},
                    {"task": "Prick out", "day": 7},
                ],
            },
            {
                "name": "Growing",
                "dayOffset": 0,
                "duration": 50,
                "activities": [
                    {"task": "Transplant", "day": 0},
                    {"task": "Pinch tips", "day": 14},
                ],
            },
        ],
    },
    "Fallow": {
        "duration": {"min": 30, "max": 30},
        "stages": [{"name": "Rest", "dayOffset": 0, "duration": 30, "activities": []}],
    },
}


@pytest.fixture(autouse=True)
def _reset_state():
    reset_warnings()
    clear_registry_cache()
    yield
    clear_registry_cache()


@pytest.fixture
def registry() -> TemplateRegistry:
    return TemplateRegistry.from_mapping(SAMPLE_TEMPLATES)


@pytest.fixture
def basil(registry: TemplateRegistry) -> Schedule:
    return generate("Basil", date(2024, 3, 1), registry=registry).unwrap()


@pytest.fixture
def saved_basil(basil: Schedule) -> Schedule:
    return replace(basil, id="sched-1")
