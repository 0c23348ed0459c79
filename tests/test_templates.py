from __future__ import annotations

import copy
import dataclasses
import json
from pathlib import Path

import pytest

from crop_engine.errors import TemplateConfigError, UnknownCropTemplate
from crop_engine.templates import TemplateRegistry, load_default_registry, parse_template

from conftest import SAMPLE_TEMPLATES


def test_bundled_templates_cover_known_crops():
    registry = load_default_registry()
    assert len(registry) == 13
    assert {"Rice", "Wheat", "Tomato", "Sunflower"} <= set(registry.crop_names())
    wheat = registry.get("Wheat")
    assert (wheat.duration.min_days, wheat.duration.max_days) == (120, 150)
    assert [stage.name for stage in wheat.stages] == [
        "Land Preparation",
        "Sowing",
        "Irrigation & Fertilizer",
        "Harvesting",
    ]
    assert wheat.activity_count == 10
    assert wheat.stages[0].day_offset == -15


def test_lookup_is_exact_and_case_sensitive(registry):
    assert registry.lookup("Basil") is not None
    assert registry.lookup("basil") is None
    assert registry.lookup("Basil ") is None
    assert "Basil" in registry
    with pytest.raises(UnknownCropTemplate) as err:
        registry.get("Mint")
    assert err.value.crop_name == "Mint"


def test_templates_are_immutable(registry):
    template = registry.get("Basil")
    assert isinstance(template.stages, tuple)
    assert isinstance(template.stages[0].activities, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        template.stages[0].name = "Changed"  # type: ignore[misc]
    assert registry.get("Basil").stages[0].name == "Nursery"


def test_stage_without_activities_defaults_to_empty(registry):
    fallow = registry.get("Fallow")
    assert fallow.stages[0].activities == ()
    assert fallow.activity_count == 0


def test_duplicate_stage_names_rejected():
    data = copy.deepcopy(SAMPLE_TEMPLATES["Basil"])
    data["stages"][1]["name"] = "Nursery"
    with pytest.raises(TemplateConfigError) as err:
        parse_template("Basil", data)
    assert "duplicate stage name" in str(err.value)
    assert err.value.crop == "Basil"


@pytest.mark.parametrize(
    "mutate, fragment",
    [
        (lambda d: d["duration"].update(min=90), "exceeds max"),
        (lambda d: d["stages"][0].update(duration=-1), "non-negative"),
        (lambda d: d["stages"][0]["activities"][0].update(day="3"), "expected integer"),
        (lambda d: d["stages"][0].pop("dayOffset"), "required"),
        (lambda d: d["stages"][0].update(name="  "), "non-empty"),
    ],
)
def test_invalid_templates_report_reason(mutate, fragment):
    data = copy.deepcopy(SAMPLE_TEMPLATES["Basil"])
    mutate(data)
    with pytest.raises(TemplateConfigError) as err:
        parse_template("Basil", data)
    assert fragment in str(err.value)


def test_invalid_template_reports_path():
    data = copy.deepcopy(SAMPLE_TEMPLATES["Basil"])
    data["stages"][1]["activities"][1]["day"] = 1.5
    with pytest.raises(TemplateConfigError) as err:
        parse_template("Basil", data)
    assert err.value.path == "stages.1.activities.1.day"


def test_from_mapping_requires_mapping():
    with pytest.raises(TemplateConfigError):
        TemplateRegistry.from_mapping(["Basil"])


def test_from_file_reads_yaml(tmp_path: Path):
    path = tmp_path / "templates.yaml"
    path.write_text(
        """
Radish:
  duration: {min: 25, max: 30}
  stages:
    - name: Sowing
      dayOffset: 0
      duration: 2
      activities:
        - {task: Direct sow, day: 0}
""",
        encoding="utf-8",
    )
    registry = TemplateRegistry.from_file(path)
    assert registry.crop_names() == ["Radish"]
    assert registry.get("Radish").stages[0].activities[0].task == "Direct sow"


def test_from_file_invalid_json(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(TemplateConfigError) as err:
        TemplateRegistry.from_file(path)
    assert "broken.json" in str(err.value)


def test_data_dir_override(tmp_path: Path, monkeypatch):
    (tmp_path / "crop_templates.json").write_text(json.dumps({"Fallow": SAMPLE_TEMPLATES["Fallow"]}))
    monkeypatch.setenv("CROP_ENGINE_DATA_DIR", str(tmp_path))
    registry = load_default_registry()
    assert registry.crop_names() == ["Fallow"]
    assert load_default_registry() is registry


def test_from_file_missing(tmp_path: Path):
    with pytest.raises(TemplateConfigError) as err:
        TemplateRegistry.from_file(tmp_path / "absent.json")
    assert "not found" in str(err.value)
