from pathlib import Path
import json
import subprocess
import sys

ROOT = Path(__file__).resolve().parents[1]
SCRIPTS = ROOT / "scripts"


def test_generate_schedule_cli(tmp_path: Path):
    out_file = tmp_path / "wheat.json"
    subprocess.run(
        [
            sys.executable,
            str(SCRIPTS / "generate_schedule.py"),
            "Wheat",
            "2024-01-01",
            "--today",
            "2024-01-21",
            "--output",
            str(out_file),
        ],
        check=True,
    )
    data = json.loads(out_file.read_text())
    assert data["expectedHarvestDate"] == "2024-05-30"
    labels = {item["id"]: item["label"] for item in data["activities"]}
    assert labels["Sowing-0"] == "overdue"
    assert labels["Irrigation & Fertilizer-0"] == "today"
    assert labels["Harvesting-0"] == "upcoming"


def test_generate_schedule_unknown_crop():
    result = subprocess.run(
        [sys.executable, str(SCRIPTS / "generate_schedule.py"), "Mango", "2024-01-01"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 2
    assert "Mango" in result.stderr


def test_upcoming_activities_cli():
    result = subprocess.run(
        [
            sys.executable,
            str(SCRIPTS / "upcoming_activities.py"),
            "Wheat",
            "2024-01-01",
            "--today",
            "2024-01-21",
            "--horizon",
            "5",
        ],
        capture_output=True,
        text=True,
        check=True,
    )
    data = json.loads(result.stdout)
    assert [item["id"] for item in data][-2:] == ["Irrigation & Fertilizer-0", "Irrigation & Fertilizer-1"]
    assert data[0]["isOverdue"] is True


def test_list_crops_cli():
    result = subprocess.run(
        [sys.executable, str(SCRIPTS / "list_crops.py"), "--details"],
        capture_output=True,
        text=True,
        check=True,
    )
    data = json.loads(result.stdout)
    assert data["Wheat"]["activities"] == 10
    assert data["Wheat"]["duration"] == {"min": 120, "max": 150}


def test_cli_dispatch():
    result = subprocess.run(
        [sys.executable, "-m", "scripts.cli", "list-crops"],
        capture_output=True,
        text=True,
        check=True,
        cwd=ROOT,
    )
    assert "Wheat" in json.loads(result.stdout)

    listing = subprocess.run(
        [sys.executable, "-m", "scripts.cli", "--list"],
        capture_output=True,
        text=True,
        check=True,
        cwd=ROOT,
    )
    assert "generate-schedule" in listing.stdout


def test_list_crops_missing_template_file(tmp_path: Path):
    result = subprocess.run(
        [sys.executable, str(SCRIPTS / "list_crops.py"), "--templates", str(tmp_path / "none.yaml")],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 2
    assert "not found" in result.stderr
