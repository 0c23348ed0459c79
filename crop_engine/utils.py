"""Utility helpers for reading template files and normalising dates."""

from __future__ import annotations

import json
import os
from datetime import date, datetime
from os import PathLike
from pathlib import Path
from typing import Any, Callable, Union

import yaml

from .const import DATA_DIR_ENV
from .errors import InvalidStartDate

__all__ = [
    "load_data",
    "get_data_dir",
    "as_date",
    "format_date",
]


PathType = Union[str, PathLike]

# Bundled template files live next to the package. ``CROP_ENGINE_DATA_DIR``
# points the registry at a different directory without touching the code.
DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"

_YAML_SUFFIXES = {".yaml", ".yml"}


def _parser_for(path: Path) -> tuple[str, Callable[[str], Any], type[Exception]]:
    if path.suffix.lower() in _YAML_SUFFIXES:
        return "YAML", yaml.safe_load, yaml.YAMLError
    return "JSON", json.loads, json.JSONDecodeError


def load_data(path: PathType) -> Any:
    """Return the parsed contents of a JSON or YAML template file.

    Missing files raise :class:`FileNotFoundError`; undecodable contents raise
    :class:`ValueError` naming the file. An empty YAML document reads as ``{}``.
    """

    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(p)
    kind, parse, error_type = _parser_for(p)
    text = p.read_text(encoding="utf-8")
    try:
        data = parse(text)
    except error_type as exc:
        raise ValueError(f"Invalid {kind} in {p}: {exc}") from exc
    return {} if data is None else data


def get_data_dir() -> Path:
    """Return template directory honoring the ``CROP_ENGINE_DATA_DIR`` env."""

    env = os.getenv(DATA_DIR_ENV)
    return Path(env).expanduser() if env else DEFAULT_DATA_DIR


def as_date(value: Any) -> date:
    """Return ``value`` as a calendar date with any time component dropped.

    Accepts :class:`date`, :class:`datetime` and ISO formatted strings. A
    timestamp string is truncated to its date part in its own timezone so
    no UTC conversion can shift the day.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) > 10:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            return date.fromisoformat(text)
        except ValueError as err:
            raise InvalidStartDate(value) from err
    raise InvalidStartDate(value)


def format_date(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None
