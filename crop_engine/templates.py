"""Crop growth-stage templates and the registry that serves them.

Templates are read-only configuration. Every value handed out by the
registry is a frozen dataclass holding tuples, so callers can never mutate
shared template state. The registry itself is an ordinary object that is
passed to the generator, which lets tests substitute fabricated templates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import voluptuous as vol

from .const import TEMPLATES_FILE
from .errors import TemplateConfigError, UnknownCropTemplate
from .utils import PathType, get_data_dir, load_data

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ActivityTemplate",
    "StageTemplate",
    "DurationRange",
    "CropTemplate",
    "TemplateRegistry",
    "TEMPLATE_SCHEMA",
    "load_default_registry",
    "clear_registry_cache",
]


@dataclass(slots=True, frozen=True)
class ActivityTemplate:
    """Single task of a stage, offset in days from the stage start."""

    task: str
    day_offset: int


@dataclass(slots=True, frozen=True)
class StageTemplate:
    """Named cultivation phase offset in days from the schedule start."""

    name: str
    day_offset: int
    duration_days: int
    activities: tuple[ActivityTemplate, ...] = ()


@dataclass(slots=True, frozen=True)
class DurationRange:
    min_days: int
    max_days: int


@dataclass(slots=True, frozen=True)
class CropTemplate:
    """Complete growth-stage definition for one crop."""

    crop_name: str
    duration: DurationRange
    stages: tuple[StageTemplate, ...]

    @property
    def activity_count(self) -> int:
        return sum(len(stage.activities) for stage in self.stages)


def _integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise vol.Invalid(f"expected integer, got {value!r}")
    return value


def _text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise vol.Invalid("expected non-empty text")
    return value.strip()


def _non_negative(value: Any) -> int:
    value = _integer(value)
    if value < 0:
        raise vol.Invalid(f"expected a non-negative value, got {value}")
    return value


def _ordered_duration(value: Mapping[str, int]) -> Mapping[str, int]:
    if value["min"] > value["max"]:
        raise vol.Invalid(f"duration min {value['min']} exceeds max {value['max']}")
    return value


def _unique_stage_names(stages: list[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    # Activity ids are derived from the stage name, so names must not repeat.
    seen: set[str] = set()
    for stage in stages:
        name = stage["name"]
        if name in seen:
            raise vol.Invalid(f"duplicate stage name {name!r}")
        seen.add(name)
    return stages


ACTIVITY_SCHEMA = vol.Schema(
    {
        vol.Required("task"): _text,
        vol.Required("day"): _integer,
    },
    extra=vol.ALLOW_EXTRA,
)

STAGE_SCHEMA = vol.Schema(
    {
        vol.Required("name"): _text,
        vol.Required("dayOffset"): _integer,
        vol.Required("duration"): _non_negative,
        vol.Required("activities", default=list): [ACTIVITY_SCHEMA],
    },
    extra=vol.ALLOW_EXTRA,
)

TEMPLATE_SCHEMA = vol.Schema(
    {
        vol.Required("duration"): vol.All(
            vol.Schema(
                {
                    vol.Required("min"): _non_negative,
                    vol.Required("max"): _non_negative,
                }
            ),
            _ordered_duration,
        ),
        vol.Required("stages"): vol.All([STAGE_SCHEMA], _unique_stage_names),
    },
    extra=vol.ALLOW_EXTRA,
)


def _format_path(path: Iterable[Any]) -> str:
    return ".".join(str(part) for part in path)


def parse_template(crop_name: str, payload: Any) -> CropTemplate:
    """Validate a raw template mapping and return a :class:`CropTemplate`."""

    try:
        data = TEMPLATE_SCHEMA(payload)
    except vol.MultipleInvalid as err:
        path = _format_path(err.path)
        raise TemplateConfigError(
            f"invalid template for {crop_name!r} at {path or '<root>'}: {err.msg}",
            crop=crop_name,
            path=path,
        ) from err
    except vol.Invalid as err:
        raise TemplateConfigError(f"invalid template for {crop_name!r}: {err}", crop=crop_name) from err

    stages = tuple(
        StageTemplate(
            name=stage["name"],
            day_offset=stage["dayOffset"],
            duration_days=stage["duration"],
            activities=tuple(
                ActivityTemplate(task=activity["task"], day_offset=activity["day"])
                for activity in stage["activities"]
            ),
        )
        for stage in data["stages"]
    )
    duration = data["duration"]
    return CropTemplate(
        crop_name=crop_name,
        duration=DurationRange(min_days=duration["min"], max_days=duration["max"]),
        stages=stages,
    )


class TemplateRegistry:
    """Immutable lookup table from exact crop name to :class:`CropTemplate`."""

    __slots__ = ("_templates",)

    def __init__(self, templates: Iterable[CropTemplate] = ()) -> None:
        table: dict[str, CropTemplate] = {}
        for template in templates:
            if template.crop_name in table:
                raise TemplateConfigError(
                    f"duplicate template for crop {template.crop_name!r}",
                    crop=template.crop_name,
                )
            table[template.crop_name] = template
        self._templates: Mapping[str, CropTemplate] = MappingProxyType(table)

    @classmethod
    def from_mapping(cls, data: Any) -> TemplateRegistry:
        """Build a registry from the external configuration format."""

        if not isinstance(data, Mapping):
            raise TemplateConfigError("template configuration must be a mapping of crop names")
        templates = []
        for crop_name, payload in data.items():
            if not isinstance(crop_name, str) or not crop_name.strip():
                raise TemplateConfigError(f"invalid crop name {crop_name!r}")
            templates.append(parse_template(crop_name, payload))
        return cls(templates)

    @classmethod
    def from_file(cls, path: PathType) -> TemplateRegistry:
        """Load and validate templates from a JSON or YAML file."""

        try:
            data = load_data(path)
        except FileNotFoundError as err:
            raise TemplateConfigError(f"template file not found: {path}") from err
        except ValueError as err:
            raise TemplateConfigError(str(err)) from err
        registry = cls.from_mapping(data)
        _LOGGER.debug("Loaded %d crop templates from %s", len(registry), path)
        return registry

    def lookup(self, crop_name: str) -> CropTemplate | None:
        """Return the template for ``crop_name`` or ``None``.

        Matching is exact and case-sensitive.
        """

        return self._templates.get(crop_name)

    def get(self, crop_name: str) -> CropTemplate:
        template = self.lookup(crop_name)
        if template is None:
            raise UnknownCropTemplate(crop_name)
        return template

    def crop_names(self) -> list[str]:
        return list(self._templates)

    def __contains__(self, crop_name: object) -> bool:
        return crop_name in self._templates

    def __iter__(self) -> Iterator[CropTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def __repr__(self) -> str:
        return f"TemplateRegistry({self.crop_names()!r})"


@lru_cache(maxsize=8)
def _registry_for_path(path: str) -> TemplateRegistry:
    return TemplateRegistry.from_file(path)


def load_default_registry() -> TemplateRegistry:
    """Return the registry for the bundled (or overridden) template file.

    The result is cached per resolved file path, so changing
    ``CROP_ENGINE_DATA_DIR`` picks up a different file on the next call.
    """

    return _registry_for_path(str(Path(get_data_dir()) / TEMPLATES_FILE))


def clear_registry_cache() -> None:
    _registry_for_path.cache_clear()
