"""Resolve crop templates into dated activity schedules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from .errors import InvalidStartDate, ScheduleGenerationError, UnknownCropTemplate
from .schedule import Activity, ActivityStatus, ResolvedStage, Schedule, ScheduleStatus, activity_id
from .templates import CropTemplate, TemplateRegistry, load_default_registry
from .utils import as_date

__all__ = ["GenerationResult", "generate", "resolve_template"]


@dataclass(slots=True, frozen=True)
class GenerationResult:
    """Outcome of :func:`generate`: either a schedule or the reason it failed."""

    schedule: Schedule | None = None
    error: ScheduleGenerationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Schedule:
        """Return the schedule or raise the recorded error."""

        if self.error is not None:
            raise self.error
        assert self.schedule is not None
        return self.schedule


def resolve_template(template: CropTemplate, start: date) -> Schedule:
    """Return an unsaved schedule for ``template`` anchored at ``start``.

    Offsets are applied in whole calendar days. Negative combined offsets
    place activities before ``start`` and are kept as-is.
    """

    stages: list[ResolvedStage] = []
    for stage in template.stages:
        stage_start = start + timedelta(days=stage.day_offset)
        activities = tuple(
            Activity(
                id=activity_id(stage.name, index),
                stage_name=stage.name,
                task=item.task,
                scheduled_date=stage_start + timedelta(days=item.day_offset),
                status=ActivityStatus.PENDING,
            )
            for index, item in enumerate(stage.activities)
        )
        stages.append(
            ResolvedStage(
                name=stage.name,
                start_date=stage_start,
                duration_days=stage.duration_days,
                activities=activities,
            )
        )
    return Schedule(
        id=None,
        crop_name=template.crop_name,
        start_date=start,
        expected_harvest_date=start + timedelta(days=template.duration.max_days),
        status=ScheduleStatus.PLANNING,
        stages=tuple(stages),
    )


def generate(
    crop_name: str,
    start_date: date | str | Any,
    *,
    registry: TemplateRegistry | None = None,
) -> GenerationResult:
    """Return a dated preview schedule for ``crop_name`` starting ``start_date``.

    The function is pure: identical inputs always produce identical output.
    Unknown crops and unparseable dates are reported through the result
    rather than raised. When ``registry`` is omitted the bundled templates
    are used.
    """

    registry = registry if registry is not None else load_default_registry()
    template = registry.lookup(crop_name)
    if template is None:
        return GenerationResult(error=UnknownCropTemplate(crop_name))
    try:
        start = as_date(start_date)
    except InvalidStartDate as err:
        return GenerationResult(error=err)
    return GenerationResult(schedule=resolve_template(template, start))
