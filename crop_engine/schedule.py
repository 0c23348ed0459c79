"""Resolved schedule and activity values plus their wire format."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any

from .utils import as_date, format_date

__all__ = [
    "ActivityStatus",
    "ScheduleStatus",
    "Activity",
    "ResolvedStage",
    "Schedule",
    "ScheduleSummary",
    "activity_id",
]


class ActivityStatus(str, Enum):
    """Completion state of a single activity."""

    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class ScheduleStatus(str, Enum):
    """Lifecycle state of a schedule."""

    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def activity_id(stage_name: str, index: int) -> str:
    """Return the stable id of the ``index``-th activity of ``stage_name``."""

    return f"{stage_name}-{index}"


def _record_id(payload: Mapping[str, Any]) -> str:
    raw = payload.get("id") or payload.get("_id")
    if raw is None or not str(raw).strip():
        raise ValueError("payload missing id")
    return str(raw)


@dataclass(slots=True, frozen=True)
class Activity:
    """One dated, stateful task belonging to a schedule stage."""

    id: str
    stage_name: str
    task: str
    scheduled_date: date
    status: ActivityStatus = ActivityStatus.PENDING

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stageName": self.stage_name,
            "activityName": self.task,
            "scheduledDate": self.scheduled_date.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Activity:
        task = payload.get("activityName") or payload.get("task")
        if not task:
            raise ValueError("activity payload missing activityName")
        return cls(
            id=_record_id(payload),
            stage_name=str(payload["stageName"]),
            task=str(task),
            scheduled_date=as_date(payload["scheduledDate"]),
            status=ActivityStatus(payload.get("status", ActivityStatus.PENDING.value)),
        )


@dataclass(slots=True, frozen=True)
class ResolvedStage:
    """A template stage anchored to a concrete start date.

    ``start_date`` and ``duration_days`` are ``None`` when the stage was
    rebuilt from a payload that only listed activities.
    """

    name: str
    start_date: date | None
    duration_days: int | None
    activities: tuple[Activity, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "startDate": format_date(self.start_date),
            "durationDays": self.duration_days,
        }


@dataclass(slots=True, frozen=True)
class Schedule:
    """A dated instantiation of a crop template.

    ``id`` is ``None`` for previews produced by the generator and holds the
    server-assigned id once the schedule has been persisted.
    """

    id: str | None
    crop_name: str
    start_date: date
    expected_harvest_date: date
    status: ScheduleStatus
    stages: tuple[ResolvedStage, ...]
    # progressPercentage as last reported by the service; cleared on local edits
    reported_progress: int | None = field(default=None, compare=False)

    @property
    def activities(self) -> tuple[Activity, ...]:
        return tuple(self.iter_activities())

    def iter_activities(self) -> Iterator[Activity]:
        for stage in self.stages:
            yield from stage.activities

    def activity(self, activity_id: str) -> Activity | None:
        for item in self.iter_activities():
            if item.id == activity_id:
                return item
        return None

    def with_activity(self, updated: Activity) -> Schedule:
        """Return a copy with the activity sharing ``updated.id`` replaced."""

        found = False
        stages: list[ResolvedStage] = []
        for stage in self.stages:
            if any(item.id == updated.id for item in stage.activities):
                found = True
                stage = replace(
                    stage,
                    activities=tuple(updated if item.id == updated.id else item for item in stage.activities),
                )
            stages.append(stage)
        if not found:
            raise KeyError(updated.id)
        return replace(self, stages=tuple(stages), reported_progress=None)

    def with_status(self, status: ScheduleStatus) -> Schedule:
        return replace(self, status=status)

    @property
    def progress_percentage(self) -> int:
        """Service-reported progress if known, else computed from the activities."""

        if self.reported_progress is not None:
            return self.reported_progress
        from .progress import progress

        return progress(self)

    def summary(self) -> ScheduleSummary:
        if self.id is None:
            raise ValueError("unsaved schedules have no summary")
        return ScheduleSummary(
            id=self.id,
            crop_name=self.crop_name,
            start_date=self.start_date,
            expected_harvest_date=self.expected_harvest_date,
            status=self.status,
            progress_percentage=self.progress_percentage,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cropName": self.crop_name,
            "startDate": self.start_date.isoformat(),
            "expectedHarvestDate": self.expected_harvest_date.isoformat(),
            "status": self.status.value,
            "progressPercentage": self.progress_percentage,
            "stages": [stage.to_payload() for stage in self.stages],
            "activities": [item.to_payload() for item in self.iter_activities()],
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Schedule:
        """Rebuild a schedule from the remote detail response.

        Activities are grouped by ``stageName`` in the order stages are
        listed, then in order of first appearance for stages not listed.
        """

        activities = [Activity.from_payload(item) for item in payload.get("activities") or []]
        grouped: dict[str, list[Activity]] = {}
        for item in activities:
            grouped.setdefault(item.stage_name, []).append(item)

        stages: list[ResolvedStage] = []
        listed: set[str] = set()
        stage_payloads = payload.get("stages") or []
        if isinstance(stage_payloads, Sequence):
            for stage in stage_payloads:
                if not isinstance(stage, Mapping) or not stage.get("name"):
                    continue
                name = str(stage["name"])
                listed.add(name)
                start = stage.get("startDate")
                duration = stage.get("durationDays")
                stages.append(
                    ResolvedStage(
                        name=name,
                        start_date=as_date(start) if start else None,
                        duration_days=int(duration) if duration is not None else None,
                        activities=tuple(grouped.get(name, ())),
                    )
                )
        for name, items in grouped.items():
            if name not in listed:
                stages.append(ResolvedStage(name=name, start_date=None, duration_days=None, activities=tuple(items)))
        reported = payload.get("progressPercentage")

        return cls(
            id=_record_id(payload),
            crop_name=str(payload["cropName"]),
            start_date=as_date(payload["startDate"]),
            expected_harvest_date=as_date(payload["expectedHarvestDate"]),
            status=ScheduleStatus(payload.get("status", ScheduleStatus.PLANNING.value)),
            stages=tuple(stages),
            reported_progress=int(reported) if reported is not None else None,
        )


@dataclass(slots=True, frozen=True)
class ScheduleSummary:
    """Row returned by the list operation."""

    id: str
    crop_name: str
    start_date: date
    expected_harvest_date: date
    status: ScheduleStatus
    progress_percentage: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cropName": self.crop_name,
            "startDate": self.start_date.isoformat(),
            "expectedHarvestDate": self.expected_harvest_date.isoformat(),
            "status": self.status.value,
            "progressPercentage": self.progress_percentage,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ScheduleSummary:
        return cls(
            id=_record_id(payload),
            crop_name=str(payload["cropName"]),
            start_date=as_date(payload["startDate"]),
            expected_harvest_date=as_date(payload["expectedHarvestDate"]),
            status=ScheduleStatus(payload.get("status", ScheduleStatus.PLANNING.value)),
            progress_percentage=int(payload.get("progressPercentage") or 0),
        )
