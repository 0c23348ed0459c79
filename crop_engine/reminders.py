"""Select activities that need attention within a rolling horizon."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .const import DEFAULT_HORIZON_DAYS
from .schedule import Activity, ActivityStatus, Schedule, ScheduleStatus
from .utils import as_date

__all__ = ["UpcomingActivity", "upcoming", "upcoming_for_schedules"]


@dataclass(slots=True, frozen=True)
class UpcomingActivity:
    """Reminder entry for an activity that is not completed yet."""

    activity: Activity
    is_overdue: bool
    is_today: bool
    schedule_id: str | None = None
    crop_name: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            **self.activity.to_payload(),
            "isOverdue": self.is_overdue,
            "isToday": self.is_today,
        }
        if self.schedule_id is not None:
            payload["scheduleId"] = self.schedule_id
        if self.crop_name is not None:
            payload["cropName"] = self.crop_name
        return payload


def _select(
    activities: Iterable[Activity],
    today: date,
    horizon_days: int,
    *,
    schedule_id: str | None = None,
    crop_name: str | None = None,
) -> list[UpcomingActivity]:
    if horizon_days < 0:
        raise ValueError("horizon_days must be non-negative")
    limit = today + timedelta(days=horizon_days)
    return [
        UpcomingActivity(
            activity=item,
            is_overdue=item.scheduled_date < today,
            is_today=item.scheduled_date == today,
            schedule_id=schedule_id,
            crop_name=crop_name,
        )
        for item in activities
        # Skipped activities stay visible; only completed ones drop out.
        if item.status != ActivityStatus.COMPLETED and item.scheduled_date <= limit
    ]


def upcoming(
    schedule: Schedule,
    now: date | datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> list[UpcomingActivity]:
    """Return not-completed activities due on or before ``now + horizon_days``.

    Overdue activities of any age are included. The result is sorted by
    scheduled date; activities on the same day keep their schedule order.
    """

    entries = _select(schedule.iter_activities(), as_date(now), horizon_days)
    entries.sort(key=lambda entry: entry.activity.scheduled_date)
    return entries


def upcoming_for_schedules(
    schedules: Iterable[Schedule],
    now: date | datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> list[UpcomingActivity]:
    """Return reminders across several schedules, ignoring cancelled ones."""

    today = as_date(now)
    entries: list[UpcomingActivity] = []
    for schedule in schedules:
        if schedule.status == ScheduleStatus.CANCELLED:
            continue
        entries.extend(
            _select(
                schedule.iter_activities(),
                today,
                horizon_days,
                schedule_id=schedule.id,
                crop_name=schedule.crop_name,
            )
        )
    entries.sort(key=lambda entry: entry.activity.scheduled_date)
    return entries
