"""Activity and schedule state machines plus the temporal classifier."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import assert_never

from .errors import InvalidTransition
from .schedule import Activity, ActivityStatus, Schedule, ScheduleStatus
from .utils import as_date

__all__ = [
    "TemporalLabel",
    "ACTIVITY_TRANSITIONS",
    "SCHEDULE_TRANSITIONS",
    "can_transition",
    "transition",
    "apply_activity_status",
    "classify",
    "classify_activity",
    "derive_schedule_status",
    "change_schedule_status",
]


class TemporalLabel(str, Enum):
    """Display label derived from an activity's status and date."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    OVERDUE = "overdue"
    TODAY = "today"
    UPCOMING = "upcoming"


# Skipped is terminal: nothing leads back out of it.
ACTIVITY_TRANSITIONS: dict[ActivityStatus, frozenset[ActivityStatus]] = {
    ActivityStatus.PENDING: frozenset({ActivityStatus.COMPLETED, ActivityStatus.SKIPPED}),
    ActivityStatus.COMPLETED: frozenset({ActivityStatus.PENDING}),
    ActivityStatus.SKIPPED: frozenset(),
}

SCHEDULE_TRANSITIONS: dict[ScheduleStatus, frozenset[ScheduleStatus]] = {
    ScheduleStatus.PLANNING: frozenset({ScheduleStatus.ACTIVE, ScheduleStatus.CANCELLED}),
    ScheduleStatus.ACTIVE: frozenset({ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED}),
    ScheduleStatus.COMPLETED: frozenset({ScheduleStatus.ACTIVE, ScheduleStatus.CANCELLED}),
    ScheduleStatus.CANCELLED: frozenset(),
}


def can_transition(current: ActivityStatus, requested: ActivityStatus) -> bool:
    """Return ``True`` if ``requested`` may follow ``current``.

    Re-applying the current status is always accepted as a no-op.
    """

    return current == requested or requested in ACTIVITY_TRANSITIONS[current]


def transition(activity: Activity, requested: ActivityStatus | str) -> Activity:
    """Return a copy of ``activity`` moved to ``requested``."""

    target = ActivityStatus(requested)
    if not can_transition(activity.status, target):
        raise InvalidTransition(activity.status.value, target.value)
    if activity.status == target:
        return activity
    return replace(activity, status=target)


def derive_schedule_status(
    current: ScheduleStatus,
    activities: Iterable[Activity],
    *,
    reopened: bool = False,
) -> ScheduleStatus:
    """Return the schedule status implied by its activities.

    A schedule becomes completed on its own only when it has activities and
    every one of them is completed. Skipped activities therefore keep a
    schedule active until it is closed explicitly. A completed schedule,
    whether derived or closed explicitly, goes back to active only when
    ``reopened`` is set, i.e. an activity was un-marked back to pending.
    """

    if current == ScheduleStatus.CANCELLED:
        return current
    statuses = [item.status for item in activities]
    if statuses and all(status == ActivityStatus.COMPLETED for status in statuses):
        return ScheduleStatus.COMPLETED
    if current == ScheduleStatus.COMPLETED:
        return ScheduleStatus.ACTIVE if reopened else current
    if current == ScheduleStatus.PLANNING and any(status != ActivityStatus.PENDING for status in statuses):
        return ScheduleStatus.ACTIVE
    return current


def apply_activity_status(schedule: Schedule, activity_id: str, requested: ActivityStatus | str) -> Schedule:
    """Return ``schedule`` with one activity transitioned and status rederived."""

    if schedule.status == ScheduleStatus.CANCELLED:
        raise InvalidTransition(
            schedule.status.value,
            ActivityStatus(requested).value,
            subject=f"activity {activity_id} of cancelled schedule",
        )
    current = schedule.activity(activity_id)
    if current is None:
        raise KeyError(activity_id)
    changed = transition(current, requested)
    reopened = current.status != ActivityStatus.PENDING and changed.status == ActivityStatus.PENDING
    updated = schedule.with_activity(changed)
    status = derive_schedule_status(updated.status, updated.iter_activities(), reopened=reopened)
    return updated.with_status(status)


def change_schedule_status(schedule: Schedule, requested: ScheduleStatus | str) -> Schedule:
    """Return ``schedule`` with an explicit status change applied."""

    target = ScheduleStatus(requested)
    if schedule.status == target:
        return schedule
    if target not in SCHEDULE_TRANSITIONS[schedule.status]:
        raise InvalidTransition(schedule.status.value, target.value, subject="schedule")
    return schedule.with_status(target)


def classify(status: ActivityStatus, scheduled_date: date | datetime, now: date | datetime) -> TemporalLabel:
    """Return the temporal label for an activity.

    Completed and skipped activities are labelled by status alone. Others are
    compared to ``now`` at day granularity. The label is never stored since
    ``now`` moves independently of the activity.
    """

    if status == ActivityStatus.COMPLETED:
        return TemporalLabel.COMPLETED
    if status == ActivityStatus.SKIPPED:
        return TemporalLabel.SKIPPED
    if status == ActivityStatus.PENDING:
        scheduled = as_date(scheduled_date)
        today = as_date(now)
        if scheduled < today:
            return TemporalLabel.OVERDUE
        if scheduled == today:
            return TemporalLabel.TODAY
        return TemporalLabel.UPCOMING
    assert_never(status)


def classify_activity(activity: Activity, now: date | datetime) -> TemporalLabel:
    return classify(activity.status, activity.scheduled_date, now)
