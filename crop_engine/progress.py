"""Schedule completion percentage."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from typing import TYPE_CHECKING, assert_never

from .schedule import Activity, ActivityStatus

if TYPE_CHECKING:
    from .schedule import Schedule

__all__ = ["status_counts", "progress", "progress_from_activities"]


def status_counts(activities: Iterable[Activity]) -> Counter[ActivityStatus]:
    """Return the number of activities in each status."""

    counts: Counter[ActivityStatus] = Counter({status: 0 for status in ActivityStatus})
    for item in activities:
        status = item.status
        if status in (ActivityStatus.PENDING, ActivityStatus.COMPLETED, ActivityStatus.SKIPPED):
            counts[status] += 1
        else:
            assert_never(status)
    return counts


def progress_from_activities(activities: Iterable[Activity]) -> int:
    """Return ``round(100 * completed / total)`` for ``activities``.

    Skipped activities count toward the total but never as completed. An
    empty collection reports ``0``.
    """

    counts = status_counts(activities)
    total = sum(counts.values())
    if total == 0:
        return 0
    # half-up, not round()'s half-to-even
    return int(100 * counts[ActivityStatus.COMPLETED] / total + 0.5)


def progress(schedule: Schedule) -> int:
    return progress_from_activities(schedule.iter_activities())
