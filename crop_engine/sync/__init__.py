"""Remote persistence helpers for crop schedules."""

from .client import ScheduleServiceClient
from .config import ScheduleStoreConfig
from .store import CancellationToken, ScheduleStore

__all__ = [
    "CancellationToken",
    "ScheduleServiceClient",
    "ScheduleStore",
    "ScheduleStoreConfig",
]
