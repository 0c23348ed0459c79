"""Crop activity scheduling and tracking engine."""

from .activity_state import TemporalLabel, classify, classify_activity, transition
from .errors import (
    CropEngineError,
    InvalidStartDate,
    InvalidTransition,
    NetworkFailure,
    RemoteServiceError,
    ScheduleNotFound,
    UnknownCropTemplate,
)
from .generator import GenerationResult, generate
from .progress import progress
from .reminders import UpcomingActivity, upcoming, upcoming_for_schedules
from .schedule import Activity, ActivityStatus, Schedule, ScheduleStatus, ScheduleSummary
from .templates import CropTemplate, TemplateRegistry, load_default_registry

__all__ = [
    "Activity",
    "ActivityStatus",
    "CropEngineError",
    "CropTemplate",
    "GenerationResult",
    "InvalidStartDate",
    "InvalidTransition",
    "NetworkFailure",
    "RemoteServiceError",
    "Schedule",
    "ScheduleNotFound",
    "ScheduleStatus",
    "ScheduleSummary",
    "TemplateRegistry",
    "TemporalLabel",
    "UnknownCropTemplate",
    "UpcomingActivity",
    "classify",
    "classify_activity",
    "generate",
    "load_default_registry",
    "progress",
    "transition",
    "upcoming",
    "upcoming_for_schedules",
]
