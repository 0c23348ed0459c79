"""Exception types raised by the crop activity engine."""

from __future__ import annotations

from typing import Any


class CropEngineError(RuntimeError):
    """Base class for all engine errors."""


class TemplateConfigError(CropEngineError, ValueError):
    """Raised when crop template configuration fails validation."""

    def __init__(self, message: str, *, crop: str | None = None, path: str | None = None) -> None:
        super().__init__(message)
        self.crop = crop
        self.path = path


class ScheduleGenerationError(CropEngineError):
    """Base class for expected generation failures."""


class UnknownCropTemplate(ScheduleGenerationError, LookupError):
    """No template is registered for the requested crop."""

    def __init__(self, crop_name: str) -> None:
        super().__init__(f"no schedule template for crop {crop_name!r}")
        self.crop_name = crop_name


class InvalidStartDate(ScheduleGenerationError, ValueError):
    """The start date could not be interpreted as a calendar date."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"invalid start date: {value!r}")
        self.value = value


class InvalidTransition(CropEngineError):
    """Raised when a status change is not permitted by the state machine."""

    def __init__(self, current: str, requested: str, *, subject: str = "activity") -> None:
        super().__init__(f"{subject} cannot move from {current} to {requested}")
        self.current = current
        self.requested = requested


class StoreError(CropEngineError):
    """Base class for failures reported by the schedule store."""

    retryable = False


class NetworkFailure(StoreError):
    """The remote service could not be reached or timed out."""

    retryable = True


class RemoteServiceError(StoreError):
    """The remote service rejected a request."""

    def __init__(self, message: str, *, status: int = 0, code: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status >= 500 or self.status in (408, 429)


class ScheduleNotFound(RemoteServiceError):
    """The requested schedule does not exist remotely."""

    def __init__(self, schedule_id: str, message: str | None = None) -> None:
        super().__init__(message or f"schedule {schedule_id} not found", status=404, code="not_found")
        self.schedule_id = schedule_id


class ScheduleBusy(StoreError):
    """A mutating request for the schedule is already in flight."""

    def __init__(self, schedule_id: str) -> None:
        super().__init__(f"schedule {schedule_id} has a pending update")
        self.schedule_id = schedule_id


class RequestCancelled(StoreError):
    """The caller abandoned the request before the response arrived."""


__all__ = [
    "CropEngineError",
    "TemplateConfigError",
    "ScheduleGenerationError",
    "UnknownCropTemplate",
    "InvalidStartDate",
    "InvalidTransition",
    "StoreError",
    "NetworkFailure",
    "RemoteServiceError",
    "ScheduleNotFound",
    "ScheduleBusy",
    "RequestCancelled",
]
