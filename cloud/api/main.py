from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any

from fastapi import FastAPI, HTTPException, Query, status

from crop_engine.activity_state import apply_activity_status, change_schedule_status
from crop_engine.errors import InvalidStartDate, InvalidTransition, UnknownCropTemplate
from crop_engine.generator import generate
from crop_engine.schedule import ActivityStatus, Schedule, ScheduleStatus
from crop_engine.templates import TemplateRegistry, load_default_registry

_LOGGER = logging.getLogger(__name__)

ALL_STATUSES = "all"


def _not_found(schedule_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "message": f"Schedule {schedule_id} not found"},
    )


def _bad_request(error: str, message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": error, "message": message})


class ScheduleState:
    """In-memory reference implementation of the schedule service."""

    def __init__(self, registry: TemplateRegistry) -> None:
        self.registry = registry
        self.schedules: dict[str, Schedule] = {}

    # ------------------------------------------------------------------
    def list_schedules(self, status_filter: str | None = None) -> list[dict[str, Any]]:
        wanted: ScheduleStatus | None = None
        if status_filter and status_filter != ALL_STATUSES:
            try:
                wanted = ScheduleStatus(status_filter)
            except ValueError as err:
                raise _bad_request("invalid_status", f"unknown status {status_filter!r}") from err
        return [
            schedule.summary().to_payload()
            for schedule in self.schedules.values()
            if wanted is None or schedule.status == wanted
        ]

    def get(self, schedule_id: str) -> Schedule:
        schedule = self.schedules.get(schedule_id)
        if schedule is None:
            raise _not_found(schedule_id)
        return schedule

    def create(self, crop_name: Any, start_date: Any) -> Schedule:
        if not isinstance(crop_name, str) or not crop_name:
            raise _bad_request("invalid_request", "cropName required")
        if start_date is None:
            raise _bad_request("invalid_request", "startDate required")
        result = generate(crop_name, start_date, registry=self.registry)
        if isinstance(result.error, UnknownCropTemplate):
            raise _bad_request("unknown_crop", str(result.error))
        if isinstance(result.error, InvalidStartDate):
            raise _bad_request("invalid_start_date", str(result.error))
        schedule = result.unwrap()
        schedule_id = uuid.uuid4().hex
        stored = replace(schedule, id=schedule_id)
        self.schedules[schedule_id] = stored
        _LOGGER.info("Created %s schedule %s starting %s", crop_name, schedule_id, schedule.start_date)
        return stored

    def patch_activity(self, schedule_id: str, activity_id: str, requested: Any) -> Schedule:
        schedule = self.get(schedule_id)
        new_status = self._parse(ActivityStatus, requested)
        if schedule.activity(activity_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "activity_not_found", "message": f"Activity {activity_id} not found"},
            )
        try:
            updated = apply_activity_status(schedule, activity_id, new_status)
        except InvalidTransition as err:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": "invalid_transition", "message": str(err)},
            ) from err
        self.schedules[schedule_id] = updated
        return updated

    def update_status(self, schedule_id: str, requested: Any) -> Schedule:
        schedule = self.get(schedule_id)
        new_status = self._parse(ScheduleStatus, requested)
        try:
            updated = change_schedule_status(schedule, new_status)
        except InvalidTransition as err:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": "invalid_transition", "message": str(err)},
            ) from err
        self.schedules[schedule_id] = updated
        return updated

    def delete(self, schedule_id: str) -> None:
        if self.schedules.pop(schedule_id, None) is None:
            raise _not_found(schedule_id)
        _LOGGER.info("Deleted schedule %s", schedule_id)

    @staticmethod
    def _parse(enum_type: type[ActivityStatus] | type[ScheduleStatus], value: Any):
        try:
            return enum_type(value)
        except ValueError as err:
            raise _bad_request("invalid_status", f"unknown status {value!r}") from err


def _envelope(data: Any = None) -> dict[str, Any]:
    return {"success": True, "data": data}


def create_app(registry: TemplateRegistry | None = None) -> FastAPI:
    app = FastAPI()
    state = ScheduleState(registry if registry is not None else load_default_registry())
    app.state.state = state

    @app.get("/crop-schedules")
    async def handle_list(status_filter: str | None = Query(None, alias="status")) -> dict[str, Any]:
        return _envelope(state.list_schedules(status_filter))

    @app.post("/crop-schedules")
    async def handle_create(data: dict[str, Any]) -> dict[str, Any]:
        schedule = state.create(data.get("cropName"), data.get("startDate"))
        return _envelope(schedule.to_payload())

    @app.get("/crop-schedules/{schedule_id}")
    async def handle_detail(schedule_id: str) -> dict[str, Any]:
        return _envelope(state.get(schedule_id).to_payload())

    @app.patch("/crop-schedules/{schedule_id}")
    async def handle_update_status(schedule_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return _envelope(state.update_status(schedule_id, data.get("status")).to_payload())

    @app.patch("/crop-schedules/{schedule_id}/activities/{activity_id:path}")
    async def handle_patch_activity(schedule_id: str, activity_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return _envelope(state.patch_activity(schedule_id, activity_id, data.get("status")).to_payload())

    @app.delete("/crop-schedules/{schedule_id}")
    async def handle_delete(schedule_id: str) -> dict[str, Any]:
        state.delete(schedule_id)
        return {"success": True}

    @app.get("/crops")
    async def handle_crops() -> dict[str, Any]:
        return _envelope(state.registry.crop_names())

    return app


def main() -> None:
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8080)


if __name__ == "__main__":
    main()
