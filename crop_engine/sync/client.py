"""HTTP client for the remote crop schedule service."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from datetime import date
from typing import Any, TypeVar
from urllib.parse import quote

from aiohttp import ClientError, ClientSession, ClientTimeout
from yarl import URL

from ..const import DEFAULT_TIMEOUT, SCHEDULES_PATH
from ..errors import NetworkFailure, RemoteServiceError, ScheduleNotFound
from ..schedule import ActivityStatus, Schedule, ScheduleStatus, ScheduleSummary
from ..utils import as_date
from .config import ScheduleStoreConfig

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class ScheduleServiceClient:
    """Thin async wrapper over the ``/crop-schedules`` REST resource.

    Transport problems and timeouts surface as :class:`NetworkFailure`;
    HTTP error responses surface as :class:`RemoteServiceError`. The client
    performs no retries.
    """

    def __init__(
        self,
        session: ClientSession,
        base_url: str,
        *,
        api_token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token or None
        self.timeout = timeout
        self.logger = logger or _LOGGER

    @classmethod
    def from_config(cls, session: ClientSession, config: ScheduleStoreConfig) -> ScheduleServiceClient:
        return cls(session, config.base_url, api_token=config.api_token, timeout=config.timeout)

    # ------------------------------------------------------------------
    async def async_list_schedules(self, status: ScheduleStatus | str | None = None) -> list[ScheduleSummary]:
        params = {"status": ScheduleStatus(status).value} if status else None
        data = await self._request("GET", SCHEDULES_PATH, params=params)
        if not isinstance(data, list):
            raise RemoteServiceError("expected a list of schedules", code="malformed_response")
        return [self._parse(ScheduleSummary.from_payload, item) for item in data]

    async def async_get_schedule(self, schedule_id: str) -> Schedule:
        data = await self._request("GET", self._schedule_path(schedule_id), schedule_id=schedule_id)
        return self._parse(Schedule.from_payload, data)

    async def async_create_schedule(self, crop_name: str, start_date: date | str) -> Schedule:
        body = {"cropName": crop_name, "startDate": as_date(start_date).isoformat()}
        data = await self._request("POST", SCHEDULES_PATH, json_body=body)
        return self._parse(Schedule.from_payload, data)

    async def async_patch_activity(
        self,
        schedule_id: str,
        activity_id: str,
        status: ActivityStatus | str,
    ) -> Schedule:
        path = f"{self._schedule_path(schedule_id)}/activities/{_segment(activity_id)}"
        body = {"status": ActivityStatus(status).value}
        data = await self._request("PATCH", path, json_body=body, schedule_id=schedule_id)
        return self._parse(Schedule.from_payload, data)

    async def async_update_status(self, schedule_id: str, status: ScheduleStatus | str) -> Schedule:
        body = {"status": ScheduleStatus(status).value}
        data = await self._request("PATCH", self._schedule_path(schedule_id), json_body=body, schedule_id=schedule_id)
        return self._parse(Schedule.from_payload, data)

    async def async_delete_schedule(self, schedule_id: str) -> None:
        await self._request("DELETE", self._schedule_path(schedule_id), schedule_id=schedule_id)

    # ------------------------------------------------------------------
    def _schedule_path(self, schedule_id: str) -> str:
        return f"{SCHEDULES_PATH}/{_segment(schedule_id)}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Mapping[str, Any] | None = None,
        schedule_id: str | None = None,
    ) -> Any:
        url = URL(f"{self.base_url}{path}", encoded=True)
        try:
            async with self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers(),
                timeout=ClientTimeout(total=self.timeout),
            ) as resp:
                status = resp.status
                text = await resp.text()
        except asyncio.TimeoutError as err:
            raise NetworkFailure(f"{method} {path} timed out after {self.timeout}s") from err
        except ClientError as err:
            raise NetworkFailure(f"{method} {path} failed: {err}") from err

        self.logger.debug("%s %s -> %s", method, path, status)
        payload = self._decode(text)
        if status >= 400:
            raise self._error(status, payload, text, schedule_id)
        if isinstance(payload, Mapping):
            if payload.get("success") is False:
                message = str(payload.get("message") or f"{method} {path} rejected")
                raise RemoteServiceError(message, status=status, code=payload.get("error"))
            if "data" in payload:
                return payload["data"]
        return payload

    @staticmethod
    def _decode(text: str) -> Any:
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    @staticmethod
    def _error(status: int, payload: Any, text: str, schedule_id: str | None) -> RemoteServiceError:
        code: str | None = None
        message = text or f"HTTP {status}"
        detail = payload.get("detail", payload) if isinstance(payload, Mapping) else None
        if isinstance(detail, Mapping):
            code = detail.get("error")
            message = str(detail.get("message") or code or message)
        elif isinstance(detail, str):
            message = detail
        if status == 404 and schedule_id is not None and code in (None, "not_found"):
            return ScheduleNotFound(schedule_id, message)
        return RemoteServiceError(message, status=status, code=code)

    @staticmethod
    def _parse(factory: Callable[[Any], T], data: Any) -> T:
        if not isinstance(data, Mapping):
            raise RemoteServiceError("expected an object in response", code="malformed_response")
        try:
            return factory(data)
        except (KeyError, TypeError, ValueError) as err:
            raise RemoteServiceError(f"malformed response: {err}", code="malformed_response") from err
