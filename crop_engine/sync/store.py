"""Local cache of remote crop schedules.

The remote service is authoritative. Successful responses replace cached
entries wholesale; failed requests leave the cache as it was. Changes made
remotely by someone else between a list and a later get are not detected;
reloading is the only way to pick them up.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from typing import Any

from aiohttp import ClientSession

from ..activity_state import apply_activity_status
from ..errors import RequestCancelled, ScheduleBusy, StoreError
from ..log_utils import warn_once
from ..schedule import ActivityStatus, Schedule, ScheduleStatus, ScheduleSummary
from .client import ScheduleServiceClient
from .config import ScheduleStoreConfig

_LOGGER = logging.getLogger(__name__)


class CancellationToken:
    """Flag a caller sets when it no longer wants a read's result."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ScheduleStore:
    """Create, list, fetch, patch and delete schedules through a remote service.

    Mutations against one schedule are serialized: a second mutation while
    one is in flight raises :class:`ScheduleBusy`. Reads may overlap and the
    last response to arrive wins.
    """

    def __init__(
        self,
        client: ScheduleServiceClient,
        *,
        session: ClientSession | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.logger = logger or _LOGGER
        self._owned_session = session
        self._schedules: dict[str, Schedule] = {}
        self._lists: dict[ScheduleStatus | None, list[ScheduleSummary]] = {}
        self._in_flight: set[str] = set()
        # Write counter per cached detail; lets a list tell stale entries from fresh ones.
        self._write_seq = 0
        self._written_at: dict[str, int] = {}
        self.last_error: str | None = None
        self.last_success_at: datetime | None = None

    @classmethod
    def from_config(
        cls,
        config: ScheduleStoreConfig,
        *,
        session: ClientSession | None = None,
    ) -> ScheduleStore:
        """Build a store for ``config``; a session created here is owned by the store."""

        if not config.ready:
            raise StoreError("schedule service base URL is not configured")
        owned = None
        if session is None:
            session = owned = ClientSession()
        client = ScheduleServiceClient.from_config(session, config)
        return cls(client, session=owned)

    async def async_close(self) -> None:
        if self._owned_session is not None:
            await self._owned_session.close()
            self._owned_session = None

    # ------------------------------------------------------------------
    async def async_create(self, crop_name: str, start_date: date | str) -> Schedule:
        """Persist a new schedule; the service resolves the template."""

        try:
            schedule = await self.client.async_create_schedule(crop_name, start_date)
        except StoreError as err:
            self._record_failure("create", err)
            raise
        self._store(schedule)
        self._record_success()
        return schedule

    async def async_list(
        self,
        status: ScheduleStatus | str | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> list[ScheduleSummary]:
        """Fetch summaries and replace the cached slice for ``status``.

        Schedules created, changed or removed through this store while the
        request was in flight keep their newer state. An unfiltered list also
        drops cached details the service no longer returns.
        """

        key = ScheduleStatus(status) if status else None
        started = self._write_seq
        try:
            summaries = await self.client.async_list_schedules(key)
        except StoreError as err:
            self._record_failure("list", err)
            raise
        self._check_cancelled(token, "list")
        fresh = self._list_slice(key, summaries, started)
        self._lists[key] = fresh
        if key is None:
            present = {item.id for item in fresh}
            for schedule_id in [sid for sid in self._schedules if sid not in present]:
                self._evict_detail(schedule_id)
        self._record_success()
        return list(fresh)

    async def async_get(self, schedule_id: str, *, token: CancellationToken | None = None) -> Schedule:
        """Fetch one schedule with its activities and cache it."""

        try:
            schedule = await self.client.async_get_schedule(schedule_id)
        except StoreError as err:
            self._record_failure("get", err)
            raise
        self._check_cancelled(token, "get")
        self._store(schedule)
        self._record_success()
        return schedule

    async def async_patch_activity(
        self,
        schedule_id: str,
        activity_id: str,
        status: ActivityStatus | str,
        *,
        optimistic: bool = False,
    ) -> Schedule:
        """Change one activity's status and cache the service's response.

        When the schedule is cached the transition is checked locally first.
        With ``optimistic`` the new status is visible through :meth:`cached`
        while the request is in flight and rolled back if it fails.
        The local check uses the cached copy, which may lag behind changes
        made by other clients; reload with :meth:`async_get` to pick them up.
        """

        requested = ActivityStatus(status)
        with self._mutation(schedule_id):
            previous = self._schedules.get(schedule_id)
            echo: Schedule | None = None
            if previous is not None and previous.activity(activity_id) is not None:
                echo = apply_activity_status(previous, activity_id, requested)
                if optimistic:
                    self._put(echo)
            try:
                schedule = await self.client.async_patch_activity(schedule_id, activity_id, requested)
            except (StoreError, asyncio.CancelledError) as err:
                if optimistic and echo is not None and self._schedules.get(schedule_id) is echo:
                    self._put(previous)
                    self.logger.debug("Rolled back optimistic update of %s/%s", schedule_id, activity_id)
                if isinstance(err, StoreError):
                    self._record_failure("patch_activity", err)
                raise
            self._store(schedule)
            self._record_success()
            return schedule

    async def async_update_status(self, schedule_id: str, status: ScheduleStatus | str) -> Schedule:
        """Explicitly change a schedule's lifecycle status."""

        with self._mutation(schedule_id):
            try:
                schedule = await self.client.async_update_status(schedule_id, status)
            except StoreError as err:
                self._record_failure("update_status", err)
                raise
            self._store(schedule)
            self._record_success()
            return schedule

    async def async_remove(self, schedule_id: str) -> None:
        """Delete a schedule remotely, then evict it from every cache."""

        with self._mutation(schedule_id):
            try:
                await self.client.async_delete_schedule(schedule_id)
            except StoreError as err:
                self._record_failure("remove", err)
                raise
            self._schedules.pop(schedule_id, None)
            self._written_at[schedule_id] = self._next_seq()
            for key, items in self._lists.items():
                self._lists[key] = [item for item in items if item.id != schedule_id]
            self.logger.debug("Evicted schedule %s", schedule_id)
            self._record_success()

    # ------------------------------------------------------------------
    def cached(self, schedule_id: str) -> Schedule | None:
        return self._schedules.get(schedule_id)

    def cached_list(self, status: ScheduleStatus | str | None = None) -> list[ScheduleSummary] | None:
        items = self._lists.get(ScheduleStatus(status) if status else None)
        return list(items) if items is not None else None

    def is_busy(self, schedule_id: str) -> bool:
        return schedule_id in self._in_flight

    def status(self) -> dict[str, Any]:
        """Return cache and connectivity details for diagnostics."""

        return {
            "cached_schedules": len(self._schedules),
            "cached_lists": {(key.value if key else "all"): len(items) for key, items in self._lists.items()},
            "in_flight": sorted(self._in_flight),
            "last_error": self.last_error,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
        }

    # ------------------------------------------------------------------
    @contextmanager
    def _mutation(self, schedule_id: str) -> Iterator[None]:
        if schedule_id in self._in_flight:
            raise ScheduleBusy(schedule_id)
        self._in_flight.add(schedule_id)
        try:
            yield
        finally:
            self._in_flight.discard(schedule_id)

    def _check_cancelled(self, token: CancellationToken | None, operation: str) -> None:
        if token is not None and token.cancelled:
            self.logger.debug("Discarding %s response for cancelled request", operation)
            raise RequestCancelled(f"{operation} request was cancelled")

    def _next_seq(self) -> int:
        self._write_seq += 1
        return self._write_seq

    def _put(self, schedule: Schedule) -> None:
        assert schedule.id is not None
        self._schedules[schedule.id] = schedule
        self._written_at[schedule.id] = self._next_seq()

    def _evict_detail(self, schedule_id: str) -> None:
        self._schedules.pop(schedule_id, None)
        self._written_at.pop(schedule_id, None)

    def _list_slice(
        self,
        key: ScheduleStatus | None,
        summaries: list[ScheduleSummary],
        started: int,
    ) -> list[ScheduleSummary]:
        """Return the server slice with writes made after ``started`` laid over it."""

        newer = {sid for sid, seq in self._written_at.items() if seq > started}
        if not newer:
            return list(summaries)
        result: list[ScheduleSummary] = []
        for item in summaries:
            if item.id not in newer:
                result.append(item)
                continue
            schedule = self._schedules.get(item.id)
            if schedule is not None and (key is None or schedule.status == key):
                result.append(schedule.summary())
        listed = {item.id for item in summaries}
        for sid in sorted(newer - listed, key=self._written_at.__getitem__):
            schedule = self._schedules.get(sid)
            if schedule is not None and (key is None or schedule.status == key):
                result.append(schedule.summary())
        return result

    def _store(self, schedule: Schedule) -> None:
        if schedule.id is None:
            raise StoreError("service returned a schedule without an id")
        self._put(schedule)
        summary = schedule.summary()
        for key, items in self._lists.items():
            remaining = [item for item in items if item.id != schedule.id]
            if key is None or key == schedule.status:
                index = next((i for i, item in enumerate(items) if item.id == schedule.id), len(remaining))
                remaining.insert(index, summary)
            self._lists[key] = remaining
        self.logger.debug("Cached schedule %s (%s)", schedule.id, schedule.status.value)

    def _record_failure(self, operation: str, err: StoreError) -> None:
        self.last_error = str(err)
        warn_once(self.logger, f"schedule_store:{operation}", "Schedule %s failed: %s", operation, err)

    def _record_success(self) -> None:
        self.last_error = None
        self.last_success_at = datetime.now(tz=UTC)
