from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date

import pytest
from aiohttp import ClientSession, web
from aiohttp.test_utils import TestServer

from crop_engine.errors import NetworkFailure, RemoteServiceError, ScheduleNotFound
from crop_engine.generator import generate
from crop_engine.schedule import ActivityStatus, ScheduleStatus
from crop_engine.sync import ScheduleServiceClient


def wheat_payload(schedule_id: str = "w-1", **overrides) -> dict:
    schedule = generate("Wheat", "2024-01-01").unwrap()
    payload = schedule.to_payload()
    payload.update(id=schedule_id, **overrides)
    return payload


@asynccontextmanager
async def serve(routes, *, timeout: int = 5):
    app = web.Application()
    app["requests"] = []
    app.add_routes(routes)
    server = TestServer(app)
    await server.start_server()
    try:
        async with ClientSession() as session:
            client = ScheduleServiceClient(
                session,
                f"http://{server.host}:{server.port}/",
                api_token="tok",
                timeout=timeout,
            )
            yield client, app["requests"]
    finally:
        await server.close()


async def _record(request: web.Request) -> dict:
    body = await request.json() if request.can_read_body else None
    entry = {
        "method": request.method,
        "path": request.path,
        "query": dict(request.query),
        "auth": request.headers.get("Authorization"),
        "body": body,
        "match": dict(request.match_info),
    }
    request.app["requests"].append(entry)
    return entry


@pytest.mark.asyncio
async def test_list_sends_filter_and_unwraps_envelope():
    async def handler(request):
        await _record(request)
        summary = {k: v for k, v in wheat_payload().items() if k not in ("stages", "activities")}
        return web.json_response({"success": True, "data": [summary]})

    async with serve([web.get("/crop-schedules", handler)]) as (client, seen):
        summaries = await client.async_list_schedules("active")

    assert [item.id for item in summaries] == ["w-1"]
    assert summaries[0].expected_harvest_date == date(2024, 5, 30)
    assert seen[0]["query"] == {"status": "active"}
    assert seen[0]["auth"] == "Bearer tok"


@pytest.mark.asyncio
async def test_create_posts_iso_date():
    async def handler(request):
        await _record(request)
        return web.json_response({"success": True, "data": wheat_payload()})

    async with serve([web.post("/crop-schedules", handler)]) as (client, seen):
        schedule = await client.async_create_schedule("Wheat", date(2024, 1, 1))

    assert seen[0]["body"] == {"cropName": "Wheat", "startDate": "2024-01-01"}
    assert schedule.id == "w-1"
    assert len(schedule.activities) == 10


@pytest.mark.asyncio
async def test_patch_activity_quotes_identifier():
    async def handler(request):
        await _record(request)
        return web.json_response({"success": True, "data": wheat_payload(status="active")})

    route = web.patch("/crop-schedules/{schedule_id}/activities/{activity_id}", handler)
    async with serve([route]) as (client, seen):
        schedule = await client.async_patch_activity("w-1", "Irrigation & Fertilizer-0", ActivityStatus.COMPLETED)

    assert seen[0]["match"] == {"schedule_id": "w-1", "activity_id": "Irrigation & Fertilizer-0"}
    assert seen[0]["body"] == {"status": "completed"}
    assert schedule.status == ScheduleStatus.ACTIVE


@pytest.mark.asyncio
async def test_missing_schedule_maps_to_not_found():
    async def handler(request):
        return web.json_response({"detail": {"error": "not_found", "message": "gone"}}, status=404)

    async with serve([web.get("/crop-schedules/{schedule_id}", handler)]) as (client, _):
        with pytest.raises(ScheduleNotFound) as err:
            await client.async_get_schedule("w-9")

    assert err.value.schedule_id == "w-9"
    assert str(err.value) == "gone"


@pytest.mark.asyncio
async def test_server_errors_are_retryable():
    async def handler(request):
        return web.Response(status=503, text="maintenance")

    async with serve([web.delete("/crop-schedules/{schedule_id}", handler)]) as (client, _):
        with pytest.raises(RemoteServiceError) as err:
            await client.async_delete_schedule("w-1")

    assert err.value.status == 503
    assert err.value.retryable


@pytest.mark.asyncio
async def test_rejected_request_is_not_retryable():
    async def handler(request):
        return web.json_response({"detail": {"error": "invalid_transition", "message": "no"}}, status=409)

    async with serve([web.patch("/crop-schedules/{schedule_id}", handler)]) as (client, _):
        with pytest.raises(RemoteServiceError) as err:
            await client.async_update_status("w-1", ScheduleStatus.COMPLETED)

    assert err.value.code == "invalid_transition"
    assert not err.value.retryable
    assert not isinstance(err.value, ScheduleNotFound)


@pytest.mark.asyncio
async def test_unsuccessful_envelope_raises():
    async def handler(request):
        return web.json_response({"success": False, "error": "quota", "message": "limit reached"})

    async with serve([web.post("/crop-schedules", handler)]) as (client, _):
        with pytest.raises(RemoteServiceError) as err:
            await client.async_create_schedule("Wheat", "2024-01-01")

    assert err.value.code == "quota"
    assert str(err.value) == "limit reached"


@pytest.mark.asyncio
async def test_malformed_payload_raises():
    async def handler(request):
        return web.json_response({"success": True, "data": {"id": "w-1"}})

    async with serve([web.get("/crop-schedules/{schedule_id}", handler)]) as (client, _):
        with pytest.raises(RemoteServiceError) as err:
            await client.async_get_schedule("w-1")

    assert err.value.code == "malformed_response"


@pytest.mark.asyncio
async def test_delete_accepts_bare_success():
    async def handler(request):
        await _record(request)
        return web.json_response({"success": True})

    async with serve([web.delete("/crop-schedules/{schedule_id}", handler)]) as (client, seen):
        assert await client.async_delete_schedule("w-1") is None

    assert seen[0]["method"] == "DELETE"


@pytest.mark.asyncio
async def test_timeout_maps_to_network_failure():
    async def handler(request):
        await asyncio.sleep(2)
        return web.json_response({"success": True, "data": []})

    async with serve([web.get("/crop-schedules", handler)], timeout=1) as (client, _):
        with pytest.raises(NetworkFailure) as err:
            await client.async_list_schedules()

    assert err.value.retryable
    assert "timed out" in str(err.value)


@pytest.mark.asyncio
async def test_unreachable_service_maps_to_network_failure():
    server = TestServer(web.Application())
    await server.start_server()
    base_url = f"http://{server.host}:{server.port}"
    await server.close()

    async with ClientSession() as session:
        client = ScheduleServiceClient(session, base_url, timeout=5)
        with pytest.raises(NetworkFailure):
            await client.async_get_schedule("w-1")
