"""Tests for the async API client and CalendarState."""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from chairbook.client import ApiError, CalendarState, SchedulingApiClient, conflicting_starts
from chairbook.client.api import format_utc
from chairbook.domain.appointments.schemas import AppointmentWithDetails
from chairbook.domain.catalog.schemas import ServiceResponse
from chairbook.domain.clients.schemas import ClientResponse
from chairbook.main import app


def at(hour, minute=0, day=5):
    return datetime(2026, 1, day, hour, minute, tzinfo=timezone.utc)


def run_against_app(scenario):
    """Run ``scenario(api)`` with a client wired straight into the ASGI app"""

    async def _run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            await scenario(SchedulingApiClient(client=http))

    asyncio.run(_run())


async def refs(api):
    client = await api.create_client(firstName="Ada", lastName="Lovelace")
    service = await api.create_service(name="Haircut", durationMinutes=60)
    return {"client_id": client.id, "service_id": service.id}


def test_format_utc():
    assert format_utc(datetime(2026, 1, 5, 9)) == "2026-01-05T09:00:00Z"
    assert format_utc(at(9)) == "2026-01-05T09:00:00Z"


def test_rejected_reschedule_reverts_to_server_state(override_db):
    async def scenario(api):
        ids = await refs(api)
        state = CalendarState(api)
        await state.load_range(at(0), at(0, day=6))
        await state.create(start=at(9), end=at(10), **ids)
        second = await state.create(start=at(11), end=at(12), **ids)
        assert len(state.appointments) == 2

        with pytest.raises(ApiError) as exc_info:
            await state.reschedule(second.id, at(9, 30), at(10, 30))

        assert exc_info.value.is_conflict
        assert exc_info.value.status_code == 409
        assert state.find(second.id).startUtc == at(11)
        assert state.error == exc_info.value.message

        await state.reschedule(second.id, at(10), at(11))
        assert state.find(second.id).startUtc == at(10)

    run_against_app(scenario)


def test_reschedule_to_the_same_slot_sends_nothing(override_db):
    async def scenario(api):
        ids = await refs(api)
        state = CalendarState(api)
        await state.load_range(at(0), at(0, day=6))
        created = await state.create(start=at(9), end=at(10), **ids)

        unchanged = await state.reschedule(created.id, datetime(2026, 1, 5, 9), datetime(2026, 1, 5, 10))

        assert unchanged is state.find(created.id)

    run_against_app(scenario)


def test_preview_and_commit_recurring(override_db):
    async def scenario(api):
        ids = await refs(api)
        state = CalendarState(api)
        await state.load_range(at(0), at(0, day=31))
        await state.create(start=at(10, 30, day=19), end=at(11, 30, day=19), **ids)
        recurrence = {"pattern": "weekly", "count": 4}

        preview = await state.preview_recurrence(
            start=at(10), end=at(11), recurrence=recurrence, **ids
        )
        skipped = conflicting_starts(preview)
        assert skipped == [at(10, day=19)]

        series = await state.create_recurring(
            start=at(10), end=at(11), recurrence=recurrence, exclude=skipped, **ids
        )
        assert len(series) == 3
        assert len(state.appointments) == 4

        deleted = await state.delete(series[1].id, scope="future")
        assert len(deleted) == 2
        assert len(state.appointments) == 2

    run_against_app(scenario)


def test_api_errors_carry_the_server_reason(override_db):
    async def scenario(api):
        with pytest.raises(ApiError) as exc_info:
            await api.get_appointment("missing")
        assert exc_info.value.reason == "NotFoundError"
        assert exc_info.value.status_code == 404

    run_against_app(scenario)


class FakeApi:
    """Serves windows on demand; fetches for ``blocked`` starts never finish"""

    def __init__(self, blocked=()):
        self.blocked = set(blocked)
        self.requested = []

    async def list_appointments(self, window_start, window_end):
        self.requested.append(window_start)
        if window_start in self.blocked:
            await asyncio.Event().wait()
        return [f"{window_start:%Y-%m-%d}"]


def test_superseded_fetch_is_never_published():
    api = FakeApi(blocked=[at(0, day=5)])

    async def scenario():
        state = CalendarState(api)
        first = asyncio.ensure_future(state.load_range(at(0, day=5), at(0, day=12)))
        await asyncio.sleep(0)

        second = await state.load_range(at(0, day=12), at(0, day=19))

        assert await first is None
        assert second == ["2026-01-12"]
        assert state.appointments == ["2026-01-12"]
        assert state.window == (at(0, day=12), at(0, day=19))
        assert not state.loading

    asyncio.run(scenario())


def test_failed_fetch_records_the_error():
    class FailingApi:
        async def list_appointments(self, window_start, window_end):
            raise ApiError("Unable to reach the scheduling API", reason="NetworkError")

    async def scenario():
        state = CalendarState(FailingApi())
        with pytest.raises(ApiError):
            await state.load_range(at(0), at(0, day=6))
        assert state.error == "Unable to reach the scheduling API"
        assert not state.loading

    asyncio.run(scenario())


def listed(appointment_id, start, end):
    return AppointmentWithDetails(
        id=appointment_id,
        clientId="c1",
        serviceId="s1",
        startUtc=start,
        endUtc=end,
        status="confirmed",
        notes=None,
        recurrenceGroupId=None,
        recurrenceRule=None,
        client=ClientResponse(
            id="c1",
            firstName="Ada",
            lastName="Lovelace",
            fullName="Ada Lovelace",
            email=None,
            phone=None,
            notes=None,
        ),
        service=ServiceResponse(id="s1", name="Haircut", durationMinutes=60, priceCents=None),
    )


class InterruptedApi:
    """Lists one appointment; every reschedule fails with ``failure``"""

    def __init__(self, failure):
        self.failure = failure

    async def list_appointments(self, window_start, window_end):
        return [listed("a1", at(9), at(10))]

    async def reschedule(self, appointment_id, start, end):
        raise self.failure


@pytest.mark.parametrize("failure", [asyncio.CancelledError(), RuntimeError("connection reset")])
def test_interrupted_reschedule_keeps_the_confirmed_position(failure):
    async def scenario():
        state = CalendarState(InterruptedApi(failure))
        await state.load_range(at(0), at(0, day=6))

        with pytest.raises(type(failure)):
            await state.reschedule("a1", at(11), at(12))

        assert state.find("a1").startUtc == at(9)
        assert state.find("a1").endUtc == at(10)

    asyncio.run(scenario())
