"""
Calendar state kept by a scheduling client.

Holds the appointments of the visible range and reconciles local changes with
the server: the server is the source of truth, so every mutation is followed
by a refetch and a rejected reschedule is never kept locally.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from ..domain.appointments.schemas import AppointmentWithDetails, OccurrencePreview
from ..domain.scheduling.intervals import as_utc
from .api import ApiError, SchedulingApiClient

logger = logging.getLogger(__name__)


def conflicting_starts(preview: Iterable[OccurrencePreview]) -> list[datetime]:
    """Starts of previewed occurrences that hit existing appointments"""
    return [occurrence.startUtc for occurrence in preview if occurrence.hasConflict]


class CalendarState:
    """Appointments of the currently displayed range"""

    def __init__(self, api: SchedulingApiClient):
        self.api = api
        self.appointments: list[AppointmentWithDetails] = []
        self.window: Optional[tuple[datetime, datetime]] = None
        self.loading = False
        self.error: Optional[str] = None
        self._fetch: Optional[asyncio.Task] = None

    def find(self, appointment_id: str) -> Optional[AppointmentWithDetails]:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    async def load_range(
        self, window_start: datetime, window_end: datetime
    ) -> Optional[list[AppointmentWithDetails]]:
        """
        Fetch ``[window_start, window_end)`` and publish it.

        A newer call cancels a fetch still in flight, so only the most recently
        requested range is ever published. Returns None for a call that was
        superseded that way.
        """
        self.window = (window_start, window_end)
        if self._fetch is not None and not self._fetch.done():
            self._fetch.cancel()

        task = asyncio.ensure_future(self.api.list_appointments(window_start, window_end))
        self._fetch = task
        self.loading = True
        self.error = None
        try:
            appointments = await task
        except asyncio.CancelledError:
            if self._fetch is not task:
                logger.debug("Fetch for %s - %s superseded", window_start, window_end)
                return None
            raise
        except ApiError as exc:
            if self._fetch is task:
                self.error = exc.message
                self.loading = False
            raise

        if self._fetch is not task:
            return None
        self.appointments = appointments
        self.loading = False
        return appointments

    async def refresh(self) -> Optional[list[AppointmentWithDetails]]:
        if self.window is None:
            return self.appointments
        return await self.load_range(*self.window)

    async def reschedule(self, appointment_id: str, start: datetime, end: datetime):
        """
        Move an appointment (drag and drop).

        The new position is shown immediately, then the request is awaited. On
        rejection the range is refetched so the last known-good schedule is shown,
        and the error is re-raised.
        """
        start, end = as_utc(start), as_utc(end)
        current = self.find(appointment_id)
        if current is None:
            raise LookupError(f"Appointment {appointment_id} is not in the loaded range")
        if current.startUtc == start and current.endUtc == end:
            return current

        previous = self.appointments
        self.appointments = [
            a.model_copy(update={"startUtc": start, "endUtc": end}) if a.id == appointment_id else a
            for a in self.appointments
        ]
        try:
            updated = await self.api.reschedule(appointment_id, start, end)
        except ApiError as exc:
            logger.info("Reschedule of %s rejected (%s); reverting", appointment_id, exc.reason)
            self.appointments = previous
            try:
                await self.refresh()
            except ApiError as refresh_exc:
                logger.warning("Refetch after rejected reschedule failed: %s", refresh_exc.message)
            # Set after the refetch, which clears it
            self.error = exc.message
            raise
        except BaseException:
            # Cancelled or failed before the server answered
            self.appointments = previous
            raise
        await self.refresh()
        return updated

    async def _mutate(self, request):
        try:
            result = await request
        except ApiError as exc:
            self.error = exc.message
            raise
        await self.refresh()
        return result

    async def create(self, **fields: Any):
        return await self._mutate(self.api.create_appointment(**fields))

    async def preview_recurrence(self, **fields: Any) -> list[OccurrencePreview]:
        return await self.api.preview_recurrence(**fields)

    async def create_recurring(
        self, *, recurrence: dict[str, Any], exclude: Iterable[datetime] = (), **fields: Any
    ):
        return await self._mutate(
            self.api.create_appointment(recurrence=recurrence, exclude_dates=exclude, **fields)
        )

    async def update(self, appointment_id: str, patch: dict[str, Any], scope: str = "single"):
        return await self._mutate(self.api.update_appointment(appointment_id, patch, scope))

    async def change_status(self, appointment_id: str, status: str):
        return await self._mutate(self.api.change_status(appointment_id, status))

    async def delete(self, appointment_id: str, scope: str = "single") -> list[str]:
        return await self._mutate(self.api.delete_appointment(appointment_id, scope))
