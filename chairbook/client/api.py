"""
Async HTTP client for the scheduling API.

Responses are parsed into the same pydantic models the server renders, so
callers work with typed appointments instead of raw JSON.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

import httpx

from ..domain.appointments.schemas import (
    AppointmentResponse,
    AppointmentWithDetails,
    OccurrencePreview,
)
from ..domain.catalog.schemas import ServiceResponse
from ..domain.clients.schemas import ClientResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """The API rejected a request; ``reason`` mirrors the server's error name"""

    def __init__(
        self,
        message: str,
        *,
        reason: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.status_code = status_code
        self.details = details or {}
        self.cause = cause

    @property
    def is_conflict(self) -> bool:
        return self.reason == "ConflictError"


def format_utc(value: datetime) -> str:
    """ISO-8601 in UTC; naive values are taken to be UTC already"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


class SchedulingApiClient:
    """Typed wrapper over every scheduling endpoint"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SchedulingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.RequestError as exc:
            logger.warning("Unable to reach scheduling API: %s", exc)
            raise ApiError("Unable to reach the scheduling API", reason="NetworkError", cause=exc) from exc

        if response.is_success:
            return response.json()["data"]

        try:
            body = response.json()
        except ValueError:
            body = {}
        raise ApiError(
            body.get("error") or f"Request failed with status {response.status_code}",
            reason=body.get("reason") or "HttpError",
            status_code=response.status_code,
            details=body.get("details"),
        )

    # Appointments

    async def list_appointments(
        self, window_start: datetime, window_end: datetime, status: Optional[str] = None
    ) -> list[AppointmentWithDetails]:
        params = {"from": format_utc(window_start), "to": format_utc(window_end)}
        if status:
            params["status"] = status
        data = await self._request("GET", "/appointments", params=params)
        return [AppointmentWithDetails.model_validate(item) for item in data]

    async def get_appointment(self, appointment_id: str) -> AppointmentWithDetails:
        data = await self._request("GET", f"/appointments/{appointment_id}")
        return AppointmentWithDetails.model_validate(data)

    async def create_appointment(
        self,
        *,
        client_id: str,
        service_id: str,
        start: datetime,
        end: datetime,
        status: str = "confirmed",
        notes: Optional[str] = None,
        recurrence: Optional[dict[str, Any]] = None,
        exclude_dates: Iterable[datetime] = (),
    ) -> Union[AppointmentResponse, list[AppointmentResponse]]:
        payload = _appointment_payload(client_id, service_id, start, end, status, notes)
        if recurrence is not None:
            payload["recurrence"] = recurrence
            payload["excludeDates"] = [format_utc(d) for d in exclude_dates]
        data = await self._request("POST", "/appointments", json=payload)
        if isinstance(data, list):
            return [AppointmentResponse.model_validate(item) for item in data]
        return AppointmentResponse.model_validate(data)

    async def preview_recurrence(
        self,
        *,
        client_id: str,
        service_id: str,
        start: datetime,
        end: datetime,
        recurrence: dict[str, Any],
        status: str = "confirmed",
        notes: Optional[str] = None,
    ) -> list[OccurrencePreview]:
        payload = _appointment_payload(client_id, service_id, start, end, status, notes)
        payload["recurrence"] = recurrence
        data = await self._request("POST", "/appointments/preview-recurrence", json=payload)
        return [OccurrencePreview.model_validate(item) for item in data]

    async def update_appointment(
        self, appointment_id: str, patch: dict[str, Any], scope: str = "single"
    ) -> Union[AppointmentResponse, list[AppointmentResponse]]:
        body = {
            key: format_utc(value) if isinstance(value, datetime) else value
            for key, value in patch.items()
        }
        data = await self._request(
            "PUT", f"/appointments/{appointment_id}", json=body, params={"scope": scope}
        )
        if isinstance(data, list):
            return [AppointmentResponse.model_validate(item) for item in data]
        return AppointmentResponse.model_validate(data)

    async def reschedule(
        self, appointment_id: str, start: datetime, end: datetime
    ) -> AppointmentResponse:
        data = await self._request(
            "PATCH",
            f"/appointments/{appointment_id}/reschedule",
            json={"startUtc": format_utc(start), "endUtc": format_utc(end)},
        )
        return AppointmentResponse.model_validate(data)

    async def change_status(self, appointment_id: str, status: str) -> AppointmentResponse:
        data = await self._request(
            "PATCH", f"/appointments/{appointment_id}/status", json={"status": status}
        )
        return AppointmentResponse.model_validate(data)

    async def delete_appointment(self, appointment_id: str, scope: str = "single") -> list[str]:
        data = await self._request(
            "DELETE", f"/appointments/{appointment_id}", params={"scope": scope}
        )
        return data["deletedIds"]

    # Clients and services

    async def list_clients(self, search: Optional[str] = None) -> list[ClientResponse]:
        params = {"q": search} if search else None
        data = await self._request("GET", "/clients", params=params)
        return [ClientResponse.model_validate(item) for item in data]

    async def create_client(self, **fields: Any) -> ClientResponse:
        data = await self._request("POST", "/clients", json=fields)
        return ClientResponse.model_validate(data)

    async def list_services(self) -> list[ServiceResponse]:
        data = await self._request("GET", "/services")
        return [ServiceResponse.model_validate(item) for item in data]

    async def create_service(self, **fields: Any) -> ServiceResponse:
        data = await self._request("POST", "/services", json=fields)
        return ServiceResponse.model_validate(data)


def _appointment_payload(
    client_id: str,
    service_id: str,
    start: datetime,
    end: datetime,
    status: str,
    notes: Optional[str],
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "clientId": client_id,
        "serviceId": service_id,
        "startUtc": format_utc(start),
        "endUtc": format_utc(end),
        "status": status,
    }
    if notes is not None:
        payload["notes"] = notes
    return payload
