"""Calendar service adapters for dock appointments."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import requests

from ..config import settings
from ..domain_errors import CollaboratorFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DockAppointmentEvent:
    shipment_id: str
    truck_id: str
    company_name: str
    reference_id: str
    slot_start: datetime
    slot_end: datetime
    after_hours: bool


@dataclass(frozen=True)
class CalendarEvent:
    event_id: str


class CalendarService(Protocol):
    def schedule_dock_appointment(self, event: DockAppointmentEvent) -> CalendarEvent:
        ...


class HttpCalendarService:
    """Creates or updates an event through the calendar bridge HTTP API."""

    def __init__(self, base_url: str, *, token: str | None = None, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    def schedule_dock_appointment(self, event: DockAppointmentEvent) -> CalendarEvent:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        payload = {
            "shipmentId": event.shipment_id,
            "truckId": event.truck_id,
            "companyName": event.company_name,
            "referenceId": event.reference_id,
            "slotStart": event.slot_start.isoformat(),
            "slotEnd": event.slot_end.isoformat(),
            "afterHours": event.after_hours,
        }
        try:
            response = requests.post(
                f"{self._base_url}/dock-appointments",
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise CollaboratorFailure(
                collaborator="calendar",
                message=f"Calendar service unreachable: {exc}",
            ) from exc

        if response.status_code >= 400:
            raise CollaboratorFailure(
                collaborator="calendar",
                message=f"Calendar service returned HTTP_{response.status_code}: {response.text[:200]}",
            )

        try:
            event_id = response.json().get("eventId")
        except ValueError as exc:
            raise CollaboratorFailure(
                collaborator="calendar",
                message="Calendar service returned a non-JSON body",
            ) from exc
        if not event_id:
            raise CollaboratorFailure(collaborator="calendar", message="Calendar service returned no eventId")
        return CalendarEvent(event_id=str(event_id))


class LoggingCalendarService:
    """Stub used until a calendar bridge is configured; logs intent only."""

    def schedule_dock_appointment(self, event: DockAppointmentEvent) -> CalendarEvent:
        event_id = f"CAL-STUB-{event.truck_id}-{uuid.uuid4().hex[:8]}"
        logger.info(
            "calendar.stub shipment=%s truck=%s slot=%s..%s after_hours=%s event=%s",
            event.shipment_id,
            event.truck_id,
            event.slot_start.isoformat(),
            event.slot_end.isoformat(),
            event.after_hours,
            event_id,
        )
        return CalendarEvent(event_id=event_id)


def get_calendar_service() -> CalendarService:
    if settings.CALENDAR_API_URL:
        return HttpCalendarService(
            settings.CALENDAR_API_URL,
            token=settings.CALENDAR_API_TOKEN,
            timeout=settings.CALENDAR_TIMEOUT_SECONDS,
        )
    return LoggingCalendarService()
