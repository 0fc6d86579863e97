from __future__ import annotations

from datetime import datetime, timezone

import pytest
import requests
from kombu.exceptions import OperationalError

from yardops import celery_app
from yardops.domain_errors import CollaboratorFailure
from yardops.services import calendar_client
from yardops.services.calendar_client import DockAppointmentEvent, HttpCalendarService, LoggingCalendarService
from yardops.services.notifications import CeleryNotificationService, ShipmentReceivedEmail

SLOT = datetime(2026, 1, 6, 16, 0, tzinfo=timezone.utc)

EVENT = DockAppointmentEvent(
    shipment_id="ship-1",
    truck_id="truck-1",
    company_name="Summit Drilling Co.",
    reference_id="REQ-001",
    slot_start=SLOT,
    slot_end=SLOT.replace(minute=30),
    after_hours=False,
)

EMAIL = ShipmentReceivedEmail(
    recipient="logistics@summit.example.com",
    reference_id="REQ-001",
    company_name="Summit Drilling Co.",
    trucks_received=3,
    manifest_lines=3,
    documents_attached=1,
    received_at=SLOT,
)


class _Response:
    def __init__(self, status_code: int, payload=None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def test_http_calendar_posts_event_and_returns_id(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def _post(url, **kwargs):
        calls.append((url, kwargs))
        return _Response(201, {"eventId": "outlook-42"})

    monkeypatch.setattr(calendar_client.requests, "post", _post)

    event = HttpCalendarService("https://calendar.example.com/", token="t0k", timeout=3).schedule_dock_appointment(EVENT)

    assert event.event_id == "outlook-42"
    url, kwargs = calls[0]
    assert url == "https://calendar.example.com/dock-appointments"
    assert kwargs["headers"]["Authorization"] == "Bearer t0k"
    assert kwargs["json"]["slotStart"] == SLOT.isoformat()
    assert kwargs["timeout"] == 3


@pytest.mark.parametrize(
    "response",
    [_Response(500, text="boom"), _Response(200, None), _Response(200, {"status": "ok"})],
)
def test_http_calendar_bad_responses_raise_collaborator_failure(monkeypatch, response) -> None:
    monkeypatch.setattr(calendar_client.requests, "post", lambda *_a, **_k: response)

    with pytest.raises(CollaboratorFailure) as exc_info:
        HttpCalendarService("https://calendar.example.com").schedule_dock_appointment(EVENT)
    assert exc_info.value.details == {"collaborator": "calendar"}


def test_http_calendar_network_error_raises_collaborator_failure(monkeypatch) -> None:
    def _post(*_args, **_kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(calendar_client.requests, "post", _post)

    with pytest.raises(CollaboratorFailure, match="unreachable"):
        HttpCalendarService("https://calendar.example.com").schedule_dock_appointment(EVENT)


def test_logging_calendar_returns_stub_event_id() -> None:
    event = LoggingCalendarService().schedule_dock_appointment(EVENT)
    assert event.event_id.startswith("CAL-STUB-truck-1-")


def test_calendar_service_defaults_to_stub_without_url(monkeypatch) -> None:
    monkeypatch.setattr(calendar_client.settings, "CALENDAR_API_URL", None)
    assert isinstance(calendar_client.get_calendar_service(), LoggingCalendarService)

    monkeypatch.setattr(calendar_client.settings, "CALENDAR_API_URL", "https://calendar.example.com")
    assert isinstance(calendar_client.get_calendar_service(), HttpCalendarService)


def test_notification_service_enqueues_serialisable_payload(monkeypatch) -> None:
    queued = []
    monkeypatch.setattr(celery_app.send_shipment_received_email, "delay", lambda payload: queued.append(payload))

    CeleryNotificationService().send_shipment_received_email(EMAIL)

    assert queued[0]["recipient"] == "logistics@summit.example.com"
    assert queued[0]["received_at"] == SLOT.isoformat()


def test_notification_service_wraps_broker_errors(monkeypatch) -> None:
    def _delay(_payload):
        raise OperationalError("Error 111 connecting to localhost:6379")

    monkeypatch.setattr(celery_app.send_shipment_received_email, "delay", _delay)

    with pytest.raises(CollaboratorFailure) as exc_info:
        CeleryNotificationService().send_shipment_received_email(EMAIL)
    assert exc_info.value.details == {"collaborator": "notification"}


def test_email_body_lists_receipt_counts() -> None:
    subject, body = celery_app.render_shipment_received_email(
        {"reference_id": "REQ-001", "company_name": "Summit", "trucks_received": 3, "manifest_lines": 4,
         "documents_attached": 2, "received_at": SLOT.isoformat()}
    )
    assert subject == "Shipment Received - REQ-001"
    assert "Trucks received: 3" in body
    assert "Documents on file: 2" in body


def test_send_email_reports_http_errors(monkeypatch) -> None:
    monkeypatch.setattr(celery_app.settings, "EMAIL_API_URL", "https://mail.example.com/send")
    monkeypatch.setattr(celery_app.requests, "post", lambda *_a, **_k: _Response(429))
    assert celery_app.send_email("a@b.c", "s", "b") == (False, "RATE_LIMIT")

    monkeypatch.setattr(celery_app.requests, "post", lambda *_a, **_k: _Response(202))
    assert celery_app.send_email("a@b.c", "s", "b") == (True, None)


def test_send_email_without_api_url(monkeypatch) -> None:
    monkeypatch.setattr(celery_app.settings, "EMAIL_API_URL", None)
    assert celery_app.send_email("a@b.c", "s", "b") == (False, "EMAIL_API_URL not configured")
