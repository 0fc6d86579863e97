from __future__ import annotations

from datetime import datetime, timedelta, timezone
import uuid

import pytest

from yardops.domain_errors import CollaboratorFailure, InvalidStatusTransition, NotFound, NotScheduled, ValidationError
from yardops.models import AuditEvent, DockAppointment, Shipment
from yardops.use_cases.calendar_sync import CalendarSyncHooks, reschedule_appointment, sync_appointment

NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


def _hooks(calendar) -> CalendarSyncHooks:
    return CalendarSyncHooks(now_utc=lambda: NOW, calendar=calendar)


@pytest.fixture()
def shipment(make):
    return make.shipment(make.request(make.company(), status="APPROVED"))


def test_sync_slot_ten_hours_ahead_stores_only_the_short_reminder(db, make, shipment, calendar) -> None:
    truck = make.truck(shipment, 1)
    slot = NOW + timedelta(hours=10)
    appointment = make.appointment(shipment, truck, slot_start=slot)

    synced = sync_appointment(db=db, appointment_id=appointment.id, hooks=_hooks(calendar))

    assert synced.reminder_24h_at is None
    assert synced.reminder_1h_at == NOW + timedelta(hours=9)
    assert synced.slot_end == slot + timedelta(minutes=30)
    assert synced.calendar_sync_status == "SYNCED"
    assert synced.calendar_event_id == "EVT-1"
    assert synced.status == "CONFIRMED"
    assert db.query(Shipment.calendar_sync_status).filter(Shipment.id == shipment.id).scalar() == "SYNCED"

    event = calendar.events[0]
    assert event.truck_id == str(truck.id)
    assert event.company_name == "Summit Drilling Co."
    assert event.slot_start == slot


def test_sync_slot_thirty_minutes_ahead_stores_no_reminders(db, make, shipment, calendar) -> None:
    appointment = make.appointment(shipment, slot_start=NOW + timedelta(minutes=30))

    synced = sync_appointment(db=db, appointment_id=appointment.id, hooks=_hooks(calendar))

    assert synced.reminder_24h_at is None
    assert synced.reminder_1h_at is None


def test_sync_keeps_explicit_slot_end_and_completed_status(db, make, shipment, calendar) -> None:
    slot = NOW + timedelta(days=3)
    appointment = make.appointment(
        shipment,
        slot_start=slot,
        slot_end=slot + timedelta(hours=2),
        status="COMPLETED",
    )

    synced = sync_appointment(db=db, appointment_id=appointment.id, hooks=_hooks(calendar))

    assert synced.slot_end == slot + timedelta(hours=2)
    assert synced.status == "COMPLETED"
    assert synced.reminder_24h_at == slot - timedelta(hours=24)


def test_sync_without_slot_raises_not_scheduled(db, make, shipment, calendar) -> None:
    appointment = make.appointment(shipment)

    with pytest.raises(NotScheduled) as exc_info:
        sync_appointment(db=db, appointment_id=appointment.id, hooks=_hooks(calendar))

    assert exc_info.value.code == "APPOINTMENT_NOT_SCHEDULED"
    assert calendar.events == []


def test_calendar_failure_leaves_appointment_untouched(db, make, shipment, failing_calendar) -> None:
    appointment = make.appointment(shipment, slot_start=NOW + timedelta(days=2))

    with pytest.raises(CollaboratorFailure) as exc_info:
        sync_appointment(db=db, appointment_id=appointment.id, hooks=_hooks(failing_calendar))

    assert exc_info.value.http_status == 502
    stored = db.query(DockAppointment).filter(DockAppointment.id == appointment.id).one()
    assert stored.status == "PENDING"
    assert stored.calendar_sync_status == "PENDING"
    assert stored.calendar_event_id is None
    assert stored.slot_end is None
    assert stored.reminder_24h_at is None
    assert db.query(AuditEvent).filter(AuditEvent.action == "calendar_sync_failed").count() == 1


def test_sync_unknown_appointment_raises_not_found(db, calendar) -> None:
    with pytest.raises(NotFound):
        sync_appointment(db=db, appointment_id=uuid.uuid4(), hooks=_hooks(calendar))


def test_reschedule_recomputes_after_hours_and_resyncs(db, make, shipment, calendar) -> None:
    appointment = make.appointment(shipment, slot_start=NOW + timedelta(days=1))
    sync_appointment(db=db, appointment_id=appointment.id, hooks=_hooks(calendar))

    # Tuesday 2026-01-06 18:30 in Edmonton.
    new_start = datetime(2026, 1, 7, 1, 30, tzinfo=timezone.utc)
    moved = reschedule_appointment(
        db=db,
        appointment_id=appointment.id,
        slot_start=new_start,
        hooks=_hooks(calendar),
    )

    assert moved.slot_start == new_start
    assert moved.slot_end == new_start + timedelta(minutes=30)
    assert moved.after_hours is True
    assert moved.calendar_sync_status == "SYNCED"
    assert moved.calendar_event_id == "EVT-2"
    assert len(calendar.events) == 2
    assert calendar.events[1].after_hours is True
    audit = db.query(AuditEvent).filter(AuditEvent.action == "appointment_rescheduled").one()
    assert audit.details["surcharge"] == 450


def test_reschedule_survives_calendar_outage_with_sync_pending(db, make, shipment, failing_calendar) -> None:
    appointment = make.appointment(shipment, slot_start=NOW + timedelta(days=1))
    new_start = datetime(2026, 1, 6, 16, 0, tzinfo=timezone.utc)

    with pytest.raises(CollaboratorFailure):
        reschedule_appointment(
            db=db,
            appointment_id=appointment.id,
            slot_start=new_start,
            hooks=_hooks(failing_calendar),
        )

    stored = db.query(DockAppointment).filter(DockAppointment.id == appointment.id).one()
    assert stored.slot_start == new_start
    assert stored.after_hours is False
    assert stored.calendar_sync_status == "PENDING"


def test_completed_appointment_cannot_be_rescheduled(db, make, shipment, calendar) -> None:
    appointment = make.appointment(shipment, slot_start=NOW, status="COMPLETED")

    with pytest.raises(InvalidStatusTransition):
        reschedule_appointment(
            db=db,
            appointment_id=appointment.id,
            slot_start=NOW + timedelta(days=1),
            hooks=_hooks(calendar),
        )


def test_reschedule_rejects_end_before_start(db, make, shipment, calendar) -> None:
    appointment = make.appointment(shipment, slot_start=NOW + timedelta(days=1))
    start = NOW + timedelta(days=2)

    with pytest.raises(ValidationError):
        reschedule_appointment(
            db=db,
            appointment_id=appointment.id,
            slot_start=start,
            slot_end=start - timedelta(minutes=5),
            hooks=_hooks(calendar),
        )
