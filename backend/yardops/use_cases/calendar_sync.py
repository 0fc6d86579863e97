"""Dock appointment calendar reconciliation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import CollaboratorFailure, InvalidStatusTransition, NotFound, NotScheduled, ValidationError
from ..models import AuditEvent, DockAppointment
from ..services.calendar_client import CalendarService, DockAppointmentEvent, get_calendar_service
from ..services.calendar_rules import is_after_hours, plan_slot, resolve_slot_end, surcharge_for
from ..services.receiving_rules import APPOINTMENT_ALLOWED_TRANSITIONS, can_transition, normalize_status, now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarSyncHooks:
    now_utc: Callable[[], datetime] = now_utc
    calendar: CalendarService | None = None


DEFAULT_HOOKS = CalendarSyncHooks()


def _get_appointment(db: Session, appointment_id: UUID) -> DockAppointment:
    appointment = db.query(DockAppointment).filter(DockAppointment.id == appointment_id).first()
    if appointment is None:
        raise NotFound("dock_appointment", appointment_id)
    return appointment


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _build_event(appointment: DockAppointment, *, slot_end: datetime) -> DockAppointmentEvent:
    shipment = appointment.shipment
    request = shipment.request if shipment is not None else None
    company = shipment.company if shipment is not None else None
    return DockAppointmentEvent(
        shipment_id=str(appointment.shipment_id),
        truck_id=str(appointment.truck_id or appointment.id),
        company_name=company.name if company is not None else "",
        reference_id=request.reference_id if request is not None else "",
        slot_start=appointment.slot_start,
        slot_end=slot_end,
        after_hours=bool(appointment.after_hours),
    )


def sync_appointment(
    *,
    db: Session,
    appointment_id: UUID,
    hooks: CalendarSyncHooks = DEFAULT_HOOKS,
) -> DockAppointment:
    """Push the appointment's slot to the calendar and store the reminder schedule.

    Reminders already in the past are left empty. On calendar failure the
    appointment is left exactly as it was.
    """
    appointment = _get_appointment(db, appointment_id)
    if appointment.slot_start is None:
        raise NotScheduled(appointment_id)

    plan = plan_slot(appointment.slot_start, appointment.slot_end, now=hooks.now_utc())
    event = _build_event(appointment, slot_end=plan.slot_end)
    calendar = hooks.calendar or get_calendar_service()

    try:
        calendar_event = calendar.schedule_dock_appointment(event)
    except CollaboratorFailure as exc:
        logger.exception("Calendar sync failed appointment=%s shipment=%s", appointment.id, appointment.shipment_id)
        db.rollback()
        db.add(
            AuditEvent(
                action="calendar_sync_failed",
                entity_type="dock_appointment",
                entity_id=str(appointment_id),
                details={"error": exc.message},
            )
        )
        db.commit()
        raise

    appointment.slot_end = plan.slot_end
    appointment.reminder_24h_at = plan.reminder_24h_at
    appointment.reminder_1h_at = plan.reminder_1h_at
    appointment.calendar_event_id = calendar_event.event_id
    appointment.calendar_sync_status = "SYNCED"
    current = normalize_status(appointment.status, default="PENDING")
    if current != "CONFIRMED" and can_transition(APPOINTMENT_ALLOWED_TRANSITIONS, current=current, nxt="CONFIRMED"):
        appointment.status = "CONFIRMED"
    if appointment.shipment is not None:
        appointment.shipment.calendar_sync_status = "SYNCED"

    db.add(
        AuditEvent(
            action="calendar_synced",
            entity_type="dock_appointment",
            entity_id=str(appointment.id),
            details={"event_id": calendar_event.event_id},
        )
    )
    db.commit()
    db.refresh(appointment)

    logger.info(
        "Calendar synced appointment=%s event=%s reminders=%s/%s",
        appointment.id,
        appointment.calendar_event_id,
        appointment.reminder_24h_at,
        appointment.reminder_1h_at,
    )
    return appointment


def reschedule_appointment(
    *,
    db: Session,
    appointment_id: UUID,
    slot_start: datetime,
    slot_end: datetime | None = None,
    hooks: CalendarSyncHooks = DEFAULT_HOOKS,
) -> DockAppointment:
    """Move the appointment to a new slot, then re-sync the calendar.

    The new slot is committed before the calendar call, so a calendar outage
    leaves the appointment rescheduled with its sync still pending.
    """
    appointment = _get_appointment(db, appointment_id)
    if appointment.status == "COMPLETED":
        raise InvalidStatusTransition(entity="dock_appointment", current="COMPLETED", requested="RESCHEDULED")

    slot_start = _as_utc(slot_start)
    if slot_end is not None:
        slot_end = _as_utc(slot_end)
        if slot_end <= slot_start:
            raise ValidationError("Slot end must be after slot start")

    after_hours = is_after_hours(slot_start)
    previous = appointment.slot_start
    appointment.slot_start = slot_start
    appointment.slot_end = resolve_slot_end(slot_start, slot_end)
    appointment.after_hours = after_hours
    appointment.reminder_24h_at = None
    appointment.reminder_1h_at = None
    appointment.calendar_sync_status = "PENDING"
    db.add(
        AuditEvent(
            action="appointment_rescheduled",
            entity_type="dock_appointment",
            entity_id=str(appointment.id),
            details={
                "previous_slot_start": previous.isoformat() if previous else None,
                "slot_start": slot_start.isoformat(),
                "after_hours": after_hours,
                "surcharge": surcharge_for(after_hours),
            },
        )
    )
    db.commit()
    logger.info("Rescheduled appointment=%s slot=%s after_hours=%s", appointment.id, slot_start, after_hours)

    return sync_appointment(db=db, appointment_id=appointment.id, hooks=hooks)
