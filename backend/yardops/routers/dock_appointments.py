"""Dock appointment calendar endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import DockAppointmentOut, DockAppointmentReschedule
from ..use_cases.calendar_sync import reschedule_appointment, sync_appointment

router = APIRouter(tags=["dock-appointments"])


@router.post("/dock-appointments/{appointment_id}/calendar-sync", response_model=DockAppointmentOut)
def sync_calendar(appointment_id: UUID, db: Session = Depends(get_db)):
    return sync_appointment(db=db, appointment_id=appointment_id)


@router.put("/dock-appointments/{appointment_id}/slot", response_model=DockAppointmentOut)
def update_slot(appointment_id: UUID, data: DockAppointmentReschedule, db: Session = Depends(get_db)):
    return reschedule_appointment(
        db=db,
        appointment_id=appointment_id,
        slot_start=data.slot_start,
        slot_end=data.slot_end,
    )
