"""Dock appointment slot and reminder computation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from ..config import settings


@dataclass(frozen=True)
class SlotPlan:
    slot_start: datetime
    slot_end: datetime
    reminder_24h_at: datetime | None
    reminder_1h_at: datetime | None


def resolve_slot_end(slot_start: datetime, slot_end: datetime | None, *, minutes: int | None = None) -> datetime:
    if slot_end is not None:
        return slot_end
    return slot_start + timedelta(minutes=minutes or settings.DEFAULT_SLOT_MINUTES)


def future_reminder(slot_start: datetime, *, hours_before: int, now: datetime) -> datetime | None:
    """Reminder timestamp, or None when it would already be in the past."""
    at = slot_start - timedelta(hours=hours_before)
    if at > now:
        return at
    return None


def plan_slot(slot_start: datetime, slot_end: datetime | None, *, now: datetime) -> SlotPlan:
    return SlotPlan(
        slot_start=slot_start,
        slot_end=resolve_slot_end(slot_start, slot_end),
        reminder_24h_at=future_reminder(slot_start, hours_before=settings.REMINDER_LONG_HOURS, now=now),
        reminder_1h_at=future_reminder(slot_start, hours_before=settings.REMINDER_SHORT_HOURS, now=now),
    )


def is_after_hours(slot_start: datetime, *, tz_name: str | None = None) -> bool:
    """Outside weekday receiving hours in the yard's local time."""
    local = slot_start.astimezone(ZoneInfo(tz_name or settings.YARD_TIMEZONE))
    if local.weekday() >= 5:
        return True
    return not (settings.RECEIVING_HOURS_START <= local.hour < settings.RECEIVING_HOURS_END)


def surcharge_for(after_hours: bool) -> int:
    return settings.OFF_HOURS_SURCHARGE if after_hours else 0
