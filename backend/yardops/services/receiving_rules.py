"""Status tables and invariant helpers for requests, shipments and trucks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable


REQUEST_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"APPROVED", "REJECTED"},
    "APPROVED": {"COMPLETED"},
    "REJECTED": set(),
    "COMPLETED": set(),
}

SHIPMENT_TERMINAL_STATUSES: set[str] = {"RECEIVED", "CANCELLED"}

TRUCK_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "INBOUND": {"SCHEDULED", "ON_SITE", "RECEIVED", "CANCELLED"},
    "SCHEDULED": {"ON_SITE", "RECEIVED", "CANCELLED"},
    "ON_SITE": {"RECEIVED", "CANCELLED"},
    "RECEIVED": set(),
    "CANCELLED": set(),
}

APPOINTMENT_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"CONFIRMED", "COMPLETED"},
    "CONFIRMED": {"COMPLETED"},
    "COMPLETED": set(),
}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_status(status: str | None, *, default: str) -> str:
    if not status:
        return default
    return status.strip().upper()


def can_transition(table: dict[str, set[str]], *, current: str, nxt: str) -> bool:
    if current == nxt:
        return True
    return nxt in table.get(current, set())


def validate_transition(
    table: dict[str, set[str]],
    *,
    entity: str,
    current_status: str | None,
    next_status: str,
    default: str,
) -> str:
    current = normalize_status(current_status, default=default)
    nxt = normalize_status(next_status, default=default)
    if not can_transition(table, current=current, nxt=nxt):
        raise ValueError(f"Invalid {entity} status transition: {current} -> {nxt}")
    return nxt


def outstanding_trucks(statuses: Iterable[str | None]) -> int:
    """Count non-cancelled trucks that have not been received yet."""
    remaining = 0
    for status in statuses:
        value = normalize_status(status, default="INBOUND")
        if value in {"RECEIVED", "CANCELLED"}:
            continue
        remaining += 1
    return remaining


def shipment_can_complete(statuses: Iterable[str | None]) -> bool:
    """A shipment is complete once every non-cancelled truck is received.

    A shipment whose trucks are all cancelled is not complete.
    """
    statuses = [normalize_status(s, default="INBOUND") for s in statuses]
    if not any(s == "RECEIVED" for s in statuses):
        return False
    return outstanding_trucks(statuses) == 0


def truck_receipt_timestamps(
    *,
    arrival_time: datetime | None,
    at: datetime | None = None,
) -> dict[str, datetime]:
    ts = at or now_utc()
    return {
        "arrival_time": arrival_time or ts,
        "departure_time": ts,
    }
