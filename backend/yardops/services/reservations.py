"""Reservation overlap and time-windowed rack availability."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

from ..models import Rack, RackReservation
from .capacity import SLOT, joint_capacity, rack_units


ACTIVE = "ACTIVE"
RELEASED = "RELEASED"


@dataclass(frozen=True)
class DateWindow:
    """Closed date interval; ``end=None`` is open-ended."""

    start: date
    end: date | None = None

    def __post_init__(self) -> None:
        if self.end is not None and self.end < self.start:
            raise ValueError("Window end must not precede its start")


def windows_overlap(a: DateWindow, b: DateWindow) -> bool:
    """Inclusive on both bounds: a window ending on the day another starts overlaps it."""
    a_before_b_end = b.end is None or a.start <= b.end
    b_before_a_end = a.end is None or b.start <= a.end
    return a_before_b_end and b_before_a_end


def reservation_window(reservation: RackReservation) -> DateWindow:
    return DateWindow(start=reservation.start_date, end=reservation.end_date)


def is_active(reservation: RackReservation) -> bool:
    return (reservation.status or "").upper() == ACTIVE


def held_quantity(reservations: Iterable[RackReservation], *, rack_id: str, window: DateWindow) -> float:
    """Sum of ACTIVE reservations on ``rack_id`` overlapping ``window``."""
    total = 0.0
    for reservation in reservations:
        if reservation.rack_id != rack_id or not is_active(reservation):
            continue
        if windows_overlap(reservation_window(reservation), window):
            total += float(reservation.reserved_quantity or 0)
    return total


def available_capacity(rack: Rack, reservations: Iterable[RackReservation], window: DateWindow) -> float:
    """Nominal capacity minus overlapping ACTIVE holds, floored at zero (rack unit)."""
    units = rack_units(rack)
    held = held_quantity(reservations, rack_id=rack.id, window=window)
    return max(units.capacity - held, 0)


@dataclass(frozen=True)
class RackAvailability:
    rack_id: str
    allocation_mode: str
    capacity: float
    reserved: float
    available: float
    available_joints: int
    physical_occupied: float

    @property
    def over_reserved(self) -> bool:
        """Physical occupancy exceeds what is held by reservations (flag only)."""
        return self.physical_occupied > self.reserved


@dataclass(frozen=True)
class ResolverResult:
    required: int
    total_available: int
    racks: list[RackAvailability] = field(default_factory=list)

    @property
    def available_by_rack(self) -> dict[str, int]:
        return {item.rack_id: item.available_joints for item in self.racks}

    @property
    def sufficient(self) -> bool:
        return self.total_available >= self.required

    @property
    def shortfall(self) -> int:
        return max(self.required - self.total_available, 0)


def resolve(
    racks: Sequence[Rack],
    window: DateWindow,
    required: int,
    reservations: Iterable[RackReservation],
    *,
    avg_joint_length_m: float,
) -> ResolverResult:
    """Aggregate joint availability of candidate racks for ``window``.

    Pure planning query: nothing is locked or reserved here.
    """
    reservations = list(reservations)
    per_rack: list[RackAvailability] = []
    total = 0

    for rack in racks:
        units = rack_units(rack)
        reserved = held_quantity(reservations, rack_id=rack.id, window=window)
        available = max(units.capacity - reserved, 0)
        available_joints = joint_capacity(
            available,
            kind=units.kind,
            avg_joint_length_m=avg_joint_length_m,
        )
        per_rack.append(
            RackAvailability(
                rack_id=rack.id,
                allocation_mode=units.kind,
                capacity=units.capacity,
                reserved=reserved,
                available=available if units.kind != SLOT else int(available),
                available_joints=available_joints,
                physical_occupied=units.occupied,
            )
        )
        total += available_joints

    return ResolverResult(required=int(required), total_available=total, racks=per_rack)
