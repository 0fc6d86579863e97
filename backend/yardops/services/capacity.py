"""Rack capacity accounting for slot-counted and length-counted racks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Union

from ..models import Rack


SLOT = "SLOT"
LINEAR = "LINEAR"
ALLOCATION_MODES: tuple[str, ...] = (SLOT, LINEAR)


@dataclass(frozen=True)
class SlotUnits:
    """Discrete positions (one joint bundle per slot)."""

    capacity: int
    occupied: int

    kind = SLOT
    unit = "slots"

    @property
    def free(self) -> int:
        return max(self.capacity - self.occupied, 0)


@dataclass(frozen=True)
class LinearUnits:
    """Continuous rack length in metres."""

    capacity: float
    occupied: float

    kind = LINEAR
    unit = "m"

    @property
    def free(self) -> float:
        return max(self.capacity - self.occupied, 0.0)


RackUnits = Union[SlotUnits, LinearUnits]


def normalize_allocation_mode(mode: str | None) -> str:
    # Older rows carry the dashboard spelling.
    value = (mode or LINEAR).strip().upper()
    if value == "LINEAR_CAPACITY":
        return LINEAR
    if value not in ALLOCATION_MODES:
        raise ValueError(f"Unknown rack allocation mode: {mode}")
    return value


def rack_units(rack: Rack) -> RackUnits:
    """Return the rack's capacity/occupancy in its own unit."""
    if normalize_allocation_mode(rack.allocation_mode) == SLOT:
        return SlotUnits(capacity=int(rack.capacity or 0), occupied=int(rack.occupied or 0))
    return LinearUnits(
        capacity=float(rack.capacity_meters or 0.0),
        occupied=float(rack.occupied_meters or 0.0),
    )


def rack_free_capacity(rack: Rack) -> float:
    """Immediate "free now" figure, independent of reservations."""
    return rack_units(rack).free


def joint_capacity(quantity: float, *, kind: str, avg_joint_length_m: float) -> int:
    """Express a rack quantity as whole joints.

    Slot quantities already count joints; linear metres are divided by the
    average joint length and rounded down.
    """
    if kind == SLOT:
        return max(int(quantity), 0)
    if avg_joint_length_m <= 0:
        raise ValueError("Average joint length must be positive")
    return max(int(math.floor(quantity / avg_joint_length_m + 1e-9)), 0)


def joints_to_rack_quantity(joints: int, *, kind: str, length_m: float | None, default_length_m: float) -> float:
    """Inverse of ``joint_capacity``: size of a pipe lot in the rack's unit."""
    if kind == SLOT:
        return int(joints)
    return float(joints) * float(length_m or default_length_m)


def set_rack_occupied(rack: Rack, value: float) -> None:
    if normalize_allocation_mode(rack.allocation_mode) == SLOT:
        rack.occupied = int(value)
    else:
        rack.occupied_meters = float(value)


def _ratio(occupied: float, capacity: float) -> float:
    if capacity <= 0:
        return 0.0
    return occupied / capacity


@dataclass(frozen=True)
class Utilization:
    slot_occupied: int = 0
    slot_capacity: int = 0
    linear_occupied: float = 0.0
    linear_capacity: float = 0.0
    rack_count: int = 0

    @property
    def slot_ratio(self) -> float:
        return _ratio(self.slot_occupied, self.slot_capacity)

    @property
    def linear_ratio(self) -> float:
        return _ratio(self.linear_occupied, self.linear_capacity)

    @property
    def has_slot_racks(self) -> bool:
        return self.slot_capacity > 0

    @property
    def has_linear_racks(self) -> bool:
        return self.linear_capacity > 0


def utilization(racks: Iterable[Rack]) -> Utilization:
    """Sum occupancy per unit kind; racks of one mode never contribute to the other."""
    slot_occupied = 0
    slot_capacity = 0
    linear_occupied = 0.0
    linear_capacity = 0.0
    rack_count = 0

    for rack in racks:
        rack_count += 1
        units = rack_units(rack)
        if isinstance(units, SlotUnits):
            slot_occupied += units.occupied
            slot_capacity += units.capacity
        else:
            linear_occupied += units.occupied
            linear_capacity += units.capacity

    return Utilization(
        slot_occupied=slot_occupied,
        slot_capacity=slot_capacity,
        linear_occupied=linear_occupied,
        linear_capacity=linear_capacity,
        rack_count=rack_count,
    )


def ensure_within_capacity(units: RackUnits, new_occupied: float) -> None:
    if new_occupied < 0:
        raise ValueError("Occupancy values cannot be negative")
    if new_occupied > units.capacity:
        raise ValueError(
            f"New occupancy ({new_occupied} {units.unit}) exceeds rack capacity "
            f"({units.capacity} {units.unit})"
        )
