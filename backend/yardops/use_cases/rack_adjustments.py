"""Manual rack occupancy corrections by yard staff."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ValidationError
from ..models import AuditEvent, RackOccupancyAdjustment
from ..services.capacity import SLOT, ensure_within_capacity, rack_units, set_rack_occupied
from .capacity_queries import get_rack

logger = logging.getLogger(__name__)


def adjust_rack_occupancy(
    *,
    db: Session,
    rack_id: str,
    new_occupied: float,
    reason: str,
    adjusted_by: str | None = None,
) -> RackOccupancyAdjustment:
    reason = (reason or "").strip()
    min_length = settings.MANUAL_ADJUSTMENT_MIN_REASON_LENGTH
    if len(reason) < min_length:
        raise ValidationError(
            f"Please provide a reason of at least {min_length} characters",
            details={"min_length": min_length},
        )

    rack = get_rack(db=db, rack_id=rack_id, for_update=True)
    units = rack_units(rack)
    if units.kind == SLOT and float(new_occupied) != int(new_occupied):
        raise ValidationError("Slot racks take a whole number of slots")
    try:
        ensure_within_capacity(units, new_occupied)
    except ValueError as error:
        raise ValidationError(
            str(error),
            details={"capacity": units.capacity, "requested": new_occupied, "unit": units.unit},
        ) from error

    set_rack_occupied(rack, new_occupied)
    adjustment = RackOccupancyAdjustment(
        rack_id=rack.id,
        adjusted_by=adjusted_by,
        reason=reason,
        allocation_mode=units.kind,
        old_value=float(units.occupied),
        new_value=float(new_occupied),
    )
    db.add(adjustment)
    db.add(
        AuditEvent(
            action="rack_occupancy_adjusted",
            entity_type="rack",
            entity_id=rack.id,
            entity_name=rack.name,
            actor=adjusted_by,
            details={"old": units.occupied, "new": new_occupied, "unit": units.unit, "reason": reason},
        )
    )
    db.commit()
    db.refresh(adjustment)

    logger.info(
        "Rack occupancy adjusted rack=%s %s -> %s %s by=%s",
        rack.id,
        units.occupied,
        new_occupied,
        units.unit,
        adjusted_by,
    )
    return adjustment
