"""Read-side capacity queries: utilization roll-ups and windowed availability."""
from __future__ import annotations

from typing import Sequence

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import NotFound, RackNotFound
from ..models import Area, Rack, RackReservation, Yard
from ..services.capacity import Utilization, rack_units, utilization
from ..services.reservations import ACTIVE, DateWindow, ResolverResult, resolve


def _unique(ids: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(str(rack_id).strip() for rack_id in ids if str(rack_id).strip()))


def yard_utilization(*, db: Session, yard_id: str) -> Utilization:
    yard = db.query(Yard).filter(Yard.id == yard_id).first()
    if yard is None:
        raise NotFound("yard", yard_id)
    racks = db.query(Rack).join(Area, Rack.area_id == Area.id).filter(Area.yard_id == yard_id).all()
    return utilization(racks)


def area_utilization(*, db: Session, area_id: str) -> Utilization:
    area = db.query(Area).filter(Area.id == area_id).first()
    if area is None:
        raise NotFound("area", area_id)
    racks = db.query(Rack).filter(Rack.area_id == area_id).all()
    return utilization(racks)


def get_rack(*, db: Session, rack_id: str, for_update: bool = False) -> Rack:
    query = db.query(Rack).filter(Rack.id == rack_id)
    if for_update:
        query = query.with_for_update()
    rack = query.first()
    if rack is None:
        raise RackNotFound(rack_id)
    return rack


def rack_free_capacity(*, db: Session, rack_id: str):
    """Rack's own units; ``.free`` is capacity minus physical occupancy."""
    return rack_units(get_rack(db=db, rack_id=rack_id))


def load_racks(*, db: Session, rack_ids: Sequence[str], for_update: bool = False) -> list[Rack]:
    """Racks in the order given; unknown ids raise ``RackNotFound``."""
    ids = _unique(rack_ids)
    if not ids:
        return []
    query = db.query(Rack).filter(Rack.id.in_(ids))
    if for_update:
        query = query.order_by(Rack.id).with_for_update()
    by_id = {rack.id: rack for rack in query.all()}
    for rack_id in ids:
        if rack_id not in by_id:
            raise RackNotFound(rack_id)
    return [by_id[rack_id] for rack_id in ids]


def active_reservations(*, db: Session, rack_ids: Sequence[str]) -> list[RackReservation]:
    ids = _unique(rack_ids)
    if not ids:
        return []
    return (
        db.query(RackReservation)
        .filter(RackReservation.rack_id.in_(ids), RackReservation.status == ACTIVE)
        .all()
    )


def resolve_rack_availability(
    *,
    db: Session,
    rack_ids: Sequence[str],
    window: DateWindow,
    required: int,
    avg_joint_length_m: float | None = None,
    for_update: bool = False,
) -> ResolverResult:
    """Joint availability of ``rack_ids`` over ``window``.

    Zero-capacity racks contribute zero rather than failing.
    """
    racks = load_racks(db=db, rack_ids=rack_ids, for_update=for_update)
    reservations = active_reservations(db=db, rack_ids=[rack.id for rack in racks])
    return resolve(
        racks,
        window,
        required,
        reservations,
        avg_joint_length_m=avg_joint_length_m or settings.DEFAULT_JOINT_LENGTH_M,
    )
