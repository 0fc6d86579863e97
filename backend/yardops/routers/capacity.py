"""Yard, area and rack capacity endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    AvailabilityOut,
    AvailabilityQuery,
    OccupancyAdjustmentCreate,
    OccupancyAdjustmentOut,
    RackAvailabilityOut,
    RackFreeCapacityOut,
    UtilizationOut,
)
from ..domain_errors import ValidationError
from ..services.capacity import Utilization
from ..services.reservations import DateWindow
from ..use_cases import capacity_queries
from ..use_cases.rack_adjustments import adjust_rack_occupancy

router = APIRouter(tags=["capacity"])


def _to_utilization_out(scope: str, scope_id: str, usage: Utilization) -> UtilizationOut:
    return UtilizationOut(
        scope=scope,
        scope_id=scope_id,
        rack_count=usage.rack_count,
        slot_occupied=usage.slot_occupied,
        slot_capacity=usage.slot_capacity,
        slot_ratio=usage.slot_ratio,
        linear_occupied=usage.linear_occupied,
        linear_capacity=usage.linear_capacity,
        linear_ratio=usage.linear_ratio,
    )


@router.get("/yards/{yard_id}/utilization", response_model=UtilizationOut)
def get_yard_utilization(yard_id: str, db: Session = Depends(get_db)):
    usage = capacity_queries.yard_utilization(db=db, yard_id=yard_id)
    return _to_utilization_out("yard", yard_id, usage)


@router.get("/areas/{area_id}/utilization", response_model=UtilizationOut)
def get_area_utilization(area_id: str, db: Session = Depends(get_db)):
    usage = capacity_queries.area_utilization(db=db, area_id=area_id)
    return _to_utilization_out("area", area_id, usage)


@router.get("/racks/{rack_id}/free-capacity", response_model=RackFreeCapacityOut)
def get_rack_free_capacity(rack_id: str, db: Session = Depends(get_db)):
    units = capacity_queries.rack_free_capacity(db=db, rack_id=rack_id)
    return RackFreeCapacityOut(
        rack_id=rack_id,
        allocation_mode=units.kind,
        unit=units.unit,
        capacity=units.capacity,
        occupied=units.occupied,
        free=units.free,
    )


@router.post("/racks/availability", response_model=AvailabilityOut)
def check_rack_availability(data: AvailabilityQuery, db: Session = Depends(get_db)):
    """Planning query: how many joints the selected racks can take for a window."""
    try:
        window = DateWindow(start=data.start_date, end=data.end_date)
    except ValueError as error:
        raise ValidationError(str(error)) from error

    result = capacity_queries.resolve_rack_availability(
        db=db,
        rack_ids=data.rack_ids,
        window=window,
        required=data.required_joints,
        avg_joint_length_m=data.avg_joint_length_m,
    )
    return AvailabilityOut(
        required=result.required,
        total_available=result.total_available,
        sufficient=result.sufficient,
        shortfall=result.shortfall,
        racks=[
            RackAvailabilityOut(
                rack_id=item.rack_id,
                allocation_mode=item.allocation_mode,
                capacity=item.capacity,
                reserved=item.reserved,
                available=item.available,
                available_joints=item.available_joints,
                physical_occupied=item.physical_occupied,
                over_reserved=item.over_reserved,
            )
            for item in result.racks
        ],
    )


@router.post("/racks/{rack_id}/occupancy-adjustments", response_model=OccupancyAdjustmentOut, status_code=201)
def create_occupancy_adjustment(rack_id: str, data: OccupancyAdjustmentCreate, db: Session = Depends(get_db)):
    return adjust_rack_occupancy(
        db=db,
        rack_id=rack_id,
        new_occupied=data.new_occupied,
        reason=data.reason,
        adjusted_by=data.adjusted_by,
    )
