"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date, datetime
from uuid import UUID


# Capacity schemas
class UtilizationOut(BaseModel):
    """Occupancy summed per unit kind for a yard or area."""
    scope: str
    scope_id: str
    rack_count: int
    slot_occupied: int
    slot_capacity: int
    slot_ratio: float
    linear_occupied: float
    linear_capacity: float
    linear_ratio: float


class RackFreeCapacityOut(BaseModel):
    rack_id: str
    allocation_mode: str
    unit: str
    capacity: float
    occupied: float
    free: float


class AvailabilityQuery(BaseModel):
    rack_ids: list[str] = Field(min_length=1)
    start_date: date
    end_date: Optional[date] = None
    required_joints: int = Field(ge=0)
    avg_joint_length_m: Optional[float] = Field(default=None, gt=0)


class RackAvailabilityOut(BaseModel):
    rack_id: str
    allocation_mode: str
    capacity: float
    reserved: float
    available: float
    available_joints: int
    physical_occupied: float
    over_reserved: bool
    model_config = ConfigDict(from_attributes=True)


class AvailabilityOut(BaseModel):
    required: int
    total_available: int
    sufficient: bool
    shortfall: int
    racks: list[RackAvailabilityOut]


class OccupancyAdjustmentCreate(BaseModel):
    new_occupied: float
    reason: str
    adjusted_by: Optional[str] = None


class OccupancyAdjustmentOut(BaseModel):
    id: UUID
    rack_id: str
    allocation_mode: str
    old_value: float
    new_value: float
    reason: str
    adjusted_by: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Storage request schemas
class StorageRequestApprove(BaseModel):
    rack_ids: list[str]
    required_joints: int
    notes: Optional[str] = None
    approved_by: Optional[str] = None


class StorageRequestReject(BaseModel):
    reason: str
    rejected_by: Optional[str] = None


class StorageRequestOut(BaseModel):
    id: UUID
    reference_id: str
    company_id: UUID
    status: str
    required_joints: int
    storage_start_date: Optional[date] = None
    storage_end_date: Optional[date] = None
    assigned_rack_ids: list[str] = []
    internal_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# Receiving schemas
class TruckReceiptOut(BaseModel):
    """Outcome of marking one truck received, step by step."""
    truck_id: UUID
    shipment_id: UUID
    truck_status: str
    shipment_status: str
    truck_received: bool
    appointment_completed: bool
    manifest_settled: bool
    shipment_completed: bool
    notification_sent: bool
    notification_error: Optional[str] = None
    overflow_rack_ids: list[str] = []


class ShipmentReconcileOut(BaseModel):
    shipment_id: UUID
    shipment_status: str
    trucks_reconciled: int
    shipment_completed: bool
    notification_sent: bool
    notification_error: Optional[str] = None
    overflow_rack_ids: list[str] = []


# Dock appointment schemas
class DockAppointmentOut(BaseModel):
    id: UUID
    shipment_id: UUID
    truck_id: Optional[UUID] = None
    status: str
    calendar_sync_status: str
    calendar_event_id: Optional[str] = None
    slot_start: Optional[datetime] = None
    slot_end: Optional[datetime] = None
    after_hours: bool
    reminder_24h_at: Optional[datetime] = None
    reminder_1h_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DockAppointmentReschedule(BaseModel):
    slot_start: datetime
    slot_end: Optional[datetime] = None
