"""SQLAlchemy models for yard capacity, storage requests and inbound shipments."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Float, Date, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from .database import Base
from .db_types import JSONType, UTCDateTime, UUIDType


class Company(Base):
    """Customer company owning requests and inventory."""
    __tablename__ = "companies"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=True, unique=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    requests = relationship("StorageRequest", back_populates="company")


class Yard(Base):
    """Storage yard (top of the yard -> area -> rack hierarchy)."""
    __tablename__ = "yards"

    id = Column(String(20), primary_key=True)
    name = Column(String(255), nullable=False)

    areas = relationship("Area", back_populates="yard", cascade="all, delete-orphan")


class Area(Base):
    """Row or section inside a yard."""
    __tablename__ = "areas"

    id = Column(String(40), primary_key=True)
    yard_id = Column(String(20), ForeignKey("yards.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    yard = relationship("Yard", back_populates="areas")
    racks = relationship("Rack", back_populates="area", cascade="all, delete-orphan")


class Rack(Base):
    """Smallest storage unit. SLOT racks count positions, LINEAR racks count metres."""
    __tablename__ = "racks"

    id = Column(String(60), primary_key=True)
    area_id = Column(String(40), ForeignKey("areas.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    allocation_mode = Column(String(10), nullable=False, default="LINEAR")
    capacity = Column(Integer, nullable=False, default=0)
    occupied = Column(Integer, nullable=False, default=0)
    capacity_meters = Column(Float, nullable=False, default=0.0)
    occupied_meters = Column(Float, nullable=False, default=0.0)
    length_meters = Column(Float, nullable=True)
    width_meters = Column(Float, nullable=True)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            allocation_mode.in_(['SLOT', 'LINEAR']),
            name='chk_rack_allocation_mode'
        ),
        CheckConstraint(occupied >= 0, name='chk_rack_occupied_non_negative'),
        CheckConstraint(occupied <= capacity, name='chk_rack_occupied_within_capacity'),
        CheckConstraint(occupied_meters >= 0, name='chk_rack_occupied_meters_non_negative'),
        CheckConstraint(occupied_meters <= capacity_meters, name='chk_rack_occupied_meters_within_capacity'),
    )

    area = relationship("Area", back_populates="racks")
    reservations = relationship("RackReservation", back_populates="rack", cascade="all, delete-orphan")


class RackReservation(Base):
    """Soft, time-bounded hold on rack capacity. NULL end_date = open-ended."""
    __tablename__ = "rack_reservations"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    rack_id = Column(String(60), ForeignKey("racks.id", ondelete="CASCADE"), nullable=False)
    request_id = Column(UUIDType, ForeignKey("storage_requests.id", ondelete="CASCADE"), nullable=True, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    reserved_quantity = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default='ACTIVE')
    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint(reserved_quantity >= 0, name='chk_reservation_quantity_non_negative'),
        CheckConstraint(
            status.in_(['ACTIVE', 'RELEASED']),
            name='chk_reservation_status'
        ),
        CheckConstraint('end_date IS NULL OR end_date >= start_date', name='chk_reservation_date_order'),
        Index('idx_rack_reservations_dates', 'rack_id', 'start_date', 'end_date'),
    )

    rack = relationship("Rack", back_populates="reservations")


class StorageRequest(Base):
    """Customer storage request gated by the approval workflow."""
    __tablename__ = "storage_requests"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    reference_id = Column(String(100), nullable=False, index=True)
    company_id = Column(UUIDType, ForeignKey("companies.id"), nullable=False, index=True)
    user_email = Column(String(255), nullable=True)
    required_joints = Column(Integer, nullable=False, default=0)
    avg_joint_length_m = Column(Float, nullable=True)
    storage_start_date = Column(Date, nullable=True)
    storage_end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default='PENDING', index=True)
    assigned_rack_ids = Column(JSONType, nullable=False, default=list)
    internal_notes = Column(Text, nullable=True)
    approved_at = Column(UTCDateTime, nullable=True)
    approved_by = Column(String(255), nullable=True)
    rejected_at = Column(UTCDateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(required_joints >= 0, name='chk_request_required_joints_non_negative'),
        CheckConstraint(
            status.in_(['PENDING', 'APPROVED', 'REJECTED', 'COMPLETED']),
            name='chk_request_status'
        ),
    )

    company = relationship("Company", back_populates="requests")
    shipments = relationship("Shipment", back_populates="request")


class Shipment(Base):
    """Logistics execution unit for an approved request."""
    __tablename__ = "shipments"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    request_id = Column(UUIDType, ForeignKey("storage_requests.id"), nullable=False, index=True)
    company_id = Column(UUIDType, ForeignKey("companies.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default='DRAFT', index=True)
    calendar_sync_status = Column(String(20), nullable=False, default='PENDING')
    latest_customer_notification_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            status.in_(['DRAFT', 'SCHEDULING', 'SCHEDULED', 'IN_TRANSIT', 'RECEIVED', 'CANCELLED']),
            name='chk_shipment_status'
        ),
        CheckConstraint(
            calendar_sync_status.in_(['PENDING', 'SYNCED']),
            name='chk_shipment_calendar_sync_status'
        ),
    )

    request = relationship("StorageRequest", back_populates="shipments")
    company = relationship("Company")
    trucks = relationship("ShipmentTruck", back_populates="shipment", order_by="ShipmentTruck.sequence_number")
    appointments = relationship("DockAppointment", back_populates="shipment")
    items = relationship("ShipmentItem", back_populates="shipment")
    documents = relationship("ShipmentDocument", back_populates="shipment")


class ShipmentTruck(Base):
    """One physical delivery of a shipment."""
    __tablename__ = "shipment_trucks"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    shipment_id = Column(UUIDType, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default='INBOUND', index=True)
    trucking_company = Column(String(255), nullable=True)
    driver_name = Column(String(255), nullable=True)
    driver_phone = Column(String(50), nullable=True)
    arrival_time = Column(UTCDateTime, nullable=True)
    departure_time = Column(UTCDateTime, nullable=True)
    manifest_received = Column(Boolean, nullable=False, default=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            status.in_(['INBOUND', 'SCHEDULED', 'ON_SITE', 'RECEIVED', 'CANCELLED']),
            name='chk_truck_status'
        ),
        UniqueConstraint('shipment_id', 'sequence_number', name='uq_truck_shipment_sequence'),
    )

    shipment = relationship("Shipment", back_populates="trucks")
    appointment = relationship("DockAppointment", back_populates="truck", uselist=False)
    items = relationship("ShipmentItem", back_populates="truck")


class DockAppointment(Base):
    """Reserved unloading slot for one truck."""
    __tablename__ = "dock_appointments"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    shipment_id = Column(UUIDType, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    truck_id = Column(UUIDType, ForeignKey("shipment_trucks.id", ondelete="SET NULL"), nullable=True, unique=True)
    status = Column(String(20), nullable=False, default='PENDING')
    calendar_sync_status = Column(String(20), nullable=False, default='PENDING')
    calendar_event_id = Column(String(255), nullable=True)
    slot_start = Column(UTCDateTime, nullable=True)
    slot_end = Column(UTCDateTime, nullable=True)
    after_hours = Column(Boolean, nullable=False, default=False)
    reminder_24h_at = Column(UTCDateTime, nullable=True)
    reminder_1h_at = Column(UTCDateTime, nullable=True)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            status.in_(['PENDING', 'CONFIRMED', 'COMPLETED']),
            name='chk_appointment_status'
        ),
        CheckConstraint(
            calendar_sync_status.in_(['PENDING', 'SYNCED']),
            name='chk_appointment_calendar_sync_status'
        ),
    )

    shipment = relationship("Shipment", back_populates="appointments")
    truck = relationship("ShipmentTruck", back_populates="appointment")


class ShipmentItem(Base):
    """Manifest line: one pipe lot being transported."""
    __tablename__ = "shipment_items"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    shipment_id = Column(UUIDType, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    truck_id = Column(UUIDType, ForeignKey("shipment_trucks.id", ondelete="SET NULL"), nullable=True, index=True)
    inventory_id = Column(UUIDType, ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True)
    description = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default='PLANNED')

    __table_args__ = (
        CheckConstraint(
            status.in_(['PLANNED', 'IN_TRANSIT', 'IN_STORAGE']),
            name='chk_shipment_item_status'
        ),
    )

    shipment = relationship("Shipment", back_populates="items")
    truck = relationship("ShipmentTruck", back_populates="items")
    inventory = relationship("InventoryItem")


class ShipmentDocument(Base):
    """Uploaded paperwork attached to a shipment (metadata only)."""
    __tablename__ = "shipment_documents"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    shipment_id = Column(UUIDType, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(String(50), nullable=True)
    file_name = Column(String(255), nullable=False)
    storage_path = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    shipment = relationship("Shipment", back_populates="documents")


class InventoryItem(Base):
    """Pipe lot owned by a company, optionally placed on a rack."""
    __tablename__ = "inventory_items"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    company_id = Column(UUIDType, ForeignKey("companies.id"), nullable=False, index=True)
    request_id = Column(UUIDType, ForeignKey("storage_requests.id"), nullable=True, index=True)
    rack_id = Column(String(60), ForeignKey("racks.id", ondelete="SET NULL"), nullable=True, index=True)
    reference_id = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    length_m = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default='PENDING_DELIVERY', index=True)
    drop_off_timestamp = Column(UTCDateTime, nullable=True)
    pick_up_timestamp = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            status.in_(['PENDING_DELIVERY', 'IN_STORAGE', 'PICKED_UP']),
            name='chk_inventory_status'
        ),
    )

    rack = relationship("Rack")


class AuditEvent(Base):
    """Audit event model."""
    __tablename__ = "audit_events"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(String(60), nullable=False)
    entity_name = Column(String(255), nullable=True)
    actor = Column(String(255), nullable=True)
    details = Column(JSONType, default=dict)
    created_at = Column(UTCDateTime, server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(
            action.in_([
                'request_approved', 'request_rejected',
                'truck_received', 'shipment_received',
                'notification_failed', 'calendar_synced', 'calendar_sync_failed',
                'appointment_rescheduled', 'rack_occupancy_adjusted',
            ]),
            name='chk_audit_action'
        ),
    )


class RackOccupancyAdjustment(Base):
    """Manual occupancy edit with before/after values."""
    __tablename__ = "rack_occupancy_adjustments"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    rack_id = Column(String(60), ForeignKey("racks.id", ondelete="CASCADE"), nullable=False, index=True)
    adjusted_by = Column(String(255), nullable=True)
    reason = Column(Text, nullable=False)
    allocation_mode = Column(String(10), nullable=False)
    old_value = Column(Float, nullable=False)
    new_value = Column(Float, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())
