"""Shared fixtures: in-memory SQLite session, row builders and recording fakes."""
from __future__ import annotations

from datetime import date, datetime
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from yardops.database import Base
from yardops.domain_errors import CollaboratorFailure
from yardops.models import (
    Area,
    Company,
    DockAppointment,
    InventoryItem,
    Rack,
    RackReservation,
    Shipment,
    ShipmentDocument,
    ShipmentItem,
    ShipmentTruck,
    StorageRequest,
    Yard,
)
from yardops.services.calendar_client import CalendarEvent



@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class Builder:
    """Creates and commits rows with sensible defaults."""

    def __init__(self, db) -> None:
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def company(self, name: str = "Summit Drilling Co."):
        return self._save(Company(name=name, domain=f"{uuid.uuid4().hex[:8]}.example.com"))

    def yard(self, yard_id: str = "A", name: str = "Yard A"):
        return self._save(Yard(id=yard_id, name=name))

    def area(self, yard, area_id: str | None = None, name: str = "Row 1"):
        return self._save(Area(id=area_id or f"{yard.id}-{uuid.uuid4().hex[:6]}", yard_id=yard.id, name=name))

    def slot_rack(self, area, rack_id: str, *, capacity: int = 10, occupied: int = 0):
        return self._save(
            Rack(
                id=rack_id,
                area_id=area.id,
                name=rack_id,
                allocation_mode="SLOT",
                capacity=capacity,
                occupied=occupied,
                capacity_meters=0.0,
                occupied_meters=0.0,
            )
        )

    def linear_rack(self, area, rack_id: str, *, capacity_meters: float = 120.0, occupied_meters: float = 0.0):
        return self._save(
            Rack(
                id=rack_id,
                area_id=area.id,
                name=rack_id,
                allocation_mode="LINEAR",
                capacity=0,
                occupied=0,
                capacity_meters=capacity_meters,
                occupied_meters=occupied_meters,
            )
        )

    def reservation(
        self,
        rack,
        *,
        start: date,
        end: date | None,
        quantity: float,
        status: str = "ACTIVE",
    ):
        return self._save(
            RackReservation(
                rack_id=rack.id,
                start_date=start,
                end_date=end,
                reserved_quantity=quantity,
                status=status,
            )
        )

    def request(
        self,
        company,
        *,
        status: str = "PENDING",
        required_joints: int = 10,
        start: date | None = date(2026, 1, 10),
        end: date | None = date(2026, 1, 20),
        user_email: str | None = "logistics@summit.example.com",
        avg_joint_length_m: float | None = None,
    ):
        return self._save(
            StorageRequest(
                reference_id=f"REQ-{uuid.uuid4().hex[:6].upper()}",
                company_id=company.id,
                user_email=user_email,
                required_joints=required_joints,
                avg_joint_length_m=avg_joint_length_m,
                storage_start_date=start,
                storage_end_date=end,
                status=status,
                assigned_rack_ids=[],
            )
        )

    def shipment(self, request, *, status: str = "SCHEDULED"):
        return self._save(Shipment(request_id=request.id, company_id=request.company_id, status=status))

    def truck(self, shipment, sequence_number: int, *, status: str = "SCHEDULED"):
        return self._save(ShipmentTruck(shipment_id=shipment.id, sequence_number=sequence_number, status=status))

    def appointment(
        self,
        shipment,
        truck=None,
        *,
        slot_start: datetime | None = None,
        slot_end: datetime | None = None,
        status: str = "PENDING",
    ):
        return self._save(
            DockAppointment(
                shipment_id=shipment.id,
                truck_id=truck.id if truck is not None else None,
                slot_start=slot_start,
                slot_end=slot_end,
                status=status,
            )
        )

    def inventory(self, company, *, rack=None, quantity: int = 10, length_m: float | None = None):
        return self._save(
            InventoryItem(
                company_id=company.id,
                rack_id=rack.id if rack is not None else None,
                quantity=quantity,
                length_m=length_m,
                status="PENDING_DELIVERY",
            )
        )

    def item(self, shipment, truck, *, inventory=None, quantity: int = 10):
        return self._save(
            ShipmentItem(
                shipment_id=shipment.id,
                truck_id=truck.id,
                inventory_id=inventory.id if inventory is not None else None,
                quantity=quantity,
                status="IN_TRANSIT",
            )
        )

    def document(self, shipment, file_name: str = "manifest.pdf"):
        return self._save(ShipmentDocument(shipment_id=shipment.id, document_type="manifest", file_name=file_name))


@pytest.fixture()
def make(db) -> Builder:
    return Builder(db)


class RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    def send_shipment_received_email(self, message) -> None:
        if self.fail:
            raise CollaboratorFailure(collaborator="notification", message="broker unavailable")
        self.sent.append(message)


class RecordingCalendar:
    def __init__(self, *, fail: bool = False) -> None:
        self.events = []
        self.fail = fail

    def schedule_dock_appointment(self, event) -> CalendarEvent:
        if self.fail:
            raise CollaboratorFailure(collaborator="calendar", message="calendar service unreachable")
        self.events.append(event)
        return CalendarEvent(event_id=f"EVT-{len(self.events)}")


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def calendar() -> RecordingCalendar:
    return RecordingCalendar()


@pytest.fixture()
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture()
def failing_calendar() -> RecordingCalendar:
    return RecordingCalendar(fail=True)
