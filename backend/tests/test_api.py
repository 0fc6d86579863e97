from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from yardops.database import get_db
from yardops.main import app
from yardops.use_cases import receiving


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def yard_a(make):
    yard = make.yard("A", "Yard A (Open Storage)")
    area = make.area(yard, "A-A1", "Row 1 (West)")
    make.slot_rack(area, "A-A1-1", capacity=10, occupied=4)
    make.linear_rack(area, "A-A1-2", capacity_meters=120.0, occupied_meters=30.0)
    return yard


def test_health_reports_database(client) -> None:
    response = client.get("/api/v1/system/health")
    assert response.status_code == 200
    assert response.json()["database"] == "ok"


def test_yard_utilization_endpoint(client, yard_a) -> None:
    response = client.get("/api/v1/yards/A/utilization")

    assert response.status_code == 200
    payload = response.json()
    assert payload["slot_ratio"] == pytest.approx(0.4)
    assert payload["linear_ratio"] == pytest.approx(0.25)
    assert payload["rack_count"] == 2


def test_unknown_yard_is_problem_404(client) -> None:
    response = client.get("/api/v1/yards/Z/utilization")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["code"] == "YARD_NOT_FOUND"


def test_rack_free_capacity_endpoint(client, yard_a) -> None:
    response = client.get("/api/v1/racks/A-A1-2/free-capacity")

    assert response.status_code == 200
    assert response.json()["free"] == pytest.approx(90.0)
    assert response.json()["unit"] == "m"


def test_availability_endpoint_reports_joints(client, make, yard_a) -> None:
    response = client.post(
        "/api/v1/racks/availability",
        json={
            "rack_ids": ["A-A1-1", "A-A1-2"],
            "start_date": "2026-01-10",
            "end_date": "2026-01-20",
            "required_joints": 25,
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_available"] == 20
    assert payload["sufficient"] is False
    assert payload["shortfall"] == 5


def test_approve_endpoint_maps_insufficient_capacity(client, make, yard_a) -> None:
    request = make.request(make.company(), start=date(2026, 1, 10), end=date(2026, 1, 20))

    response = client.post(
        f"/api/v1/storage-requests/{request.id}/approve",
        json={"rack_ids": ["A-A1-1"], "required_joints": 11},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "INSUFFICIENT_CAPACITY"
    assert body["details"] == {"required": 11, "available": 10, "shortfall": 1}


def test_approve_then_reject_conflict(client, make, yard_a) -> None:
    request = make.request(make.company())

    approved = client.post(
        f"/api/v1/storage-requests/{request.id}/approve",
        json={"rack_ids": ["A-A1-1"], "required_joints": 5, "approved_by": "admin@yard.example.com"},
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"
    assert approved.json()["assigned_rack_ids"] == ["A-A1-1"]

    rejected = client.post(f"/api/v1/storage-requests/{request.id}/reject", json={"reason": "changed my mind"})
    assert rejected.status_code == 409
    assert rejected.json()["code"] == "INVALID_STATUS_TRANSITION"


def test_receive_truck_endpoint(client, make, notifier, monkeypatch) -> None:
    monkeypatch.setattr(receiving, "get_notification_service", lambda: notifier)
    shipment = make.shipment(make.request(make.company(), status="APPROVED"))
    truck = make.truck(shipment, 1)

    response = client.post(f"/api/v1/shipment-trucks/{truck.id}/receive")

    assert response.status_code == 200
    payload = response.json()
    assert payload["truck_status"] == "RECEIVED"
    assert payload["shipment_status"] == "RECEIVED"
    assert payload["notification_sent"] is True
    assert len(notifier.sent) == 1


def test_reconcile_endpoint_reports_notification_error(client, make, notifier, monkeypatch) -> None:
    monkeypatch.setattr(receiving, "get_notification_service", lambda: notifier)
    shipment = make.shipment(make.request(make.company(), status="APPROVED", user_email=None))
    make.truck(shipment, 1, status="RECEIVED")

    response = client.post(f"/api/v1/shipments/{shipment.id}/reconcile")

    assert response.status_code == 200
    payload = response.json()
    assert payload["shipment_status"] == "RECEIVED"
    assert payload["notification_sent"] is False
    assert payload["notification_error"] == "No recipient email on storage request"
    assert payload["overflow_rack_ids"] == []


def test_receive_truck_on_cancelled_shipment_is_409(client, make) -> None:
    shipment = make.shipment(make.request(make.company(), status="APPROVED"), status="CANCELLED")
    truck = make.truck(shipment, 1)

    response = client.post(f"/api/v1/shipment-trucks/{truck.id}/receive")

    assert response.status_code == 409
    assert response.json()["details"]["entity"] == "shipment"


def test_occupancy_adjustment_validation_is_422(client, yard_a) -> None:
    response = client.post(
        "/api/v1/racks/A-A1-1/occupancy-adjustments",
        json={"new_occupied": 3, "reason": "short"},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_calendar_sync_requires_slot(client, make) -> None:
    shipment = make.shipment(make.request(make.company(), status="APPROVED"))
    appointment = make.appointment(shipment)

    response = client.post(f"/api/v1/dock-appointments/{appointment.id}/calendar-sync")

    assert response.status_code == 409
    assert response.json()["code"] == "APPOINTMENT_NOT_SCHEDULED"
