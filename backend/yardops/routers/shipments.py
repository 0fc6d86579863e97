"""Inbound shipment receiving endpoints."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import ShipmentReconcileOut, TruckReceiptOut
from ..use_cases.receiving import mark_truck_received, reconcile_shipment

router = APIRouter(tags=["shipments"])


@router.post("/shipment-trucks/{truck_id}/receive", response_model=TruckReceiptOut)
def receive_truck(truck_id: UUID, db: Session = Depends(get_db)):
    result = mark_truck_received(db=db, truck_id=truck_id)
    return TruckReceiptOut(**asdict(result))


@router.post("/shipments/{shipment_id}/reconcile", response_model=ShipmentReconcileOut)
def reconcile(shipment_id: UUID, db: Session = Depends(get_db)):
    result = reconcile_shipment(db=db, shipment_id=shipment_id)
    return ShipmentReconcileOut(**asdict(result))
