"""Inbound receiving: truck arrival through settled inventory and the customer email.

Marking a truck received runs four idempotent steps in order:

1. truck_received         truck -> RECEIVED, arrival/departure stamped
2. appointment_completed  its dock appointment -> COMPLETED, calendar re-sync pending
3. manifest_settled       manifest lines and linked inventory -> IN_STORAGE
4. shipment_completed     shipment -> RECEIVED once no truck is outstanding

By default all four commit together. With ``RECEIVING_ATOMIC_SETTLEMENT``
disabled each step commits on its own and a failure surfaces as
``PersistenceFailure(step=...)`` with earlier steps left in place; running the
same truck again (or ``reconcile_shipment``) finishes the remaining steps.

The customer email is sent only by the call whose conditional update moved the
shipment into RECEIVED, and only after that update is committed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import CollaboratorFailure, InvalidStatusTransition, NotFound, PersistenceFailure
from ..models import AuditEvent, DockAppointment, InventoryItem, Rack, Shipment, ShipmentItem, ShipmentTruck
from ..services.capacity import joints_to_rack_quantity, rack_units, set_rack_occupied
from ..services.notifications import NotificationService, ShipmentReceivedEmail, get_notification_service
from ..services.receiving_rules import (
    SHIPMENT_TERMINAL_STATUSES,
    TRUCK_ALLOWED_TRANSITIONS,
    normalize_status,
    now_utc,
    shipment_can_complete,
    truck_receipt_timestamps,
    validate_transition,
)

logger = logging.getLogger(__name__)

STEP_TRUCK_RECEIVED = "truck_received"
STEP_APPOINTMENT_COMPLETED = "appointment_completed"
STEP_MANIFEST_SETTLED = "manifest_settled"
STEP_SHIPMENT_COMPLETED = "shipment_completed"
STEP_SETTLEMENT_COMMIT = "settlement_commit"


@dataclass(frozen=True)
class ReceivingHooks:
    """Injection points for time, the notifier and the transaction mode."""

    now_utc: Callable[[], datetime] = now_utc
    notifier: NotificationService | None = None
    atomic: bool | None = None


DEFAULT_HOOKS = ReceivingHooks()


@dataclass
class TruckReceiptResult:
    truck_id: UUID
    shipment_id: UUID
    truck_status: str = "INBOUND"
    shipment_status: str = "DRAFT"
    truck_received: bool = False
    appointment_completed: bool = False
    manifest_settled: bool = False
    shipment_completed: bool = False
    notification_sent: bool = False
    notification_error: str | None = None
    overflow_rack_ids: list[str] = field(default_factory=list)


@dataclass
class ShipmentReconcileResult:
    shipment_id: UUID
    shipment_status: str = "DRAFT"
    trucks_reconciled: int = 0
    shipment_completed: bool = False
    notification_sent: bool = False
    notification_error: str | None = None
    overflow_rack_ids: list[str] = field(default_factory=list)


def _atomic(hooks: ReceivingHooks) -> bool:
    if hooks.atomic is None:
        return settings.RECEIVING_ATOMIC_SETTLEMENT
    return hooks.atomic


def _run_step(db: Session, *, step: str, atomic: bool, apply: Callable[[], bool]) -> bool:
    try:
        changed = apply()
        db.flush()
        if not atomic:
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Receiving step failed step=%s", step)
        raise PersistenceFailure(step=step) from exc
    return changed


def _commit_settlement(db: Session, *, atomic: bool) -> None:
    if not atomic:
        return
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Receiving settlement commit failed")
        raise PersistenceFailure(step=STEP_SETTLEMENT_COMMIT) from exc


def _audit(db: Session, *, action: str, entity_type: str, entity_id: object, entity_name: str | None = None, details=None):
    db.add(
        AuditEvent(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            entity_name=entity_name,
            details=details or {},
        )
    )


def _receive_truck(db: Session, truck: ShipmentTruck, *, now: datetime) -> bool:
    current = normalize_status(truck.status, default="INBOUND")
    if current == "RECEIVED":
        return False
    try:
        validate_transition(
            TRUCK_ALLOWED_TRANSITIONS,
            entity="truck",
            current_status=current,
            next_status="RECEIVED",
            default="INBOUND",
        )
    except ValueError as error:
        raise InvalidStatusTransition(entity="truck", current=current, requested="RECEIVED") from error

    stamps = truck_receipt_timestamps(arrival_time=truck.arrival_time, at=now)
    truck.status = "RECEIVED"
    truck.arrival_time = stamps["arrival_time"]
    truck.departure_time = stamps["departure_time"]
    truck.manifest_received = True
    _audit(
        db,
        action="truck_received",
        entity_type="shipment_truck",
        entity_id=truck.id,
        entity_name=f"Truck {truck.sequence_number}",
        details={"shipment_id": str(truck.shipment_id)},
    )
    return True


def _complete_appointment(db: Session, truck: ShipmentTruck) -> bool:
    appointment = db.query(DockAppointment).filter(DockAppointment.truck_id == truck.id).first()
    if appointment is None or appointment.status == "COMPLETED":
        return False
    appointment.status = "COMPLETED"
    appointment.calendar_sync_status = "PENDING"
    return True


def _grow_rack_occupancy(db: Session, *, rack_id: str, joints: int, length_m: float | None, overflow: list[str]) -> None:
    rack = db.query(Rack).filter(Rack.id == rack_id).with_for_update().first()
    if rack is None:
        logger.warning("Inventory references missing rack=%s; occupancy not updated", rack_id)
        return
    units = rack_units(rack)
    added = joints_to_rack_quantity(
        joints,
        kind=units.kind,
        length_m=length_m,
        default_length_m=settings.DEFAULT_JOINT_LENGTH_M,
    )
    target = units.occupied + added
    if target > units.capacity:
        logger.warning(
            "Rack overflow rack=%s occupied=%s adding=%s capacity=%s %s; capped at capacity",
            rack.id,
            units.occupied,
            added,
            units.capacity,
            units.unit,
        )
        if rack.id not in overflow:
            overflow.append(rack.id)
        target = units.capacity
    set_rack_occupied(rack, target)


def _settle_manifest(db: Session, truck: ShipmentTruck, *, now: datetime, overflow: list[str]) -> bool:
    changed = False
    items = db.query(ShipmentItem).filter(ShipmentItem.truck_id == truck.id).all()
    for item in items:
        if item.status != "IN_STORAGE":
            item.status = "IN_STORAGE"
            changed = True

        inventory = item.inventory
        if inventory is None or inventory.status != "PENDING_DELIVERY":
            continue
        # Only the call that claims the lot grows its rack.
        claimed = (
            db.query(InventoryItem)
            .filter(InventoryItem.id == inventory.id, InventoryItem.status == "PENDING_DELIVERY")
            .update(
                {InventoryItem.status: "IN_STORAGE", InventoryItem.drop_off_timestamp: now},
                synchronize_session="evaluate",
            )
        )
        if claimed != 1:
            continue
        changed = True
        if inventory.rack_id:
            _grow_rack_occupancy(
                db,
                rack_id=inventory.rack_id,
                joints=int(inventory.quantity or 0),
                length_m=inventory.length_m,
                overflow=overflow,
            )
    return changed


def _complete_shipment(db: Session, shipment_id: UUID, *, now: datetime) -> bool:
    """Conditionally move the shipment to RECEIVED; True only for the call that did it."""
    shipment = db.query(Shipment).filter(Shipment.id == shipment_id).with_for_update().first()
    if shipment is None:
        raise NotFound("shipment", shipment_id)

    statuses = [row.status for row in db.query(ShipmentTruck.status).filter(ShipmentTruck.shipment_id == shipment_id)]
    if not shipment_can_complete(statuses):
        return False

    updated = (
        db.query(Shipment)
        .filter(Shipment.id == shipment_id, Shipment.status.notin_(sorted(SHIPMENT_TERMINAL_STATUSES)))
        .update(
            {
                Shipment.status: "RECEIVED",
                Shipment.latest_customer_notification_at: now,
                Shipment.updated_at: now,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        return False

    _audit(
        db,
        action="shipment_received",
        entity_type="shipment",
        entity_id=shipment_id,
        details={"trucks": len(statuses)},
    )
    return True


def _settle_received_truck(
    db: Session,
    truck: ShipmentTruck,
    *,
    now: datetime,
    atomic: bool,
    overflow: list[str],
) -> tuple[bool, bool]:
    appointment_changed = _run_step(
        db,
        step=STEP_APPOINTMENT_COMPLETED,
        atomic=atomic,
        apply=lambda: _complete_appointment(db, truck),
    )
    manifest_changed = _run_step(
        db,
        step=STEP_MANIFEST_SETTLED,
        atomic=atomic,
        apply=lambda: _settle_manifest(db, truck, now=now, overflow=overflow),
    )
    return appointment_changed, manifest_changed


def _notify_shipment_received(
    db: Session,
    shipment_id: UUID,
    *,
    now: datetime,
    hooks: ReceivingHooks,
) -> tuple[bool, str | None]:
    shipment = db.query(Shipment).filter(Shipment.id == shipment_id).first()
    request = shipment.request
    recipient = request.user_email if request is not None else None
    if not recipient:
        logger.warning("Shipment received but no recipient email shipment=%s", shipment_id)
        return False, "No recipient email on storage request"

    message = ShipmentReceivedEmail(
        recipient=recipient,
        reference_id=request.reference_id,
        company_name=shipment.company.name if shipment.company is not None else None,
        trucks_received=sum(1 for truck in shipment.trucks if truck.status == "RECEIVED"),
        manifest_lines=len(shipment.items),
        documents_attached=len(shipment.documents),
        received_at=now,
    )
    notifier = hooks.notifier or get_notification_service()
    try:
        notifier.send_shipment_received_email(message)
    except CollaboratorFailure as exc:
        logger.exception("Shipment received email failed shipment=%s ref=%s", shipment_id, request.reference_id)
        try:
            _audit(
                db,
                action="notification_failed",
                entity_type="shipment",
                entity_id=shipment_id,
                entity_name=request.reference_id,
                details={"collaborator": "notification", "error": exc.message},
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to record notification failure shipment=%s", shipment_id)
        return False, exc.message

    logger.info("Shipment received shipment=%s ref=%s notified=%s", shipment_id, request.reference_id, recipient)
    return True, None


def _ensure_shipment_open(db: Session, truck: ShipmentTruck) -> None:
    """A cancelled shipment takes no receipts; a received one only replays its received trucks."""
    status = normalize_status(
        db.query(Shipment.status).filter(Shipment.id == truck.shipment_id).scalar(),
        default="DRAFT",
    )
    if status == "CANCELLED" or (
        status == "RECEIVED" and normalize_status(truck.status, default="INBOUND") != "RECEIVED"
    ):
        db.rollback()
        raise InvalidStatusTransition(entity="shipment", current=status, requested="RECEIVED")


def mark_truck_received(
    *,
    db: Session,
    truck_id: UUID,
    hooks: ReceivingHooks = DEFAULT_HOOKS,
) -> TruckReceiptResult:
    truck = db.query(ShipmentTruck).filter(ShipmentTruck.id == truck_id).with_for_update().first()
    if truck is None:
        raise NotFound("shipment_truck", truck_id)
    _ensure_shipment_open(db, truck)

    atomic = _atomic(hooks)
    now = hooks.now_utc()
    shipment_id = truck.shipment_id
    result = TruckReceiptResult(truck_id=truck.id, shipment_id=shipment_id)

    result.truck_received = _run_step(
        db,
        step=STEP_TRUCK_RECEIVED,
        atomic=atomic,
        apply=lambda: _receive_truck(db, truck, now=now),
    )
    result.appointment_completed, result.manifest_settled = _settle_received_truck(
        db,
        truck,
        now=now,
        atomic=atomic,
        overflow=result.overflow_rack_ids,
    )
    result.shipment_completed = _run_step(
        db,
        step=STEP_SHIPMENT_COMPLETED,
        atomic=atomic,
        apply=lambda: _complete_shipment(db, shipment_id, now=now),
    )
    _commit_settlement(db, atomic=atomic)

    if result.shipment_completed:
        result.notification_sent, result.notification_error = _notify_shipment_received(
            db,
            shipment_id,
            now=now,
            hooks=hooks,
        )

    db.refresh(truck)
    result.truck_status = truck.status
    result.shipment_status = db.query(Shipment.status).filter(Shipment.id == shipment_id).scalar()
    logger.info(
        "Truck receipt truck=%s shipment=%s steps=%s/%s/%s/%s",
        truck_id,
        shipment_id,
        result.truck_received,
        result.appointment_completed,
        result.manifest_settled,
        result.shipment_completed,
    )
    return result


def reconcile_shipment(
    *,
    db: Session,
    shipment_id: UUID,
    hooks: ReceivingHooks = DEFAULT_HOOKS,
) -> ShipmentReconcileResult:
    """Re-apply the post-receipt steps for every RECEIVED truck of a shipment.

    Recovery path for a settlement interrupted part way; a fully settled
    shipment comes back unchanged and sends nothing.
    """
    shipment = db.query(Shipment).filter(Shipment.id == shipment_id).first()
    if shipment is None:
        raise NotFound("shipment", shipment_id)
    if normalize_status(shipment.status, default="DRAFT") == "CANCELLED":
        raise InvalidStatusTransition(entity="shipment", current="CANCELLED", requested="RECEIVED")

    atomic = _atomic(hooks)
    now = hooks.now_utc()
    result = ShipmentReconcileResult(shipment_id=shipment.id)

    trucks = (
        db.query(ShipmentTruck)
        .filter(ShipmentTruck.shipment_id == shipment_id, ShipmentTruck.status == "RECEIVED")
        .order_by(ShipmentTruck.sequence_number)
        .all()
    )
    for truck in trucks:
        appointment_changed, manifest_changed = _settle_received_truck(
            db,
            truck,
            now=now,
            atomic=atomic,
            overflow=result.overflow_rack_ids,
        )
        if appointment_changed or manifest_changed:
            result.trucks_reconciled += 1

    result.shipment_completed = _run_step(
        db,
        step=STEP_SHIPMENT_COMPLETED,
        atomic=atomic,
        apply=lambda: _complete_shipment(db, shipment_id, now=now),
    )
    _commit_settlement(db, atomic=atomic)

    if result.shipment_completed:
        result.notification_sent, result.notification_error = _notify_shipment_received(
            db,
            shipment_id,
            now=now,
            hooks=hooks,
        )

    result.shipment_status = db.query(Shipment.status).filter(Shipment.id == shipment_id).scalar()
    logger.info(
        "Shipment reconciled shipment=%s trucks=%s completed=%s",
        shipment_id,
        result.trucks_reconciled,
        result.shipment_completed,
    )
    return result
