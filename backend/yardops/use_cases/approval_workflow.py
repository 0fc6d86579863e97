"""Storage request approval and rejection."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import InsufficientCapacity, InvalidStatusTransition, NotFound, ValidationError
from ..models import AuditEvent, StorageRequest
from ..services.receiving_rules import now_utc, normalize_status
from ..services.reservations import DateWindow, ResolverResult
from .capacity_queries import resolve_rack_availability

logger = logging.getLogger(__name__)

PENDING = "PENDING"


@dataclass(frozen=True)
class ApprovalHooks:
    """Injection points for time and the availability check."""

    now_utc: Callable[[], datetime] = now_utc
    resolve_availability: Callable[..., ResolverResult] = resolve_rack_availability


DEFAULT_HOOKS = ApprovalHooks()


def _lock_request(db: Session, request_id: UUID) -> StorageRequest:
    request = (
        db.query(StorageRequest)
        .filter(StorageRequest.id == request_id)
        .with_for_update()
        .first()
    )
    if request is None:
        raise NotFound("storage_request", request_id)
    return request


def _ensure_pending(request: StorageRequest, *, requested: str) -> None:
    current = normalize_status(request.status, default=PENDING)
    if current != PENDING:
        raise InvalidStatusTransition(entity="storage_request", current=current, requested=requested)


def _request_window(request: StorageRequest, *, now: datetime) -> DateWindow:
    # Requests without a start date are evaluated from today.
    start = request.storage_start_date or now.date()
    try:
        return DateWindow(start=start, end=request.storage_end_date)
    except ValueError as error:
        raise ValidationError(
            str(error),
            details={"start": start.isoformat(), "end": request.storage_end_date.isoformat()},
        ) from error


def _conditional_status_update(db: Session, request: StorageRequest, values: dict) -> bool:
    """Write ``values`` only if the row is still PENDING; True when this call won."""
    updated = (
        db.query(StorageRequest)
        .filter(StorageRequest.id == request.id, StorageRequest.status == PENDING)
        .update(values, synchronize_session=False)
    )
    return updated == 1


def approve_storage_request(
    *,
    db: Session,
    request_id: UUID,
    rack_ids: Sequence[str],
    required_joints: int,
    notes: str | None = None,
    approved_by: str | None = None,
    hooks: ApprovalHooks = DEFAULT_HOOKS,
) -> StorageRequest:
    """Approve a PENDING request after re-checking capacity at commit time.

    The request row and candidate racks are locked for the duration of the
    check so two approvals cannot both claim the same free capacity.
    """
    selected = list(dict.fromkeys(str(rack_id).strip() for rack_id in rack_ids if str(rack_id).strip()))
    if not selected:
        raise ValidationError("At least one rack must be selected")
    if required_joints is None or int(required_joints) <= 0:
        raise ValidationError("required_joints must be greater than zero", details={"required_joints": required_joints})

    request = _lock_request(db, request_id)
    _ensure_pending(request, requested="APPROVED")

    now = hooks.now_utc()
    window = _request_window(request, now=now)
    result = hooks.resolve_availability(
        db=db,
        rack_ids=selected,
        window=window,
        required=int(required_joints),
        avg_joint_length_m=request.avg_joint_length_m,
        for_update=True,
    )
    if not result.sufficient:
        db.rollback()
        logger.info(
            "Approval blocked request=%s required=%s available=%s racks=%s",
            request_id,
            result.required,
            result.total_available,
            selected,
        )
        raise InsufficientCapacity(required=result.required, available=result.total_available)

    values = {
        StorageRequest.status: "APPROVED",
        StorageRequest.assigned_rack_ids: selected,
        StorageRequest.required_joints: int(required_joints),
        StorageRequest.approved_at: now,
        StorageRequest.approved_by: approved_by,
        StorageRequest.updated_at: now,
    }
    if notes is not None:
        values[StorageRequest.internal_notes] = notes

    if not _conditional_status_update(db, request, values):
        db.rollback()
        db.refresh(request)
        raise InvalidStatusTransition(entity="storage_request", current=request.status, requested="APPROVED")

    db.add(
        AuditEvent(
            action="request_approved",
            entity_type="storage_request",
            entity_id=str(request.id),
            entity_name=request.reference_id,
            actor=approved_by,
            details={
                "rack_ids": selected,
                "required_joints": int(required_joints),
                "total_available": result.total_available,
                "available_by_rack": result.available_by_rack,
            },
        )
    )
    db.commit()
    db.refresh(request)

    logger.info(
        "Approved request=%s ref=%s racks=%s joints=%s by=%s",
        request.id,
        request.reference_id,
        selected,
        required_joints,
        approved_by,
    )
    return request


def reject_storage_request(
    *,
    db: Session,
    request_id: UUID,
    reason: str,
    rejected_by: str | None = None,
    hooks: ApprovalHooks = DEFAULT_HOOKS,
) -> StorageRequest:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")

    request = _lock_request(db, request_id)
    _ensure_pending(request, requested="REJECTED")

    now = hooks.now_utc()
    values = {
        StorageRequest.status: "REJECTED",
        StorageRequest.rejection_reason: reason,
        StorageRequest.rejected_at: now,
        StorageRequest.updated_at: now,
    }
    if not _conditional_status_update(db, request, values):
        db.rollback()
        db.refresh(request)
        raise InvalidStatusTransition(entity="storage_request", current=request.status, requested="REJECTED")

    db.add(
        AuditEvent(
            action="request_rejected",
            entity_type="storage_request",
            entity_id=str(request.id),
            entity_name=request.reference_id,
            actor=rejected_by,
            details={"reason": reason},
        )
    )
    db.commit()
    db.refresh(request)

    logger.info("Rejected request=%s ref=%s reason=%s", request.id, request.reference_id, reason)
    return request
