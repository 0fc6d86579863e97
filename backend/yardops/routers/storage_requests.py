"""Storage request approval endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import StorageRequestApprove, StorageRequestOut, StorageRequestReject
from ..use_cases.approval_workflow import approve_storage_request, reject_storage_request

router = APIRouter(tags=["storage-requests"])


@router.post("/storage-requests/{request_id}/approve", response_model=StorageRequestOut)
def approve_request(request_id: UUID, data: StorageRequestApprove, db: Session = Depends(get_db)):
    return approve_storage_request(
        db=db,
        request_id=request_id,
        rack_ids=data.rack_ids,
        required_joints=data.required_joints,
        notes=data.notes,
        approved_by=data.approved_by,
    )


@router.post("/storage-requests/{request_id}/reject", response_model=StorageRequestOut)
def reject_request(request_id: UUID, data: StorageRequestReject, db: Session = Depends(get_db)):
    return reject_storage_request(
        db=db,
        request_id=request_id,
        reason=data.reason,
        rejected_by=data.rejected_by,
    )
