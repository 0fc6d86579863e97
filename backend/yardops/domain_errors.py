"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Bad input, e.g. a missing rejection reason."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="VALIDATION_ERROR", http_status=422, message=message, details=details)


class NotFound(DomainError):
    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(
            code=f"{entity.upper()}_NOT_FOUND",
            http_status=404,
            message=f"{entity.replace('_', ' ').capitalize()} not found: {entity_id}",
            details={"id": str(entity_id)},
        )


class RackNotFound(NotFound):
    def __init__(self, rack_id: object) -> None:
        super().__init__("rack", rack_id)


class InsufficientCapacity(DomainError):
    """Selected racks cannot hold the requested quantity for the window."""

    def __init__(self, *, required: float, available: float) -> None:
        shortfall = max(required - available, 0)
        super().__init__(
            code="INSUFFICIENT_CAPACITY",
            http_status=409,
            message=(
                f"Insufficient capacity: {required} required, {available} available "
                f"(short by {shortfall})"
            ),
            details={"required": required, "available": available, "shortfall": shortfall},
        )

    @property
    def shortfall(self) -> float:
        return (self.details or {}).get("shortfall", 0)


class NotScheduled(DomainError):
    def __init__(self, appointment_id: object) -> None:
        super().__init__(
            code="APPOINTMENT_NOT_SCHEDULED",
            http_status=409,
            message="Schedule an unloading time before syncing to the calendar",
            details={"appointment_id": str(appointment_id)},
        )


class InvalidStatusTransition(DomainError):
    def __init__(self, *, entity: str, current: str | None, requested: str) -> None:
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            http_status=409,
            message=f"Invalid {entity} status transition: {current} -> {requested}",
            details={"entity": entity, "current": current, "requested": requested},
        )


class PersistenceFailure(DomainError):
    """Store unavailable while committing a named step."""

    def __init__(self, *, step: str, message: str | None = None) -> None:
        super().__init__(
            code="PERSISTENCE_FAILURE",
            http_status=503,
            message=message or f"Failed to persist step '{step}'",
            details={"step": step},
        )

    @property
    def step(self) -> str:
        return (self.details or {})["step"]


class CollaboratorFailure(DomainError):
    """Calendar or notification service unreachable or refused the call."""

    def __init__(self, *, collaborator: str, message: str) -> None:
        super().__init__(
            code="COLLABORATOR_FAILURE",
            http_status=502,
            message=message,
            details={"collaborator": collaborator},
        )
