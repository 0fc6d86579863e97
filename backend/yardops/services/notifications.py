"""Customer notification adapter used by the receiving workflow."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol

from kombu.exceptions import OperationalError

from ..domain_errors import CollaboratorFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShipmentReceivedEmail:
    recipient: str
    reference_id: str
    company_name: str | None
    trucks_received: int
    manifest_lines: int
    documents_attached: int
    received_at: datetime


class NotificationService(Protocol):
    def send_shipment_received_email(self, message: ShipmentReceivedEmail) -> None:
        ...


class CeleryNotificationService:
    """Fire-and-forget: enqueue the email task, raise only if the broker refuses it."""

    def send_shipment_received_email(self, message: ShipmentReceivedEmail) -> None:
        from ..celery_app import send_shipment_received_email

        payload = asdict(message)
        payload["received_at"] = message.received_at.isoformat()
        try:
            send_shipment_received_email.delay(payload)
        except (OperationalError, ConnectionError) as exc:
            raise CollaboratorFailure(
                collaborator="notification",
                message=f"Unable to queue shipment received email: {exc}",
            ) from exc
        logger.info("Queued shipment received email ref=%s to=%s", message.reference_id, message.recipient)


def get_notification_service() -> NotificationService:
    return CeleryNotificationService()
