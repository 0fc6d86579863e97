"""
Celery worker delivering customer emails queued by the receiving workflow.
"""
from celery import Celery
import requests
import logging
from .config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "yardops",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


def render_shipment_received_email(payload: dict) -> tuple[str, str]:
    """Build subject and plain-text body for the shipment received email."""
    reference_id = payload.get("reference_id") or "your shipment"
    company = payload.get("company_name") or "your company"
    subject = f"Shipment Received - {reference_id}"
    body = (
        f"Hello {company},\n\n"
        f"All trucks for {reference_id} have been received and the pipe is now in storage.\n\n"
        f"Trucks received: {payload.get('trucks_received', 0)}\n"
        f"Manifest lines: {payload.get('manifest_lines', 0)}\n"
        f"Documents on file: {payload.get('documents_attached', 0)}\n"
        f"Received at: {payload.get('received_at')}\n"
    )
    return subject, body


def send_email(recipient: str, subject: str, body: str) -> tuple[bool, str | None]:
    """Send one email through the email API."""
    if not settings.EMAIL_API_URL:
        return False, "EMAIL_API_URL not configured"

    headers = {"Content-Type": "application/json"}
    if settings.EMAIL_API_TOKEN:
        headers["Authorization"] = f"Bearer {settings.EMAIL_API_TOKEN}"

    try:
        response = requests.post(
            settings.EMAIL_API_URL,
            json={"from": settings.EMAIL_FROM, "to": recipient, "subject": subject, "text": body},
            headers=headers,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        return False, f"EXCEPTION: {str(e)}"

    if response.status_code < 300:
        return True, None
    if response.status_code == 429:
        return False, "RATE_LIMIT"
    return False, f"HTTP_{response.status_code}: {response.text[:200]}"


@celery_app.task(name="send_shipment_received_email", bind=True, max_retries=settings.EMAIL_MAX_RETRIES)
def send_shipment_received_email(self, payload: dict):
    """Deliver the one-per-shipment "received" email; retries with exponential backoff."""
    subject, body = render_shipment_received_email(payload)
    success, error = send_email(payload["recipient"], subject, body)

    if success:
        logger.info("Sent shipment received email ref=%s to=%s", payload.get("reference_id"), payload["recipient"])
        return {"sent": True}

    if error == "EMAIL_API_URL not configured":
        logger.warning("Email API not configured; dropping shipment received email ref=%s", payload.get("reference_id"))
        return {"sent": False, "error": error}

    backoff_seconds = 2 ** self.request.retries * 60  # 1min, 2min, 4min
    logger.warning(
        "Shipment received email failed ref=%s attempt=%s error=%s",
        payload.get("reference_id"),
        self.request.retries + 1,
        error,
    )
    raise self.retry(exc=RuntimeError(error), countdown=backoff_seconds)
