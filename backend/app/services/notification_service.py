"""
Notification service for request status changes.

Notifications are sent after the status change has been committed. A
failed notification is logged and never undoes the transition.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
import httpx
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.pii import decrypt_contact
from app.models.travel_request import TravelRequest
from app.models.user import User

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Port for delivering status notifications."""

    def notify(self, recipient_contact: str, recipient_name: str, request_id: int, status_label: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that only writes to the log. Used when no webhook is configured."""

    def notify(self, recipient_contact: str, recipient_name: str, request_id: int, status_label: str) -> None:
        logger.info("Request %s is now '%s' (recipient: %s)", request_id, status_label, recipient_name)


class WebhookNotifier:
    """Notifier that posts a JSON payload to a mail-delivery webhook."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def notify(self, recipient_contact: str, recipient_name: str, request_id: int, status_label: str) -> None:
        response = httpx.post(
            self.url,
            json={
                "to": recipient_contact,
                "name": recipient_name,
                "request_id": request_id,
                "status": status_label,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()


def get_notifier() -> Notifier:
    """Dependency for getting the configured notifier."""
    if settings.NOTIFY_WEBHOOK_URL:
        return WebhookNotifier(settings.NOTIFY_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
    return LoggingNotifier()


@dataclass
class MailDetails:
    """What a status notification needs to know about a request."""
    user_email: Optional[str]
    user_name: str
    request_id: int
    status: str


def get_mail_details(request_id: int, db: Session) -> MailDetails:
    """Load owner contact (decrypted) and current status label for a request."""
    row = db.query(TravelRequest, User).join(
        User, TravelRequest.user_id == User.id
    ).filter(TravelRequest.id == request_id).first()
    if not row:
        raise NotFoundError("Travel request not found")

    request, user = row
    return MailDetails(
        user_email=decrypt_contact(user.email_encrypted),
        user_name=user.user_name,
        request_id=request.id,
        status=request.status.label,
    )


def notify_status_change(request_id: int, db: Session, notifier: Notifier) -> bool:
    """Tell the request owner about its current status. Returns False if delivery failed."""
    try:
        details = get_mail_details(request_id, db)
        notifier.notify(details.user_email, details.user_name, details.request_id, details.status)
        return True
    except Exception as exc:
        logger.warning("Notification for request %s failed: %s", request_id, exc)
        return False
