"""
Notification dispatch for the signature lifecycle

Delivery is best-effort: a failed notification is logged and never undoes a
committed signing.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from config import Settings
from app.models.signature_request import SignatureRequest
from app.services.email_service import EmailService
from app.tasks.notification_tasks import send_signature_completed_notification_task

logger = logging.getLogger(__name__)


def format_long_timestamp(value: datetime) -> str:
    """'Friday, January 9, 2026 at 3:04 PM UTC'"""
    hour = value.hour % 12 or 12
    return f"{value:%A}, {value:%B} {value.day}, {value.year} at {hour}:{value:%M} {value:%p} UTC"


@dataclass
class SignatureCompletedEvent:
    """Emitted once after a request is committed as signed"""
    request_id: str
    request_title: str
    signer_name: str
    signed_at: datetime
    owner_id: int
    owner_email: Optional[str] = None
    owner_name: Optional[str] = None

    @classmethod
    def from_request(cls, signature_request: SignatureRequest) -> "SignatureCompletedEvent":
        owner = signature_request.owner
        return cls(
            request_id=signature_request.id,
            request_title=signature_request.title,
            signer_name=signature_request.signer_display_name,
            signed_at=signature_request.signed_at,
            owner_id=signature_request.created_by,
            owner_email=owner.email if owner else None,
            owner_name=owner.display_name if owner else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["signed_at"] = self.signed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureCompletedEvent":
        data = dict(data)
        data["signed_at"] = datetime.fromisoformat(data["signed_at"])
        return cls(**data)


class NotificationSink:
    """Notification sink contract"""

    async def send(self, event: SignatureCompletedEvent) -> bool:
        raise NotImplementedError


class EmailNotificationSink(NotificationSink):
    """Emails the request owner; also sends signing invitations"""

    def __init__(self, email_service: EmailService):
        self.email_service = email_service

    async def send(self, event: SignatureCompletedEvent) -> bool:
        if not event.owner_email:
            logger.warning(f"No owner email for signed request {event.request_id}, skipping notification")
            return False

        result = await self.email_service.send_email(
            to_email=event.owner_email,
            subject=f"Document Signed - {event.request_title}",
            template_name="signature_completed",
            template_data={
                "owner_name": event.owner_name or "there",
                "signer_name": event.signer_name,
                "title": event.request_title,
                "signed_at": format_long_timestamp(event.signed_at),
                "dashboard_url": self.email_service.dashboard_url(),
            },
        )
        return result["success"]

    async def send_signature_request(self, signature_request: SignatureRequest, sender_name: str) -> bool:
        """Invite the signer with the token-based link (no login required)"""
        to_email = signature_request.signer_contact_email
        if not to_email:
            logger.warning(f"No signer email for request {signature_request.id}, invitation not sent")
            return False

        result = await self.email_service.send_email(
            to_email=to_email,
            subject=f"Signature Required - {signature_request.title}",
            template_name="signature_request",
            template_data={
                "signer_name": signature_request.signer_display_name,
                "sender_name": sender_name,
                "title": signature_request.title,
                "message": signature_request.message,
                "store_name": signature_request.store_name,
                "signature_url": self.email_service.signing_url(signature_request.access_token),
                "expires_at": f"{signature_request.expires_at:%B} {signature_request.expires_at.day}, "
                              f"{signature_request.expires_at.year}",
            },
        )
        return result["success"]


class NotificationDispatcher:
    """Fires the completion event, in-process or through Celery"""

    def __init__(self, settings: Settings, sink: NotificationSink):
        self.sink = sink
        self.via_celery = settings.NOTIFICATIONS_VIA_CELERY

    async def dispatch(self, event: SignatureCompletedEvent) -> bool:
        try:
            if self.via_celery:
                send_signature_completed_notification_task.delay(event.to_dict())
                return True
            return await self.sink.send(event)
        except Exception as e:
            logger.warning(f"Signature notification for request {event.request_id} failed: {e}")
            return False
