"""
Notification background tasks
"""

import asyncio
import logging
from typing import Dict, Any

from app.tasks import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=0)
def send_signature_completed_notification_task(self, event_data: Dict[str, Any]) -> bool:
    """Email the request owner that signing completed. Not retried."""
    from config import settings
    from app.services.email_service import EmailService
    from app.services.notification_service import EmailNotificationSink, SignatureCompletedEvent

    event = SignatureCompletedEvent.from_dict(event_data)
    sink = EmailNotificationSink(EmailService(settings))

    try:
        delivered = asyncio.run(sink.send(event))
    except Exception as e:
        logger.error(f"Notification task failed for request {event.request_id}: {e}")
        return False

    if not delivered:
        logger.warning(f"Owner notification for request {event.request_id} was not delivered")
    return delivered
