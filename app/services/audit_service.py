"""
Audit logging service
"""

import logging
from typing import Dict, Any, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.audit import AuditLog, AuditEventType, AuditLevel

logger = logging.getLogger(__name__)


class AuditService:
    """Audit logging service"""

    @staticmethod
    def log_event(
        db: Session,
        event_type: AuditEventType,
        event_level: AuditLevel,
        event_message: str,
        user_id: Optional[int] = None,
        request: Optional[Request] = None,
        event_details: Optional[Dict[str, Any]] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Log audit event. Failures are logged and never raised."""

        ip_address = None
        user_agent = None
        request_path = None
        if request:
            ip_address = AuditService._get_client_ip(request)
            user_agent = request.headers.get("user-agent")
            request_path = str(request.url.path)

        audit_log = AuditLog(
            event_type=event_type,
            event_level=event_level,
            event_message=event_message,
            event_details=event_details,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            request_path=request_path,
            resource_type=resource_type,
            resource_id=resource_id,
        )

        try:
            db.add(audit_log)
            db.commit()
            return audit_log
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to write audit event {event_type.value}: {e}")
            return None

    @staticmethod
    def log_signature_event(
        db: Session,
        event_type: AuditEventType,
        message: str,
        signature_request_id: Optional[str] = None,
        user_id: Optional[int] = None,
        request: Optional[Request] = None,
        details: Optional[Dict[str, Any]] = None,
        level: AuditLevel = AuditLevel.INFO,
    ) -> Optional[AuditLog]:
        """Log signature event"""

        return AuditService.log_event(
            db,
            event_type=event_type,
            event_level=level,
            event_message=message,
            user_id=user_id,
            request=request,
            event_details=details,
            resource_type="signature_request",
            resource_id=signature_request_id,
        )

    @staticmethod
    def log_system_event(db: Session, event_type: AuditEventType, message: str,
                         details: Optional[Dict[str, Any]] = None) -> Optional[AuditLog]:
        """Log system event"""

        return AuditService.log_event(
            db,
            event_type=event_type,
            event_level=AuditLevel.INFO,
            event_message=message,
            event_details=details,
            resource_type="system",
        )

    @staticmethod
    def _get_client_ip(request: Request) -> Optional[str]:
        """Extract client IP from request"""

        # Check for forwarded IP (load balancer, proxy)
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else None
