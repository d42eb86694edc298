"""
Audit logging model for signature lifecycle events
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from database import Base


class AuditEventType(str, enum.Enum):
    """Audit event type enumeration"""
    SIGNATURE_REQUEST_CREATED = "signature_request_created"
    SIGNATURE_REQUEST_SENT = "signature_request_sent"
    SIGNATURE_REQUEST_VIEWED = "signature_request_viewed"
    SIGNATURE_REQUEST_SIGNED = "signature_request_signed"
    SIGNATURE_FAILED = "signature_failed"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_DOWNLOADED = "document_downloaded"

    # System events
    SYSTEM_STARTUP = "system_startup"
    SYSTEM_SHUTDOWN = "system_shutdown"
    UNHANDLED_EXCEPTION = "unhandled_exception"


class AuditLevel(str, enum.Enum):
    """Audit level enumeration"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditLog(Base):
    """Audit log model"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Event information
    event_type = Column(Enum(AuditEventType), nullable=False, index=True)
    event_level = Column(Enum(AuditLevel), nullable=False, default=AuditLevel.INFO)
    event_message = Column(Text, nullable=False)
    event_details = Column(JSON, nullable=True)

    # Actor and resource
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(100), nullable=True, index=True)

    # Request information
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    request_path = Column(String(500), nullable=True)

    timestamp = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="audit_logs")

    def __repr__(self):
        return f"<AuditLog(id={self.id}, event='{self.event_type}', resource_id={self.resource_id})>"
