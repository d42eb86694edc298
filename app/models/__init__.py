"""
Database models for the signature service
"""

from .user import User, UserRole
from .signature_request import SignatureRequest, SignatureSpot, SignatureRequestStatus
from .audit import AuditLog, AuditEventType, AuditLevel

__all__ = [
    "User",
    "UserRole",
    "SignatureRequest",
    "SignatureSpot",
    "SignatureRequestStatus",
    "AuditLog",
    "AuditEventType",
    "AuditLevel",
]
