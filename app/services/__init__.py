"""
Service layer for the signature service
"""

from .auth_service import AuthService
from .audit_service import AuditService
from .email_service import EmailService

__all__ = [
    "AuthService",
    "AuditService",
    "EmailService"
]
