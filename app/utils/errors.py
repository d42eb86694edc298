"""
Signing error taxonomy

Every failure surfaced by the signature pipeline carries a machine-readable
code and the HTTP status it maps to.
"""

from typing import Any, Dict, Optional


class SigningError(Exception):
    """Base error for the signature pipeline"""

    code = "Internal"
    status_code = 500
    default_message = "An unexpected error occurred"
    retryable = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


# Authorization errors

class UnauthenticatedError(SigningError):
    code = "Unauthenticated"
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(SigningError):
    code = "Forbidden"
    status_code = 403
    default_message = "You are not authorized to sign this document"


class NotFoundError(SigningError):
    code = "NotFound"
    status_code = 404
    default_message = "Signature request not found"


# State errors

class AlreadySignedError(SigningError):
    code = "AlreadySigned"
    status_code = 400
    default_message = "This document has already been signed"


class ExpiredError(SigningError):
    code = "Expired"
    status_code = 400
    default_message = "This signature request has expired"


# Internal errors

class InternalSigningError(SigningError):
    code = "Internal"
    status_code = 500


class MalformedDocumentError(InternalSigningError):
    default_message = "The original document could not be read as a PDF"


class MalformedImageError(InternalSigningError):
    default_message = "The signature image could not be decoded as a PNG"


class StorageError(InternalSigningError):
    default_message = "Document storage is unavailable"
    retryable = True


class StampingTimeoutError(InternalSigningError):
    default_message = "Stamping the document took too long"
    retryable = True
