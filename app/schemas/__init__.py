"""
Pydantic schemas for request/response validation
"""

from .signature import (
    SignatureSpotCreate, SignatureSpotResponse,
    SignatureRequestCreate, SignatureRequestResponse, SignatureRequestCreated,
    TokenSignatureRequestResponse, SignSubmission, SignResponse,
    DocumentUploadResponse
)

__all__ = [
    # Signature schemas
    "SignatureSpotCreate", "SignatureSpotResponse",
    "SignatureRequestCreate", "SignatureRequestResponse", "SignatureRequestCreated",
    "TokenSignatureRequestResponse", "SignSubmission", "SignResponse",
    "DocumentUploadResponse"
]
