"""
Signature-related Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, EmailStr, validator, model_validator


class SignatureSpotCreate(BaseModel):
    """Signature spot schema.

    Position and size are percentages of the page (0-100); values above 100
    are read as absolute page units.
    """
    page_number: int = Field(1, ge=1)
    x_position: float = Field(..., ge=0)
    y_position: float = Field(..., ge=0)
    width: float = Field(30, gt=0)
    height: float = Field(10, gt=0)
    label: Optional[str] = Field("Sign here", max_length=100)


class SignatureSpotResponse(BaseModel):
    """Signature spot response schema"""
    id: int
    page_number: int
    x_position: float
    y_position: float
    width: float
    height: float
    label: Optional[str]

    class Config:
        from_attributes = True


class SignatureRequestCreate(BaseModel):
    """Signature request creation schema"""
    title: str = Field(..., min_length=1, max_length=255)
    message: Optional[str] = Field(None, max_length=2000)
    original_document_path: str = Field(..., min_length=1, max_length=500)
    signer_id: Optional[int] = None
    signer_name: Optional[str] = Field(None, min_length=1, max_length=200)
    signer_email: Optional[EmailStr] = None
    store_name: Optional[str] = Field(None, max_length=200)
    expires_in_days: Optional[int] = Field(None, ge=1, le=30)
    spots: List[SignatureSpotCreate] = Field(..., min_length=1)

    @validator('title')
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be blank')
        return v.strip()

    @model_validator(mode="after")
    def validate_signer(self):
        if self.signer_id is None and not (self.signer_name and self.signer_email):
            raise ValueError('Provide signer_id or both signer_name and signer_email')
        return self


class SignatureRequestResponse(BaseModel):
    """Signature request response schema"""
    id: str
    title: str
    message: Optional[str]
    status: str
    signer_id: Optional[int]
    signer_name: Optional[str]
    signer_email: Optional[str]
    store_name: Optional[str]
    original_document_path: str
    signed_document_path: Optional[str]
    expires_at: datetime
    viewed_at: Optional[datetime]
    signed_at: Optional[datetime]
    created_by: int
    created_at: datetime
    spots: List[SignatureSpotResponse] = []

    @classmethod
    def from_request(cls, signature_request) -> "SignatureRequestResponse":
        return cls(
            id=signature_request.id,
            title=signature_request.title,
            message=signature_request.message,
            status=signature_request.display_status(),
            signer_id=signature_request.signer_id,
            signer_name=signature_request.signer_name,
            signer_email=signature_request.signer_email,
            store_name=signature_request.store_name,
            original_document_path=signature_request.original_document_path,
            signed_document_path=signature_request.signed_document_path,
            expires_at=signature_request.expires_at,
            viewed_at=signature_request.viewed_at,
            signed_at=signature_request.signed_at,
            created_by=signature_request.created_by,
            created_at=signature_request.created_at,
            spots=[SignatureSpotResponse.model_validate(spot) for spot in signature_request.spots],
        )


class SignatureRequestCreated(BaseModel):
    """Creation result, including invitation delivery"""
    request: SignatureRequestResponse
    invitation_sent: bool


class TokenSignatureRequestResponse(BaseModel):
    """What an anonymous signer sees behind a signing link"""
    id: str
    title: str
    message: Optional[str]
    status: str
    signer_name: Optional[str]
    sender_name: Optional[str]
    store_name: Optional[str]
    expires_at: datetime
    spots: List[SignatureSpotResponse] = []

    @classmethod
    def from_request(cls, signature_request) -> "TokenSignatureRequestResponse":
        return cls(
            id=signature_request.id,
            title=signature_request.title,
            message=signature_request.message,
            status=signature_request.display_status(),
            signer_name=signature_request.signer_display_name,
            sender_name=signature_request.owner.display_name if signature_request.owner else None,
            store_name=signature_request.store_name,
            expires_at=signature_request.expires_at,
            spots=[SignatureSpotResponse.model_validate(spot) for spot in signature_request.spots],
        )


class SignSubmission(BaseModel):
    """Signing submission: requestId (bearer auth) or accessToken (signing link)"""
    request_id: Optional[str] = Field(None, alias="requestId")
    access_token: Optional[str] = Field(None, alias="accessToken")
    signature_image: str = Field(..., alias="signatureImage", min_length=1)

    class Config:
        populate_by_name = True


class SignResponse(BaseModel):
    """Signing result"""
    success: bool = True
    signed_document_ref: str = Field(..., alias="signedDocumentRef")

    class Config:
        populate_by_name = True


class DocumentUploadResponse(BaseModel):
    """Uploaded source document reference"""
    path: str
