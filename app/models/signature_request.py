"""
Signature request and signature spot models
"""

import enum
import secrets
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, validates

from database import Base


class SignatureRequestStatus(str, enum.Enum):
    """Stored lifecycle states. pending -> signed is the only transition."""
    PENDING = "pending"
    SIGNED = "signed"


# Display-only status for pending requests past their expiry
EXPIRED_DISPLAY_STATUS = "expired"


def generate_request_id() -> str:
    return str(uuid.uuid4())


def generate_access_token() -> str:
    """Unguessable capability token for anonymous signing links"""
    return secrets.token_urlsafe(32)


class SignatureRequest(Base):
    """A document sent out for signature"""
    __tablename__ = "signature_requests"

    id = Column(String(36), primary_key=True, default=generate_request_id)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)

    # Capability token for the no-login signing link
    access_token = Column(String(64), unique=True, index=True, nullable=False, default=generate_access_token)

    # Signer: either a bound user or free-text details for an external signer
    signer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    signer_name = Column(String(200), nullable=True)
    signer_email = Column(String(255), nullable=True)
    store_name = Column(String(200), nullable=True)

    status = Column(Enum(SignatureRequestStatus), nullable=False, default=SignatureRequestStatus.PENDING, index=True)
    expires_at = Column(DateTime, nullable=False)

    # Blob references
    original_document_path = Column(String(500), nullable=False)
    signed_document_path = Column(String(500), nullable=True)

    viewed_at = Column(DateTime, nullable=True)
    signed_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    spots = relationship(
        "SignatureSpot",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SignatureSpot.id",
    )
    owner = relationship("User", back_populates="created_signature_requests", foreign_keys=[created_by])
    signer = relationship("User", back_populates="assigned_signature_requests", foreign_keys=[signer_id])

    def __repr__(self):
        return f"<SignatureRequest(id='{self.id}', title='{self.title}', status='{self.status}')>"

    @validates("expires_at")
    def validate_expires_at(self, key, value):
        if self.expires_at is not None and value != self.expires_at:
            raise ValueError("expires_at cannot be changed once the request exists")
        return value

    @property
    def is_signed(self) -> bool:
        return self.status == SignatureRequestStatus.SIGNED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """A request at or past its expiry can no longer be signed"""
        now = now or datetime.utcnow()
        return now >= self.expires_at

    def display_status(self, now: Optional[datetime] = None) -> str:
        if self.status == SignatureRequestStatus.PENDING and self.is_expired(now):
            return EXPIRED_DISPLAY_STATUS
        return self.status.value

    @property
    def is_identity_bound(self) -> bool:
        return self.signer_id is not None

    @property
    def signer_display_name(self) -> str:
        """External signer fields first, then the linked profile"""
        if self.signer_name:
            return self.signer_name
        if self.signer is not None:
            return self.signer.display_name
        return "A user"

    @property
    def signer_contact_email(self) -> Optional[str]:
        if self.signer_email:
            return self.signer_email
        if self.signer is not None:
            return self.signer.email
        return None


class SignatureSpot(Base):
    """A region on a page where the signature is embedded.

    Position and size are stored either as percentages of the page (0-100)
    or, for older records, as absolute page units. Each field is detected
    independently: values above 100 are absolute.
    """
    __tablename__ = "signature_spots"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(
        String(36),
        ForeignKey("signature_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    page_number = Column(Integer, nullable=False, default=1)
    x_position = Column(Float, nullable=False)
    y_position = Column(Float, nullable=False)
    width = Column(Float, nullable=False, default=200)
    height = Column(Float, nullable=False, default=80)
    label = Column(String(100), nullable=True, default="Sign here")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    request = relationship("SignatureRequest", back_populates="spots")

    def __repr__(self):
        return (
            f"<SignatureSpot(id={self.id}, page={self.page_number}, "
            f"x={self.x_position}, y={self.y_position}, w={self.width}, h={self.height})>"
        )
