"""
User model: request owners and bound signers
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from database import Base


class UserRole(str, enum.Enum):
    """User role enumeration"""
    USER = "user"      # Dealer staff, may be asked to sign
    ADMIN = "admin"    # Creates and sends signature requests


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    created_signature_requests = relationship(
        "SignatureRequest",
        back_populates="owner",
        foreign_keys="SignatureRequest.created_by",
    )
    assigned_signature_requests = relationship(
        "SignatureRequest",
        back_populates="signer",
        foreign_keys="SignatureRequest.signer_id",
    )
    audit_logs = relationship("AuditLog", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
