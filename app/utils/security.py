"""
Security dependencies for the API routes
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from app.models.user import User
from app.services.auth_service import AuthService
from app.utils.errors import ForbiddenError

# auto_error=False so a missing header surfaces as our Unauthenticated error
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    return AuthService(settings)


def get_bearer_credential(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Raw bearer token, if the request carried one"""
    if credentials is None:
        return None
    return credentials.credentials


async def get_current_user(
    credential: Optional[str] = Depends(get_bearer_credential),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """Get current user from the bearer JWT"""
    return auth_service.resolve_caller(db, credential)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Only administrators author and send signature requests"""
    if not current_user.is_admin:
        raise ForbiddenError("Insufficient permissions. Only admins can manage signature requests.")
    return current_user
