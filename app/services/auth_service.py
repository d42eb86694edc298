"""
Authentication service: bearer credential to caller identity
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from jose import jwt
from sqlalchemy.orm import Session

from config import Settings
from app.models.user import User
from app.utils.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


class AuthService:
    """Issues and verifies HS256 access tokens"""

    def __init__(self, settings: Settings):
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_hours = settings.JWT_ACCESS_TOKEN_EXPIRE_HOURS

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        to_encode = data.copy()
        expire = datetime.utcnow() + (expires_delta or timedelta(hours=self.expire_hours))
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str, token_type: str = "access") -> Optional[Dict[str, Any]]:
        """Verify and decode JWT token"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.JWTError:
            return None

        if payload.get("type") != token_type:
            return None
        return payload

    def resolve_caller(self, db: Session, credential: Optional[str]) -> User:
        """Identity provider contract: credential -> active user"""
        if not credential:
            raise UnauthenticatedError()

        payload = self.verify_token(credential)
        if not payload:
            raise UnauthenticatedError("Invalid or expired token")

        user_id = payload.get("sub")
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise UnauthenticatedError("Invalid token payload")

        user = db.query(User).filter(User.id == user_id).first()
        if not user or not user.is_active:
            logger.info(f"Rejected credential for unknown or inactive user {user_id}")
            raise UnauthenticatedError()
        return user
