"""
Access token validation

Resolves a signing caller to a signature request: either an authenticated
user plus a request id, or a standalone capability token. Read-only.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.models.signature_request import SignatureRequest
from app.models.user import User
from app.utils.errors import ForbiddenError, NotFoundError, UnauthenticatedError

logger = logging.getLogger(__name__)


class AccessTokenValidator:
    """Resolve and authorize access to a signature request"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(SignatureRequest).options(
            selectinload(SignatureRequest.spots),
            selectinload(SignatureRequest.owner),
            selectinload(SignatureRequest.signer),
        )

    def resolve_for_signer(self, request_id: Optional[str], caller: Optional[User]) -> SignatureRequest:
        """Bearer path: the caller must be the bound signer of the request"""
        if caller is None:
            raise UnauthenticatedError()
        if not request_id:
            raise NotFoundError()

        signature_request = self._query().filter(SignatureRequest.id == request_id).first()
        if not signature_request:
            raise NotFoundError()

        # Requests without a bound signer are signed through their link only
        if signature_request.signer_id != caller.id:
            logger.warning(
                f"User {caller.id} tried to sign request {request_id} "
                f"bound to user {signature_request.signer_id}"
            )
            raise ForbiddenError()

        return signature_request

    def resolve_for_viewer(self, request_id: str, caller: User) -> SignatureRequest:
        """Read access for the bound signer or the request owner"""
        signature_request = self._query().filter(SignatureRequest.id == request_id).first()
        if not signature_request:
            raise NotFoundError()

        if caller.id not in (signature_request.signer_id, signature_request.created_by):
            raise ForbiddenError("You do not have access to this signature request")
        return signature_request

    def resolve_by_token(self, access_token: Optional[str]) -> SignatureRequest:
        """Capability path: the token itself is the authorization"""
        if not access_token or not access_token.strip():
            raise NotFoundError("This signature link is invalid or has expired")

        signature_request = self._query().filter(SignatureRequest.access_token == access_token).first()
        if not signature_request:
            raise NotFoundError("This signature link is invalid or has expired")
        return signature_request
