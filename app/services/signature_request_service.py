"""
Signature request authoring and retrieval

Admins upload source PDFs, create requests with their signature spots and
send signing invitations. Signers and owners read requests and documents.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import Request
from sqlalchemy.orm import Session

from config import Settings
from app.models.audit import AuditEventType
from app.models.signature_request import SignatureRequest, SignatureSpot, SignatureRequestStatus
from app.models.user import User
from app.schemas.signature import SignatureRequestCreate
from app.services.access_validator import AccessTokenValidator
from app.services.audit_service import AuditService
from app.services.notification_service import EmailNotificationSink
from app.services.signing_service import SignatureStateMachine
from app.utils.errors import ForbiddenError, NotFoundError
from app.utils.storage import BlobStore
from app.utils.validation import validate_pdf_content

signature_logger = logging.getLogger('signature_service')


class SignatureRequestService:
    """Create, send and read signature requests"""

    def __init__(self, db: Session, blob_store: BlobStore, sink: EmailNotificationSink, settings: Settings):
        self.db = db
        self.blob_store = blob_store
        self.sink = sink
        self.validator = AccessTokenValidator(db)
        self.default_expiry_days = settings.SIGNATURE_REQUEST_EXPIRY_DAYS
        self.max_document_size = settings.MAX_DOCUMENT_SIZE

    async def upload_document(self, owner: User, content: bytes, request: Optional[Request] = None) -> str:
        """Store a source PDF under the owner's prefix and return its path"""
        validate_pdf_content(content, self.max_document_size)

        path = f"{owner.id}/{uuid.uuid4()}.pdf"
        await asyncio.to_thread(self.blob_store.upload, path, content)

        AuditService.log_signature_event(
            self.db,
            AuditEventType.DOCUMENT_UPLOADED,
            "Source document uploaded for signing",
            user_id=owner.id,
            request=request,
            details={"path": path, "size": len(content)},
        )
        return path

    async def create_request(
        self,
        owner: User,
        payload: SignatureRequestCreate,
        request: Optional[Request] = None,
    ) -> Tuple[SignatureRequest, bool]:
        """Create a pending request and send the invitation.

        Returns the request and whether the invitation went out.
        """
        exists = await asyncio.to_thread(self.blob_store.exists, payload.original_document_path)
        if not exists:
            raise NotFoundError("Document not found")

        if payload.signer_id is not None:
            signer = self.db.query(User).filter(User.id == payload.signer_id).first()
            if not signer or not signer.is_active:
                raise NotFoundError("Signer not found")

        expiry_days = payload.expires_in_days or self.default_expiry_days
        signature_request = SignatureRequest(
            title=payload.title,
            message=payload.message,
            signer_id=payload.signer_id,
            signer_name=payload.signer_name,
            signer_email=payload.signer_email,
            store_name=payload.store_name,
            original_document_path=payload.original_document_path,
            expires_at=datetime.utcnow() + timedelta(days=expiry_days),
            created_by=owner.id,
        )
        for spot in payload.spots:
            signature_request.spots.append(SignatureSpot(
                page_number=spot.page_number,
                x_position=spot.x_position,
                y_position=spot.y_position,
                width=spot.width,
                height=spot.height,
                label=spot.label,
            ))

        self.db.add(signature_request)
        self.db.commit()
        self.db.refresh(signature_request)

        signature_logger.info(
            f"Signature request {signature_request.id} created by user {owner.id} "
            f"with {len(signature_request.spots)} spot(s)"
        )
        AuditService.log_signature_event(
            self.db,
            AuditEventType.SIGNATURE_REQUEST_CREATED,
            f"Signature request '{signature_request.title}' created",
            signature_request_id=signature_request.id,
            user_id=owner.id,
            request=request,
            details={"spots": len(payload.spots), "expires_in_days": expiry_days},
        )

        sent = await self._send_invitation(signature_request, owner, request)
        return signature_request, sent

    async def resend_invitation(self, request_id: str, owner: User, request: Optional[Request] = None) -> bool:
        signature_request = self.validator.resolve_for_viewer(request_id, owner)
        if signature_request.created_by != owner.id:
            raise ForbiddenError("Only the sender can resend this signature request")

        SignatureStateMachine.ensure_signable(signature_request)
        return await self._send_invitation(signature_request, owner, request)

    async def _send_invitation(self, signature_request: SignatureRequest, owner: User,
                               request: Optional[Request]) -> bool:
        try:
            sent = await self.sink.send_signature_request(signature_request, sender_name=owner.display_name)
        except Exception as e:
            signature_logger.warning(f"Failed to send signature request email: {e}")
            sent = False

        if sent:
            AuditService.log_signature_event(
                self.db,
                AuditEventType.SIGNATURE_REQUEST_SENT,
                f"Signature request '{signature_request.title}' sent",
                signature_request_id=signature_request.id,
                user_id=owner.id,
                request=request,
                details={"to": signature_request.signer_contact_email},
            )
        return sent

    def list_for_owner(self, owner: User) -> List[SignatureRequest]:
        return (
            self.db.query(SignatureRequest)
            .filter(SignatureRequest.created_by == owner.id)
            .order_by(SignatureRequest.created_at.desc(), SignatureRequest.id)
            .all()
        )

    def get_for_viewer(self, request_id: str, caller: User, request: Optional[Request] = None) -> SignatureRequest:
        signature_request = self.validator.resolve_for_viewer(request_id, caller)
        if signature_request.signer_id == caller.id:
            self._mark_viewed(signature_request, caller.id, request)
        return signature_request

    def get_for_token(self, access_token: str, request: Optional[Request] = None) -> SignatureRequest:
        """Anonymous signing page: only pending, unexpired requests are shown"""
        signature_request = self.validator.resolve_by_token(access_token)
        SignatureStateMachine.ensure_signable(signature_request)
        self._mark_viewed(signature_request, None, request)
        return signature_request

    def _mark_viewed(self, signature_request: SignatureRequest, user_id: Optional[int],
                     request: Optional[Request]):
        """Record the first view of a request that can still be signed"""
        if signature_request.status != SignatureRequestStatus.PENDING or signature_request.is_expired():
            return
        if signature_request.viewed_at is not None:
            return

        signature_request.viewed_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(signature_request)

        AuditService.log_signature_event(
            self.db,
            AuditEventType.SIGNATURE_REQUEST_VIEWED,
            f"Signature request '{signature_request.title}' viewed",
            signature_request_id=signature_request.id,
            user_id=user_id,
            request=request,
        )

    async def download_document(
        self,
        request_id: str,
        caller: User,
        signed: bool = False,
        request: Optional[Request] = None,
    ) -> Tuple[bytes, str]:
        """Original or signed PDF for the owner or bound signer"""
        signature_request = self.validator.resolve_for_viewer(request_id, caller)

        if signed:
            if not signature_request.signed_document_path:
                raise NotFoundError("Signed document not available")
            path = signature_request.signed_document_path
        else:
            path = signature_request.original_document_path

        content = await asyncio.to_thread(self.blob_store.download, path)
        AuditService.log_signature_event(
            self.db,
            AuditEventType.DOCUMENT_DOWNLOADED,
            "Signature document downloaded",
            signature_request_id=signature_request.id,
            user_id=caller.id,
            request=request,
            details={"signed": signed},
        )
        return content, path.rsplit("/", 1)[-1]

    async def download_for_token(self, access_token: str) -> Tuple[bytes, str]:
        """Original PDF behind a signing link that can still be signed"""
        signature_request = self.validator.resolve_by_token(access_token)
        SignatureStateMachine.ensure_signable(signature_request)

        path = signature_request.original_document_path
        content = await asyncio.to_thread(self.blob_store.download, path)
        return content, path.rsplit("/", 1)[-1]
