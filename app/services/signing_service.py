"""
Signature submission pipeline

Resolve the caller, guard the request state, stamp the original PDF, store the
signed artifact and commit the pending -> signed transition.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

from fastapi import Request
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import Settings
from app.models.audit import AuditEventType, AuditLevel
from app.models.signature_request import SignatureRequest, SignatureRequestStatus
from app.models.user import User
from app.services.access_validator import AccessTokenValidator
from app.services.audit_service import AuditService
from app.services.auth_service import AuthService
from app.services.notification_service import NotificationDispatcher, SignatureCompletedEvent
from app.services.pdf_stamping_service import PdfStampingService, StampResult, signed_document_path
from app.utils.storage import BlobStore
from app.utils.errors import (
    AlreadySignedError,
    ExpiredError,
    InternalSigningError,
    NotFoundError,
    SigningError,
    StampingTimeoutError,
)
from app.utils.validation import decode_signature_data_url

signature_logger = logging.getLogger('signature_service')


class SignatureStateMachine:
    """pending -> signed, guarded by a conditional update"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def ensure_signable(signature_request: SignatureRequest, now: Optional[datetime] = None):
        """Status is checked before expiry; both before any document work"""
        now = now or datetime.utcnow()
        if signature_request.status == SignatureRequestStatus.SIGNED:
            raise AlreadySignedError()
        if signature_request.is_expired(now):
            raise ExpiredError()

    def ensure_still_pending(self, request_id: str):
        """Re-read the stored status so a finished race loses before touching storage"""
        current = self.db.query(SignatureRequest.status).filter(SignatureRequest.id == request_id).scalar()
        if current is None:
            raise NotFoundError()
        if current != SignatureRequestStatus.PENDING:
            raise AlreadySignedError()

    def commit_signed(self, signature_request: SignatureRequest, signed_path: str, signed_at: datetime):
        """Set status, artifact reference and timestamp in one conditional UPDATE"""
        request_id = signature_request.id
        try:
            result = self.db.execute(
                update(SignatureRequest)
                .where(
                    SignatureRequest.id == request_id,
                    SignatureRequest.status == SignatureRequestStatus.PENDING,
                )
                .values(
                    status=SignatureRequestStatus.SIGNED,
                    signed_document_path=signed_path,
                    signed_at=signed_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                signature_logger.warning(f"Lost signing race for request {request_id}")
                raise AlreadySignedError()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise InternalSigningError(f"Failed to record signature: {e}") from e

        self.db.refresh(signature_request)


class SigningService:
    """Orchestrates one signing attempt"""

    def __init__(
        self,
        db: Session,
        blob_store: BlobStore,
        stamper: PdfStampingService,
        dispatcher: NotificationDispatcher,
        auth_service: AuthService,
        settings: Settings,
    ):
        self.db = db
        self.blob_store = blob_store
        self.stamper = stamper
        self.dispatcher = dispatcher
        self.auth_service = auth_service
        self.validator = AccessTokenValidator(db)
        self.state_machine = SignatureStateMachine(db)
        self.stamping_timeout = settings.STAMPING_TIMEOUT_SECONDS
        self.max_signature_size = settings.MAX_SIGNATURE_IMAGE_SIZE

    def _resolve(
        self,
        request_id: Optional[str],
        access_token: Optional[str],
        credential: Optional[str],
    ) -> Tuple[SignatureRequest, Optional[User]]:
        if bool(request_id) == bool(access_token):
            raise NotFoundError("Provide exactly one of requestId or accessToken")
        if access_token:
            return self.validator.resolve_by_token(access_token), None

        caller = self.auth_service.resolve_caller(self.db, credential)
        return self.validator.resolve_for_signer(request_id, caller), caller

    async def _download_original(self, path: str) -> bytes:
        try:
            return await asyncio.to_thread(self.blob_store.download, path)
        except NotFoundError as e:
            raise InternalSigningError(f"Original document is missing: {path}") from e

    async def _stamp(self, original: bytes, signature_png: bytes, spots, signed_at: datetime) -> StampResult:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.stamper.stamp, original, signature_png, spots, signed_at),
                timeout=self.stamping_timeout,
            )
        except asyncio.TimeoutError as e:
            raise StampingTimeoutError() from e
        except SigningError:
            raise
        except Exception as e:
            raise InternalSigningError(f"Failed to stamp document: {e}") from e

    async def submit_signature(
        self,
        signature_image: str,
        request_id: Optional[str] = None,
        access_token: Optional[str] = None,
        credential: Optional[str] = None,
        http_request: Optional[Request] = None,
    ) -> str:
        """Sign a pending request and return the signed document reference"""
        signature_request = None
        caller = None

        try:
            signature_request, caller = self._resolve(request_id, access_token, credential)
            self.state_machine.ensure_signable(signature_request, datetime.utcnow())

            signature_png = decode_signature_data_url(signature_image, self.max_signature_size)
            original = await self._download_original(signature_request.original_document_path)

            signed_at = datetime.utcnow()
            result = await self._stamp(original, signature_png, list(signature_request.spots), signed_at)

            self.state_machine.ensure_still_pending(signature_request.id)

            # Per-attempt key: a concurrent loser never writes over the committed artifact
            signed_path = signed_document_path(signature_request.original_document_path, uuid.uuid4().hex[:12])
            await asyncio.to_thread(self.blob_store.upload, signed_path, result.document_bytes)

            self.state_machine.commit_signed(signature_request, signed_path, signed_at)

        except SigningError as e:
            self._record_failure(e, signature_request, caller, request_id, http_request)
            raise

        signature_logger.info(
            f"Request {signature_request.id} signed: {len(result.stamped)} spot(s) stamped, "
            f"{len(result.skipped)} skipped, artifact {signed_path}"
        )

        AuditService.log_signature_event(
            self.db,
            AuditEventType.SIGNATURE_REQUEST_SIGNED,
            f"Signature request '{signature_request.title}' signed",
            signature_request_id=signature_request.id,
            user_id=caller.id if caller else None,
            request=http_request,
            details={
                "signed_document_path": signed_path,
                "via": "token" if caller is None else "account",
                "stamped_spots": len(result.stamped),
                "skipped_spots": [page for page, _ in result.skipped],
            },
        )

        await self.dispatcher.dispatch(SignatureCompletedEvent.from_request(signature_request))
        return signed_path

    def _record_failure(
        self,
        error: SigningError,
        signature_request: Optional[SignatureRequest],
        caller: Optional[User],
        request_id: Optional[str],
        http_request: Optional[Request],
    ):
        resource_id = signature_request.id if signature_request is not None else request_id
        self.db.rollback()

        if isinstance(error, InternalSigningError):
            signature_logger.error(f"Signing failed for request {resource_id}: {error.message}")
            level = AuditLevel.ERROR
        else:
            signature_logger.warning(f"Signing rejected for request {resource_id}: {error.code}")
            level = AuditLevel.WARNING

        AuditService.log_signature_event(
            self.db,
            AuditEventType.SIGNATURE_FAILED,
            f"Signing failed: {error.code}",
            signature_request_id=resource_id,
            user_id=caller.id if caller else None,
            request=http_request,
            details={"error": error.code, "message": error.message, "retryable": error.retryable},
            level=level,
        )
