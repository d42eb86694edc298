"""
Signature request and signing endpoints
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, UploadFile, File, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from app.models.user import User
from app.schemas.signature import (
    SignatureRequestCreate, SignatureRequestResponse, SignatureRequestCreated,
    TokenSignatureRequestResponse, SignSubmission, SignResponse, DocumentUploadResponse
)
from app.services.auth_service import AuthService
from app.services.email_service import EmailService
from app.services.notification_service import EmailNotificationSink, NotificationDispatcher
from app.services.pdf_stamping_service import PdfStampingService
from app.services.signature_request_service import SignatureRequestService
from app.services.signing_service import SigningService
from app.utils.security import get_auth_service, get_bearer_credential, get_current_user, require_admin
from app.utils.storage import BlobStore, get_blob_store
from app.utils.validation import validate_file_upload

router = APIRouter()
logger = logging.getLogger(__name__)


def get_stamping_service() -> PdfStampingService:
    return PdfStampingService(label_font_size=settings.SIGNED_LABEL_FONT_SIZE)


def get_email_service() -> EmailService:
    return EmailService(settings)


def get_notification_sink(email_service: EmailService = Depends(get_email_service)) -> EmailNotificationSink:
    return EmailNotificationSink(email_service)


def get_notification_dispatcher(
    sink: EmailNotificationSink = Depends(get_notification_sink),
) -> NotificationDispatcher:
    return NotificationDispatcher(settings, sink)


def get_signing_service(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    stamper: PdfStampingService = Depends(get_stamping_service),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    auth_service: AuthService = Depends(get_auth_service),
) -> SigningService:
    return SigningService(db, blob_store, stamper, dispatcher, auth_service, settings)


def get_signature_request_service(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    sink: EmailNotificationSink = Depends(get_notification_sink),
) -> SignatureRequestService:
    return SignatureRequestService(db, blob_store, sink, settings)


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.post("/sign", response_model=SignResponse)
async def submit_signature(
    submission: SignSubmission,
    request: Request,
    credential: Optional[str] = Depends(get_bearer_credential),
    signing_service: SigningService = Depends(get_signing_service),
):
    """Sign a pending request by id (bearer auth) or by its signing link token"""
    signed_path = await signing_service.submit_signature(
        signature_image=submission.signature_image,
        request_id=submission.request_id,
        access_token=submission.access_token,
        credential=credential,
        http_request=request,
    )
    return SignResponse(signed_document_ref=signed_path)


@router.post("/documents", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    current_user: User = Depends(require_admin),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    """Upload a source PDF to send for signature"""
    validate_file_upload(file, [".pdf"], settings.MAX_DOCUMENT_SIZE)
    content = await file.read()
    path = await service.upload_document(current_user, content, request)
    return DocumentUploadResponse(path=path)


@router.post("/requests", response_model=SignatureRequestCreated, status_code=status.HTTP_201_CREATED)
async def create_signature_request(
    payload: SignatureRequestCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    """Create a signature request and email the signing link"""
    signature_request, sent = await service.create_request(current_user, payload, request)
    return SignatureRequestCreated(
        request=SignatureRequestResponse.from_request(signature_request),
        invitation_sent=sent,
    )


@router.get("/requests", response_model=List[SignatureRequestResponse])
async def list_signature_requests(
    current_user: User = Depends(require_admin),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    """Requests sent by the current user, newest first"""
    return [SignatureRequestResponse.from_request(item) for item in service.list_for_owner(current_user)]


@router.get("/requests/{request_id}", response_model=SignatureRequestResponse)
async def get_signature_request(
    request_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    signature_request = service.get_for_viewer(request_id, current_user, request)
    return SignatureRequestResponse.from_request(signature_request)


@router.post("/requests/{request_id}/resend")
async def resend_signature_request(
    request_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    """Send the signing link again"""
    sent = await service.resend_invitation(request_id, current_user, request)
    return {"success": True, "invitation_sent": sent}


@router.get("/requests/{request_id}/document")
async def download_signature_document(
    request_id: str,
    request: Request,
    signed: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    content, filename = await service.download_document(request_id, current_user, signed, request)
    return _pdf_response(content, filename)


@router.get("/token/{access_token}", response_model=TokenSignatureRequestResponse)
async def get_signature_request_by_token(
    access_token: str,
    request: Request,
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    """Signing page payload for a link; no account required"""
    signature_request = service.get_for_token(access_token, request)
    return TokenSignatureRequestResponse.from_request(signature_request)


@router.get("/token/{access_token}/document")
async def download_document_by_token(
    access_token: str,
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    content, filename = await service.download_for_token(access_token)
    return _pdf_response(content, filename)
