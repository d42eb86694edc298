"""
Signing pipeline tests: state machine, stamping, storage and notification
"""

import asyncio
import base64
import time
from datetime import datetime, timedelta
from unittest.mock import Mock

import fitz  # PyMuPDF
import pytest
from sqlalchemy import update

from config import settings
from app.models.audit import AuditLog, AuditEventType
from app.models.signature_request import SignatureRequest, SignatureRequestStatus
from app.services.notification_service import NotificationDispatcher
from app.services.pdf_stamping_service import PdfStampingService, StampResult
from app.services.signing_service import SignatureStateMachine, SigningService
from app.utils.errors import (
    AlreadySignedError,
    ExpiredError,
    ForbiddenError,
    InternalSigningError,
    MalformedImageError,
    NotFoundError,
    StampingTimeoutError,
    UnauthenticatedError,
)

TWO_SPOTS = (
    {"page_number": 1, "x_position": 50, "y_position": 50, "width": 30, "height": 10},
    {"page_number": 2, "x_position": 20, "y_position": 80, "width": 20, "height": 8},
)


def _sign_by_token(service, signature_request, data_url):
    return asyncio.run(service.submit_signature(data_url, access_token=signature_request.access_token))


def _signed_blobs(blob_store):
    return sorted(p.relative_to(blob_store.root).as_posix() for p in blob_store.root.rglob("*_signed.pdf"))


def _failed_events(db_session):
    return db_session.query(AuditLog).filter(AuditLog.event_type == AuditEventType.SIGNATURE_FAILED).all()


def test_sign_by_token_stamps_and_commits(db_session, blob_store, sink, signing_service,
                                           make_request, signature_data_url):
    signature_request = make_request(spots=TWO_SPOTS, page_count=2)
    before = datetime.utcnow()

    signed_path = _sign_by_token(signing_service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signed_path.startswith(f"{signature_request.original_document_path[:-len('.pdf')]}_")
    assert signed_path.endswith("_signed.pdf")
    assert _signed_blobs(blob_store) == [signed_path]
    assert signature_request.status == SignatureRequestStatus.SIGNED
    assert signature_request.signed_document_path == signed_path
    assert signature_request.signed_at >= before

    doc = fitz.open(stream=blob_store.download(signed_path), filetype="pdf")
    try:
        assert all(page.get_images() for page in doc)
    finally:
        doc.close()

    assert len(sink.events) == 1
    event = sink.events[0]
    assert event.request_id == signature_request.id
    assert event.signer_name == "Jordan Buyer"
    assert event.owner_email == "manager@dealer.example"


def test_sign_by_account(db_session, signing_service, make_request, signer, token_for, signature_data_url):
    signature_request = make_request(signer=signer)

    signed_path = asyncio.run(signing_service.submit_signature(
        signature_data_url, request_id=signature_request.id, credential=token_for(signer)
    ))

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.SIGNED
    assert signature_request.signed_document_path == signed_path

    signed_event = db_session.query(AuditLog).filter(
        AuditLog.event_type == AuditEventType.SIGNATURE_REQUEST_SIGNED
    ).one()
    assert signed_event.user_id == signer.id
    assert signed_event.resource_id == signature_request.id


def test_second_signing_fails_and_keeps_first_artifact(db_session, blob_store, signing_service,
                                                        make_request, signature_data_url):
    signature_request = make_request()
    first_path = _sign_by_token(signing_service, signature_request, signature_data_url)
    first_bytes = blob_store.download(first_path)

    with pytest.raises(AlreadySignedError) as exc_info:
        _sign_by_token(signing_service, signature_request, signature_data_url)

    assert exc_info.value.status_code == 400
    db_session.refresh(signature_request)
    assert signature_request.signed_document_path == first_path
    assert blob_store.download(first_path) == first_bytes


def test_expired_request_cannot_be_signed(db_session, blob_store, sink, signing_service,
                                          make_request, signature_data_url):
    signature_request = make_request(expires_at=datetime.utcnow() - timedelta(minutes=1))

    with pytest.raises(ExpiredError):
        _sign_by_token(signing_service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.PENDING
    assert signature_request.signed_document_path is None
    assert _signed_blobs(blob_store) == []
    assert sink.events == []
    assert len(_failed_events(db_session)) == 1


def test_signed_check_wins_over_expiry(signing_service, make_request, signature_data_url):
    signature_request = make_request(
        status=SignatureRequestStatus.SIGNED,
        expires_at=datetime.utcnow() - timedelta(days=1),
        signed_document_path="1/already_signed.pdf",
    )

    with pytest.raises(AlreadySignedError):
        _sign_by_token(signing_service, signature_request, signature_data_url)


def test_zero_spots_still_transitions_to_signed(db_session, blob_store, signing_service,
                                                make_request, signature_data_url):
    signature_request = make_request(spots=())

    signed_path = _sign_by_token(signing_service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.SIGNED
    assert blob_store.download(signed_path) == blob_store.download(signature_request.original_document_path)


def test_out_of_range_spot_does_not_block_signing(db_session, signing_service, make_request,
                                                  signature_data_url):
    spots = (
        {"page_number": 9, "x_position": 50, "y_position": 50, "width": 30, "height": 10},
        {"page_number": 1, "x_position": 50, "y_position": 50, "width": 30, "height": 10},
    )
    signature_request = make_request(spots=spots)

    _sign_by_token(signing_service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.SIGNED


def test_notification_failure_does_not_roll_back(db_session, sink, signing_service,
                                                 make_request, signature_data_url):
    sink.fail = True
    signature_request = make_request()

    signed_path = _sign_by_token(signing_service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.SIGNED
    assert signature_request.signed_document_path == signed_path


def test_account_path_errors(signing_service, make_request, make_user, signer, token_for, signature_data_url):
    bound = make_request(signer=signer)
    unbound = make_request()
    intruder = make_user("intruder@dealer.example")

    with pytest.raises(UnauthenticatedError):
        asyncio.run(signing_service.submit_signature(signature_data_url, request_id=bound.id))
    with pytest.raises(ForbiddenError):
        asyncio.run(signing_service.submit_signature(
            signature_data_url, request_id=bound.id, credential=token_for(intruder)
        ))
    with pytest.raises(ForbiddenError):
        asyncio.run(signing_service.submit_signature(
            signature_data_url, request_id=unbound.id, credential=token_for(signer)
        ))
    with pytest.raises(NotFoundError):
        asyncio.run(signing_service.submit_signature(
            signature_data_url, request_id="missing", credential=token_for(signer)
        ))


def test_unknown_token_is_not_found(signing_service, signature_data_url):
    with pytest.raises(NotFoundError):
        asyncio.run(signing_service.submit_signature(signature_data_url, access_token="nope"))


def test_malformed_signature_image(db_session, signing_service, make_request):
    signature_request = make_request()

    with pytest.raises(MalformedImageError) as exc_info:
        _sign_by_token(signing_service, signature_request, "data:image/png;base64,@@@not-base64@@@")

    assert exc_info.value.status_code == 500
    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.PENDING


def test_missing_original_is_internal(db_session, blob_store, signing_service, make_request,
                                      signature_data_url):
    signature_request = make_request()
    (blob_store.root / signature_request.original_document_path).unlink()

    with pytest.raises(InternalSigningError):
        _sign_by_token(signing_service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.PENDING


def test_stamping_timeout_is_retryable(db_session, blob_store, sink, auth_service,
                                       make_request, signature_data_url):
    slow_stamper = Mock(spec=PdfStampingService)
    slow_stamper.stamp.side_effect = lambda *args: time.sleep(0.5)
    service = SigningService(
        db_session,
        blob_store,
        slow_stamper,
        NotificationDispatcher(settings, sink),
        auth_service,
        settings.model_copy(update={"STAMPING_TIMEOUT_SECONDS": 0.05}),
    )
    signature_request = make_request()

    with pytest.raises(StampingTimeoutError) as exc_info:
        _sign_by_token(service, signature_request, signature_data_url)

    assert exc_info.value.retryable
    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.PENDING
    assert _signed_blobs(blob_store) == []


def test_race_loser_never_touches_storage(db_session, blob_store, sink, auth_service,
                                          make_request, signature_data_url):
    signature_request = make_request()
    request_id = signature_request.id

    def stamp_while_another_attempt_commits(*args):
        db_session.execute(
            update(SignatureRequest)
            .where(SignatureRequest.id == request_id)
            .values(status=SignatureRequestStatus.SIGNED, signed_document_path="winner_signed.pdf")
        )
        db_session.commit()
        return StampResult(document_bytes=b"%PDF-1.7 loser")

    stamper = Mock(spec=PdfStampingService)
    stamper.stamp.side_effect = stamp_while_another_attempt_commits
    service = SigningService(db_session, blob_store, stamper, NotificationDispatcher(settings, sink),
                             auth_service, settings)

    with pytest.raises(AlreadySignedError):
        _sign_by_token(service, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    assert signature_request.signed_document_path == "winner_signed.pdf"
    assert _signed_blobs(blob_store) == []
    assert sink.events == []


def test_race_loser_uploading_after_winner_commit_keeps_winner_artifact(
        db_session, blob_store, sink, auth_service, make_request, make_png, signature_data_url):
    signature_request = make_request()
    access_token = signature_request.access_token
    winner = SigningService(db_session, blob_store, PdfStampingService(), NotificationDispatcher(settings, sink),
                            auth_service, settings)
    winner_data_url = "data:image/png;base64," + base64.b64encode(make_png(100, 300)).decode("ascii")
    loser_uploads = []

    def upload_after_another_attempt_commits(path, data):
        # Both attempts passed the pending re-check; the winner finishes first
        asyncio.run(winner.submit_signature(winner_data_url, access_token=access_token))
        loser_uploads.append(path)
        blob_store.upload(path, data)

    loser_store = Mock(wraps=blob_store)
    loser_store.upload.side_effect = upload_after_another_attempt_commits
    loser = SigningService(db_session, loser_store, PdfStampingService(), NotificationDispatcher(settings, sink),
                           auth_service, settings)

    with pytest.raises(AlreadySignedError):
        _sign_by_token(loser, signature_request, signature_data_url)

    db_session.refresh(signature_request)
    committed = signature_request.signed_document_path
    assert signature_request.status == SignatureRequestStatus.SIGNED
    assert committed not in loser_uploads
    assert len(sink.events) == 1

    doc = fitz.open(stream=blob_store.download(committed), filetype="pdf")
    try:
        xref = doc[0].get_images()[0][0]
        image = doc.extract_image(xref)
        assert (image["width"], image["height"]) == (100, 300)
    finally:
        doc.close()


def test_conditional_commit_rejects_already_signed_row(db_session, make_request):
    signature_request = make_request()
    db_session.execute(
        update(SignatureRequest)
        .where(SignatureRequest.id == signature_request.id)
        .values(status=SignatureRequestStatus.SIGNED, signed_document_path="first_signed.pdf")
    )
    db_session.commit()

    with pytest.raises(AlreadySignedError):
        SignatureStateMachine(db_session).commit_signed(signature_request, "second_signed.pdf", datetime.utcnow())

    db_session.refresh(signature_request)
    assert signature_request.signed_document_path == "first_signed.pdf"


def test_ensure_signable_boundaries(make_request):
    now = datetime.utcnow()
    signature_request = make_request(expires_at=now + timedelta(hours=1))

    SignatureStateMachine.ensure_signable(signature_request, now)
    with pytest.raises(ExpiredError):
        SignatureStateMachine.ensure_signable(signature_request, signature_request.expires_at)


def test_expiry_cannot_be_extended(db_session, make_request):
    signature_request = make_request()

    with pytest.raises(ValueError):
        signature_request.expires_at = signature_request.expires_at + timedelta(days=30)


@pytest.mark.parametrize("use_id,use_token", [(False, False), (True, True)])
def test_submission_must_name_exactly_one_request(db_session, signing_service, make_request,
                                                  signature_data_url, use_id, use_token):
    signature_request = make_request()

    with pytest.raises(NotFoundError):
        asyncio.run(signing_service.submit_signature(
            signature_data_url,
            request_id=signature_request.id if use_id else None,
            access_token=signature_request.access_token if use_token else None,
        ))

    db_session.refresh(signature_request)
    assert signature_request.status == SignatureRequestStatus.PENDING
    assert len(_failed_events(db_session)) == 1
