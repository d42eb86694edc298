"""
PyTest configuration and fixtures
"""

import base64
import io
import os
import sys
from datetime import datetime, timedelta

import pytest

# Add the parent directory to the path so we can import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ["RESEND_API_KEY"] = ""

import fitz  # PyMuPDF
from PIL import Image
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base
from app.models.signature_request import SignatureRequest, SignatureSpot, SignatureRequestStatus
from app.models.user import User, UserRole
from app.services.auth_service import AuthService
from app.services.notification_service import NotificationDispatcher, NotificationSink
from app.services.pdf_stamping_service import PdfStampingService
from app.services.signing_service import SigningService
from app.utils.storage import LocalBlobStore


class RecordingSink(NotificationSink):
    """Notification sink that keeps what it was asked to deliver"""

    def __init__(self):
        self.events = []
        self.invitations = []
        self.fail = False

    async def send(self, event):
        if self.fail:
            raise RuntimeError("mail provider unavailable")
        self.events.append(event)
        return True

    async def send_signature_request(self, signature_request, sender_name):
        self.invitations.append((signature_request.id, sender_name))
        return True


def build_pdf(page_count: int = 1, width: float = 612, height: float = 792) -> bytes:
    """Blank PDF with the given number of pages"""
    doc = fitz.open()
    for _ in range(page_count):
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


def build_png(width: int = 300, height: int = 100) -> bytes:
    """Opaque black raster, PNG encoded"""
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), (0, 0, 0, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "signature-documents"))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def auth_service():
    return AuthService(settings)


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def make_png():
    return build_png


@pytest.fixture
def signature_png():
    return build_png()


@pytest.fixture
def signature_data_url(signature_png):
    return to_data_url(signature_png)


@pytest.fixture
def make_user(db_session):
    def _make_user(email: str, role: UserRole = UserRole.USER, full_name: str = None) -> User:
        user = User(email=email, full_name=full_name, role=role)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("manager@dealer.example", role=UserRole.ADMIN, full_name="Sam Manager")


@pytest.fixture
def signer(make_user):
    return make_user("rep@dealer.example", full_name="Riley Rep")


@pytest.fixture
def token_for(auth_service):
    def _token_for(user: User) -> str:
        return auth_service.create_access_token({"sub": str(user.id)})
    return _token_for


DEFAULT_SPOTS = (
    {"page_number": 1, "x_position": 50, "y_position": 50, "width": 30, "height": 10},
)


@pytest.fixture
def make_request(db_session, blob_store, owner):
    """Persist a signature request whose original PDF is in the blob store"""
    counter = {"n": 0}

    def _make_request(
        signer: User = None,
        spots=DEFAULT_SPOTS,
        page_count: int = 1,
        expires_at: datetime = None,
        status: SignatureRequestStatus = SignatureRequestStatus.PENDING,
        created_at: datetime = None,
        **fields,
    ) -> SignatureRequest:
        counter["n"] += 1
        path = f"{owner.id}/agreement-{counter['n']}.pdf"
        blob_store.upload(path, build_pdf(page_count))

        signature_request = SignatureRequest(
            title=fields.pop("title", "Pay plan acknowledgement"),
            signer_id=signer.id if signer else None,
            signer_name=fields.pop("signer_name", None if signer else "Jordan Buyer"),
            signer_email=fields.pop("signer_email", None if signer else "jordan@example.com"),
            original_document_path=path,
            expires_at=expires_at or datetime.utcnow() + timedelta(days=7),
            status=status,
            created_by=owner.id,
            **fields,
        )
        if created_at is not None:
            signature_request.created_at = created_at
        for spot in spots:
            signature_request.spots.append(SignatureSpot(**spot))

        db_session.add(signature_request)
        db_session.commit()
        db_session.refresh(signature_request)
        return signature_request
    return _make_request


@pytest.fixture
def signing_service(db_session, blob_store, sink, auth_service):
    return SigningService(
        db_session,
        blob_store,
        PdfStampingService(label_font_size=settings.SIGNED_LABEL_FONT_SIZE),
        NotificationDispatcher(settings, sink),
        auth_service,
        settings,
    )


@pytest.fixture
def client(db_session, blob_store, sink, auth_service):
    """Test client wired to the in-memory database, temp storage and recording sink"""
    from fastapi.testclient import TestClient

    from database import get_db
    from main import app
    from app.routes.signatures import get_notification_sink
    from app.utils.security import get_auth_service
    from app.utils.storage import get_blob_store

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notification_sink] = lambda: sink
    app.dependency_overrides[get_auth_service] = lambda: auth_service

    yield TestClient(app)

    app.dependency_overrides.clear()
