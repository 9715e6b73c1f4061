import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure predictable environment variables for tests before importing the app.
BASE_DIR = Path(__file__).resolve().parents[1]
_TMP_DIR = Path(tempfile.mkdtemp(prefix="buildex-tests-"))

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP_DIR / 'test.db'}")
os.environ.setdefault("IMAGE_STORAGE_DIR", str(_TMP_DIR / "360"))
os.environ.setdefault("IMAGE_FETCH_MAX_ATTEMPTS", "1")
for _key in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD"):
    os.environ.pop(_key, None)

import app.main as main  # noqa: E402  (import after env vars are set)
from app.core.email_sender import Delivery, EmailSender, get_email_sender  # noqa: E402
from app.core.image_store import FileSystemImageStore  # noqa: E402
from app.core.otp import OtpService, get_otp_service  # noqa: E402
from app.db.database import get_db  # noqa: E402
from app.db.models import Base  # noqa: E402
from app.services.image_cache import ImageProxyCache, get_image_cache  # noqa: E402

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00\x10JFIF" + b"\x00" * 64 + b"\xff\xd9"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEmailSender(EmailSender):
    """Captures outgoing mail instead of talking to SMTP."""

    def __init__(self, result: Delivery = Delivery.DELIVERED):
        super().__init__()
        self.result = result
        self.sent = []

    def send(self, to_email, subject, body):
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return self.result


class FakeFetcher:
    """Serves fixed bytes per URL and counts calls; can fail after the first chunk."""

    def __init__(self, payload: bytes = JPEG_BYTES, fail_midway: bool = False):
        self.payload = payload
        self.fail_midway = fail_midway
        self.calls = []

    def iter_bytes(self, url):
        self.calls.append(url)
        yield self.payload[:8]
        if self.fail_midway:
            raise OSError("connection reset while copying")
        yield self.payload[8:]


@pytest.fixture()
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture()
def db_session(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def otp_service(clock):
    return OtpService(ttl_seconds=600, length=6, clock=clock)


@pytest.fixture()
def email_sender():
    return RecordingEmailSender()


@pytest.fixture()
def fetcher():
    return FakeFetcher()


@pytest.fixture()
def image_cache(tmp_path, fetcher):
    return ImageProxyCache(store=FileSystemImageStore(tmp_path / "360"), fetcher=fetcher)


@pytest.fixture()
def client(db_session_factory, otp_service, email_sender, image_cache):
    """Provide a TestClient with storage, OTP, email and image cache swapped for test doubles."""

    def _get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    main.app.dependency_overrides[get_db] = _get_db
    main.app.dependency_overrides[get_otp_service] = lambda: otp_service
    main.app.dependency_overrides[get_email_sender] = lambda: email_sender
    main.app.dependency_overrides[get_image_cache] = lambda: image_cache

    with TestClient(main.app) as test_client:
        yield test_client

    main.app.dependency_overrides.clear()
