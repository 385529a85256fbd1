"""
Pytest configuration and shared fixtures.

Tests run against a throwaway SQLite file with no WhatsApp provider
configured. Settings are reloaded with the test environment before any
app module is imported.
"""

import os
import tempfile

import pytest

_TEST_DB = os.path.join(tempfile.mkdtemp(prefix="form-collector-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ["DISPLAY_TIMEZONE"] = "Asia/Kolkata"
for _var in (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
    "WHATSAPP_BUSINESS_TOKEN",
    "WHATSAPP_PHONE_NUMBER_ID",
    "WHATSAPP_RECIPIENT_NUMBER",
):
    os.environ.pop(_var, None)

# Clear settings cache before any app imports to ensure test env vars are used
from app.config import get_settings
get_settings.cache_clear()

from fastapi.testclient import TestClient

from app.main import app, get_notifier
from app.models import Submission  # noqa: F401  registers the table
from app.notifier import Notifier
from app.storage import Base, SessionLocal, engine
from app.utils import get_zone


class RecordingNotifier(Notifier):
    """Notifier double that records calls instead of sending anything."""

    def __init__(self, delivered: bool = True):
        super().__init__([], "+10000000000", get_zone("Asia/Kolkata"))
        self.delivered = delivered
        self.submissions = []
        self.acknowledgements = []

    def notify_submission(self, submission) -> bool:
        self.submissions.append(submission)
        return self.delivered

    def notify_acknowledgement(self, phone: str) -> bool:
        self.acknowledgements.append(phone)
        return True


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(notifier):
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    # Cleanup - drop all tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Database session on a freshly created schema."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
