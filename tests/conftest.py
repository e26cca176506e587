import os
import sys
from datetime import datetime, timedelta, timezone

# Set env vars BEFORE importing app code (config is read at import time)
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["OTP_EXPIRE_SECONDS"] = "600"
os.environ["OTP_MAX_ATTEMPTS"] = "5"
os.environ.pop("TWO_FACTOR_API_KEY", None)
os.environ.pop("SENDGRID_API_KEY", None)

# Add the project root to the python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker

from janseva.main import app
from janseva.database.database import Base, get_db
from janseva.routers.otp import get_email_gateway, get_sms_gateway

# Setup In-Memory DB
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeGateway:
    """Records every dispatched code; set `error` to make delivery fail."""

    def __init__(self, channel: str):
        self.channel = channel
        self.sent = []
        self.error = None

    def send_otp(self, destination, code):
        if self.error:
            raise self.error
        self.sent.append((destination, code))
        return self.channel

    @property
    def last_code(self):
        return self.sent[-1][1]


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sms_gateway():
    return FakeGateway("sms")


@pytest.fixture
def email_gateway():
    return FakeGateway("email")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(db_session, sms_gateway, email_gateway):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_gateway] = lambda: sms_gateway
    app.dependency_overrides[get_email_gateway] = lambda: email_gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
