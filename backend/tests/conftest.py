"""Shared fixtures: in-memory database, test client and payment config."""
import hashlib
import hmac
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Configure the app for tests before it is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_DISABLED"] = "1"

from mindful.config import PaymentConfig, get_payment_config  # noqa: E402
from mindful.database import Base, get_db  # noqa: E402
from mindful.main import app  # noqa: E402

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "test-secret-do-not-use"

TEST_PAYMENT_CONFIG = PaymentConfig(
    key_id=TEST_KEY_ID,
    key_secret=TEST_KEY_SECRET,
    api_base="https://api.razorpay.test/v1",
    currency="INR",
)

# Create a test database
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for tests."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


def sign(order_id: str, payment_id: str, secret: str = TEST_KEY_SECRET) -> str:
    """Sign a payment the way the gateway does."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_config] = lambda: TEST_PAYMENT_CONFIG
    yield TestClient(app)
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Database session on a fresh schema."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def payment_config():
    return TEST_PAYMENT_CONFIG
