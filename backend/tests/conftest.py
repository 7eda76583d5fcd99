from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path

import mongomock
import pytest
from fastapi.testclient import TestClient

# Add backend folder to sys.path so `import receipt_scanner...` works in tests when running from backend root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from receipt_scanner.api.dependencies import get_store  # noqa: E402
from receipt_scanner.api.main import create_app  # noqa: E402
from receipt_scanner.core.database import MongoConnectionPool  # noqa: E402
from receipt_scanner.core.policy import AllowAllPolicy  # noqa: E402
from receipt_scanner.core.security import extract_bearer_token  # noqa: E402
from receipt_scanner.services.receipt_store import ReceiptStore  # noqa: E402

MONGO_URI = "mongodb://localhost:27017/receipts_test"

TOKENS = {
    "token-alice": "alice",
    "token-bob": "bob",
}


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: dt.datetime | None = None):
        self.now = start or dt.datetime(2024, 1, 1, 12, 0, 0)
        self.calls = 0

    def __call__(self) -> dt.datetime:
        self.calls += 1
        self.now = self.now + dt.timedelta(seconds=1)
        return self.now


class StubVerifier:
    """Maps known bearer tokens to subjects; everything else is rejected."""

    def __init__(self, tokens=None):
        self.tokens = dict(tokens or TOKENS)
        self.calls = []

    def verify(self, authorization, ctx):
        self.calls.append((authorization, ctx.request_id))
        token = extract_bearer_token(authorization)
        return self.tokens.get(token) if token else None


class StubExtractor:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result if result is not None else {
            "meta_data": {"restaurant": "Cafe X"},
            "items": [{"name": "Latte", "quantity": 1, "total": 4.5}],
            "payment": {"subtotal": 4.5, "total": 4.5, "currency": "USD"},
        }
        self.error = error
        self.calls = []

    def extract(self, image_b64, mime_type="image/jpeg"):
        self.calls.append((image_b64, mime_type))
        if self.error is not None:
            raise self.error
        return dict(self.result)


def mongomock_factory(uri, **options):
    return mongomock.MongoClient(uri)


@pytest.fixture()
def mongo_pool():
    pool = MongoConnectionPool(MONGO_URI, client_factory=mongomock_factory)
    yield pool
    pool.close()


@pytest.fixture()
def clock():
    return TickingClock()


@pytest.fixture()
def store(mongo_pool, clock):
    return ReceiptStore(mongo_pool, clock=clock)


@pytest.fixture()
def verifier():
    return StubVerifier()


@pytest.fixture()
def extractor():
    return StubExtractor()


@pytest.fixture()
def app(mongo_pool, verifier, extractor, store):
    application = create_app(
        pool=mongo_pool,
        identity_verifier=verifier,
        extraction_service=extractor,
        access_policy=AllowAllPolicy(),
    )
    application.dependency_overrides[get_store] = lambda: store
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def auth_headers():
    return {"Authorization": "Bearer token-alice"}
