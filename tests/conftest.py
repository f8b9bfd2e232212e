"""
Shared pytest fixtures: in-memory fakes for the storage, extraction and
persistence ports, in-memory SQLite, and a FastAPI TestClient.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.db import Base, make_session_factory
from app.main import create_app
from app.models import ExtractedFields
from app.services.receipt_service import ReceiptService
from app.services.repository import SqlReceiptRepository

MOCK_FIELDS = ExtractedFields(date="2023-12-25", store="Mock Store", items="A,B", total_amount=1234)


class FakeStorage:
    def __init__(self, url="http://store/x.jpg"):
        self.url = url
        self.error = None
        self.calls = []

    def upload(self, image, filename, deadline=None):
        self.calls.append((image, filename, deadline))
        if self.error:
            raise self.error
        return self.url


class FakeExtractor:
    def __init__(self, fields=MOCK_FIELDS):
        self.fields = fields
        self.error = None
        self.calls = []

    def extract(self, image, deadline=None):
        self.calls.append((image, deadline))
        if self.error:
            raise self.error
        return self.fields


class FakeRepository:
    def __init__(self, receipt_id="abc"):
        self.receipt_id = receipt_id
        self.error = None
        self.saved = []

    def save(self, record):
        self.saved.append(record)
        if self.error:
            raise self.error
        now = datetime(2024, 1, 1, 12, 0, 0)
        return record.model_copy(update={"id": self.receipt_id, "created_at": now, "updated_at": now})


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def extractor():
    return FakeExtractor()


@pytest.fixture()
def fake_repository():
    return FakeRepository()


@pytest.fixture()
def service(storage, extractor, fake_repository):
    return ReceiptService(fake_repository, extractor, storage)


# --- Database ---

@pytest.fixture()
def engine():
    # StaticPool ensures all connections share the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def repository(engine):
    return SqlReceiptRepository(make_session_factory(engine))


@pytest.fixture()
def client(storage, extractor, repository):
    app = create_app(
        receipt_service=ReceiptService(repository, extractor, storage),
        repository=repository,
    )
    with TestClient(app) as c:
        yield c
