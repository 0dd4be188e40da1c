"""
Shared fixtures: in-memory database, users per role, and an API client.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app import models  # noqa: F401  (registers tables)
from app.db.base import Base
from app.db.session import get_db
from app.main import app as fastapi_app
from app.models.receipt import ReceiptType
from app.models.user import UserRole
from app.services.file_storage import LocalBlobStore, get_blob_store
from app.services.notification_service import get_notifier
from app.tests.factories import RecordingNotifier, create_user


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    """One user per role, keyed by role."""
    return {role: create_user(db, role, role.name.lower()) for role in UserRole}


@pytest.fixture
def receipt_type(db):
    receipt_type = ReceiptType(name="Lodging")
    db.add(receipt_type)
    db.commit()
    db.refresh(receipt_type)
    return receipt_type


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"))


@pytest.fixture
def client(session_factory, notifier, blob_store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    fastapi_app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
