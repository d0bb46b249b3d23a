"""
Shared fixtures: an in-memory SQLite database per test, identity factories
and an authenticated API client.
"""
import os

os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.api.v1 import media as media_routes
from app.core.security import create_access_token
from app.database import Base, get_db
from app.main import app as fastapi_app
from app.models.user import User
from app.services.chat_service import chat_service
from app.services.profile_service import profile_service
from app.services.realtime_service import change_feed
from app.services.storage_service import StorageService


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
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    """Create an identity, with a profile when a username is given"""
    def _make(username=None, **profile_fields):
        user = User(firebase_uid=f"uid-{uuid4().hex}", email=f"{uuid4().hex[:8]}@example.com")
        db.add(user)
        db.commit()
        db.refresh(user)
        if username:
            profile_service.create_profile(db, user.id, username, **profile_fields)
        return user
    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def storage(tmp_path, monkeypatch):
    """Bucket under a temporary directory, used by the services"""
    bucket = StorageService(root=str(tmp_path), base_url="/media", bucket="chat-media")
    monkeypatch.setattr(profile_service, "storage", bucket)
    monkeypatch.setattr(chat_service, "storage", bucket)
    monkeypatch.setattr(media_routes, "storage_service", bucket)
    return bucket


@pytest.fixture
def changes():
    """Committed change events seen by a subscriber during the test"""
    received = []
    unsubscribe = change_feed.subscribe(received.append)
    yield received
    unsubscribe()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header for an identity"""
    def _headers(user):
        token = create_access_token(data={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers
