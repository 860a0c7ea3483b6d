import os
import tempfile
from contextlib import contextmanager

# point storage at throwaway locations before the app modules read their settings
_UPLOAD_TMP = tempfile.mkdtemp(prefix="classroom-uploads-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = _UPLOAD_TMP
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import Base, build_engine, get_db, get_session_factory
from main import app
from services import upload_service
from services.ws_manager import manager

TEST_PASSWORD = "Secret123!"  # noqa: S105 - test credentials only


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(upload_service, "UPLOAD_DIR", tmp_path)
    return tmp_path


@contextmanager
def running_app(session_factory):
    """Serve the app against `session_factory` for the duration of the block."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    manager.active_connections.clear()
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        manager.active_connections.clear()


@pytest.fixture
def client(session_factory, upload_dir):
    with running_app(session_factory) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return (user dict, auth headers, token)."""

    def _register(name, role="student", email=None):
        email = email or f"{name.lower()}@example.com"
        r = client.post(
            "/api/auth/register",
            json={"email": email, "password": TEST_PASSWORD, "name": name, "role": role},
        )
        assert r.status_code == 200, r.text
        data = r.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}, data["token"]

    return _register


@pytest.fixture
def make_chat(client):
    def _make_chat(headers, title="Group X", member_ids=()):
        r = client.post("/api/chats", json={"title": title, "memberIds": list(member_ids)}, headers=headers)
        assert r.status_code == 200, r.text
        return r.json()

    return _make_chat
