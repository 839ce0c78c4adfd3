import itertools
import os

# Settings are read at import time, so the test database has to be chosen first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ.pop("BOOTSTRAP_ADMIN_NATIONAL_ID", None)
os.environ.pop("BOOTSTRAP_ADMIN_PASSWORD", None)

import cloudinary.uploader
import pytest
from fastapi.testclient import TestClient

import models  # noqa: F401
from app import app
from database import Base, SessionLocal, engine, get_db
from models.user import User, UserRole
from utils.security import create_access_token, hash_password

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fake_storage(monkeypatch):
    """Stand-in for Cloudinary: records uploads and deletions, never touches the network"""
    counter = itertools.count(1)
    calls = {"uploaded": [], "destroyed": []}

    def upload(contents, folder=None, public_id=None, resource_type="image", **kwargs):
        n = next(counter)
        ext = "pdf" if resource_type == "raw" else "jpg"
        name = public_id or f"file{n}"
        stored_id = f"{folder}/{name}"
        if resource_type != "raw":
            url = f"https://res.cloudinary.com/demo/image/upload/v100{n}/{stored_id}.{ext}"
        else:
            stored_id = f"{stored_id}.{ext}"
            url = f"https://res.cloudinary.com/demo/raw/upload/v100{n}/{stored_id}"
        calls["uploaded"].append(stored_id)
        return {
            "public_id": stored_id,
            "secure_url": url,
            "resource_type": resource_type,
            "format": ext,
            "bytes": len(contents),
        }

    def destroy(public_id, resource_type="image", **kwargs):
        calls["destroyed"].append(public_id)
        return {"result": "ok"}

    monkeypatch.setattr(cloudinary.uploader, "upload", upload)
    monkeypatch.setattr(cloudinary.uploader, "destroy", destroy)
    return calls


def make_user(db, national_id, role=UserRole.citizen, full_name=None, is_active=True):
    user = User(
        national_id=national_id,
        password_hash=hash_password(PASSWORD),
        full_name=full_name or f"User {national_id}",
        phone="0912345678",
        role=role,
        is_active=is_active
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"sub": str(user.user_id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def citizen(db):
    return make_user(db, "CIT-001", full_name="Amina Citizen")


@pytest.fixture
def other_citizen(db):
    return make_user(db, "CIT-002", full_name="Bilal Citizen")


@pytest.fixture
def admin(db):
    return make_user(db, "ADM-001", role=UserRole.admin, full_name="Ada Admin")


@pytest.fixture
def citizen_headers(citizen):
    return auth_headers(citizen)


@pytest.fixture
def other_headers(other_citizen):
    return auth_headers(other_citizen)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def create_complaint(client):
    def _create(headers, **overrides):
        body = {"title": "Broken street light", "description": "The light on 5th street is out"}
        body.update(overrides)
        response = client.post("/api/complaints", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create
