import pytest

from conftest import PASSWORD, auth_headers, make_user
from database import engine
from models.user import User, UserRole


def test_admin_creates_user_with_role(client, admin_headers):
    body = {
        "national_id": "ADM-002",
        "password": "secret123",
        "full_name": "Second Admin",
        "phone": "0911000000",
        "role": "admin",
    }

    response = client.post("/api/users", json=body, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["data"]["role"] == "admin"


def test_citizen_cannot_list_users(client, citizen_headers):
    assert client.get("/api/users", headers=citizen_headers).status_code == 403


def test_admin_lists_and_searches_users(client, admin_headers, citizen, other_citizen):
    response = client.get("/api/users", params={"search": "Bilal"}, headers=admin_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["pagination"]["total"] == 1
    assert body["items"][0]["national_id"] == "CIT-002"

    citizens = client.get("/api/users", params={"role": "citizen"}, headers=admin_headers).json()
    assert citizens["pagination"]["total"] == 2


def test_user_statistics(client, admin_headers, citizen, db):
    make_user(db, "CIT-OFF", is_active=False)

    stats = client.get("/api/users/statistics", headers=admin_headers).json()["data"]

    assert stats == {
        "total_users": 3,
        "active_users": 2,
        "inactive_users": 1,
        "citizens_count": 2,
        "admins_count": 1,
    }


def test_citizen_views_only_own_profile(client, citizen, other_citizen, citizen_headers):
    assert client.get(f"/api/users/{citizen.user_id}", headers=citizen_headers).status_code == 200
    assert client.get(f"/api/users/{other_citizen.user_id}", headers=citizen_headers).status_code == 403


def test_citizen_cannot_promote_themself(client, citizen, citizen_headers):
    response = client.patch(f"/api/users/{citizen.user_id}", json={"role": "admin"}, headers=citizen_headers)
    assert response.status_code == 403


def test_update_me(client, citizen_headers):
    response = client.patch("/api/users/me", json={"full_name": "Amina Renamed"}, headers=citizen_headers)

    assert response.status_code == 200
    assert response.json()["data"]["full_name"] == "Amina Renamed"


def test_change_password(client, citizen, citizen_headers):
    wrong = client.patch(
        "/api/users/me/change-password",
        json={"old_password": "not-it", "new_password": "newsecret"},
        headers=citizen_headers
    )
    assert wrong.status_code == 401

    ok = client.patch(
        "/api/users/me/change-password",
        json={"old_password": PASSWORD, "new_password": "newsecret"},
        headers=citizen_headers
    )
    assert ok.status_code == 200

    login = client.post("/api/auth/login", json={"national_id": "CIT-001", "password": "newsecret"})
    assert login.status_code == 200


def test_toggle_active_blocks_the_account(client, admin_headers, citizen, citizen_headers):
    response = client.patch(f"/api/users/{citizen.user_id}/toggle-active", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False
    assert client.get("/api/auth/me", headers=citizen_headers).status_code == 401


def test_soft_delete_keeps_the_row(client, admin_headers, citizen, db):
    assert client.delete(f"/api/users/{citizen.user_id}", headers=admin_headers).status_code == 200

    db.expire_all()
    user = db.query(User).filter(User.user_id == citizen.user_id).first()
    assert user is not None and user.is_active is False


def test_hard_delete_refused_while_user_owns_complaints(client, admin_headers, citizen, citizen_headers, create_complaint):
    create_complaint(citizen_headers)

    response = client.delete(f"/api/users/{citizen.user_id}/hard", headers=admin_headers)

    assert response.status_code == 409


def test_hard_delete(client, admin_headers, db):
    user = make_user(db, "CIT-TMP")

    assert client.delete(f"/api/users/{user.user_id}/hard", headers=admin_headers).status_code == 200
    assert client.get(f"/api/users/{user.user_id}", headers=admin_headers).status_code == 404


@pytest.fixture
def enforced_foreign_keys():
    # SQLite only checks foreign keys when asked to; the pool shares one connection
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
    yield
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")


def test_hard_delete_keeps_profile_image_when_user_is_still_referenced(
    client, db, enforced_foreign_keys, fake_storage, admin_headers,
    other_citizen, other_headers, citizen_headers, create_complaint
):
    avatar = client.post(
        "/api/users/me/profile-image",
        files={"image": ("me.png", b"png-bytes", "image/png")},
        headers=other_headers
    ).json()["data"]["profile_image_url"]
    complaint = create_complaint(citizen_headers)
    log = client.post(
        "/api/complaint-logs",
        json={"complaint_id": complaint["complaint_id"], "action_type": "comment", "description": "Seen it too"},
        headers=other_headers
    )
    assert log.status_code == 201

    response = client.delete(f"/api/users/{other_citizen.user_id}/hard", headers=admin_headers)

    assert response.status_code == 409
    assert fake_storage["destroyed"] == []
    db.expire_all()
    user = db.query(User).filter(User.user_id == other_citizen.user_id).first()
    assert user is not None
    assert user.profile_image == avatar


def test_profile_image_upload_replaces_previous(client, citizen_headers, fake_storage):
    first = client.post(
        "/api/users/me/profile-image",
        files={"image": ("me.png", b"png-bytes", "image/png")},
        headers=citizen_headers
    )
    assert first.status_code == 200
    first_url = first.json()["data"]["profile_image_url"]
    assert first_url.startswith("https://res.cloudinary.com/")

    second = client.post(
        "/api/users/me/profile-image",
        files={"image": ("me2.jpg", b"jpg-bytes", "image/jpeg")},
        headers=citizen_headers
    )
    assert second.status_code == 200
    assert second.json()["data"]["profile_image_url"] != first_url
    assert fake_storage["destroyed"] == [fake_storage["uploaded"][0]]


def test_profile_image_rejects_pdf(client, citizen_headers):
    response = client.post(
        "/api/users/me/profile-image",
        files={"image": ("cv.pdf", b"%PDF", "application/pdf")},
        headers=citizen_headers
    )
    assert response.status_code == 400


def test_legacy_profile_filename_renders_as_url(client, db, citizen):
    citizen.profile_image = "avatar.png"
    db.commit()

    data = client.get("/api/auth/me", headers=auth_headers(citizen)).json()["data"]

    assert data["profile_image_url"].endswith("/uploads/profiles/avatar.png")


def test_bootstrap_admin_seeded_once(db, monkeypatch):
    from config import settings
    from services.user_service import UserService

    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_NATIONAL_ID", "ROOT-1")
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", "rootpass")

    seeded = UserService(db).seed_bootstrap_admin()
    assert seeded is not None and seeded.role == UserRole.admin
    assert UserService(db).seed_bootstrap_admin() is None
