from conftest import PASSWORD, make_user

REGISTER_BODY = {
    "national_id": "1234567890",
    "password": "secret123",
    "full_name": "Sara Citizen",
    "phone": "+251911223344",
}


def test_register_returns_tokens_and_citizen_profile(client):
    response = client.post("/api/auth/register", json=REGISTER_BODY)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"] and data["refresh_token"]
    assert data["user"]["role"] == "citizen"
    assert "password_hash" not in data["user"]


def test_register_duplicate_national_id_conflicts(client):
    assert client.post("/api/auth/register", json=REGISTER_BODY).status_code == 201

    response = client.post("/api/auth/register", json=REGISTER_BODY)

    assert response.status_code == 409
    assert response.json()["success"] is False

    login = client.post("/api/auth/login", json={"national_id": "1234567890", "password": "secret123"})
    assert login.status_code == 200


def test_register_validation_errors_are_bad_request(client):
    body = dict(REGISTER_BODY, phone="not-a-phone", password="123")

    response = client.post("/api/auth/register", json=body)

    assert response.status_code == 400
    payload = response.json()
    assert payload["message"] == "Validation failed"
    fields = {e["field"] for e in payload["errors"]}
    assert {"phone", "password"} <= fields


def test_login_wrong_password_is_unauthorized(client, citizen):
    response = client.post("/api/auth/login", json={"national_id": "CIT-001", "password": "wrong-pass"})
    assert response.status_code == 401


def test_login_unknown_user_is_unauthorized(client):
    response = client.post("/api/auth/login", json={"national_id": "nobody", "password": PASSWORD})
    assert response.status_code == 401


def test_login_inactive_account_is_unauthorized(client, db):
    make_user(db, "CIT-OFF", is_active=False)

    response = client.post("/api/auth/login", json={"national_id": "CIT-OFF", "password": PASSWORD})

    assert response.status_code == 401


def test_refresh_issues_a_new_pair(client, citizen):
    tokens = client.post("/api/auth/login", json={"national_id": "CIT-001", "password": PASSWORD}).json()["data"]

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    assert response.json()["data"]["user"]["user_id"] == citizen.user_id


def test_access_token_is_not_accepted_as_refresh_token(client, citizen):
    tokens = client.post("/api/auth/login", json={"national_id": "CIT-001", "password": PASSWORD}).json()["data"]

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401


def test_refresh_token_is_not_accepted_as_bearer(client, citizen):
    tokens = client.post("/api/auth/login", json={"national_id": "CIT-001", "password": PASSWORD}).json()["data"]

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})

    assert response.status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401


def test_me_returns_current_user(client, citizen, citizen_headers):
    response = client.get("/api/auth/me", headers=citizen_headers)

    assert response.status_code == 200
    assert response.json()["data"]["national_id"] == "CIT-001"
