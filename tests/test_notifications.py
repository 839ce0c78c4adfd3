from conftest import make_user, auth_headers
from utils.cache import notification_cache_key


def _manual(client, headers, user_id, complaint_id, **extra):
    body = {"user_id": user_id, "complaint_id": complaint_id, "type": "new_comment", "message": "Hello"}
    body.update(extra)
    return client.post("/api/notifications", json=body, headers=headers)


def test_admin_creates_notification(client, citizen, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)

    response = _manual(client, admin_headers, citizen.user_id, complaint["complaint_id"], note="Please check")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["type"] == "new_comment"
    assert data["old_status"] == "pending" and data["new_status"] == "pending"
    assert data["complaint_code"] == complaint["complaint_code"]


def test_citizen_cannot_create_notification(client, citizen, citizen_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    assert _manual(client, citizen_headers, citizen.user_id, complaint["complaint_id"]).status_code == 403


def test_create_validates_references(client, citizen, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)

    assert _manual(client, admin_headers, 999, complaint["complaint_id"]).status_code == 404
    assert _manual(client, admin_headers, citizen.user_id, 999).status_code == 404
    assert _manual(
        client, admin_headers, citizen.user_id, complaint["complaint_id"], assigned_to=999
    ).status_code == 404


def test_citizen_sees_only_own_notifications(
    client, citizen, other_citizen, citizen_headers, other_headers, create_complaint
):
    create_complaint(citizen_headers)
    create_complaint(other_headers)

    body = client.get(
        "/api/notifications", params={"user_id": other_citizen.user_id}, headers=citizen_headers
    ).json()

    assert body["pagination"]["total"] == 1
    assert body["items"][0]["user_id"] == citizen.user_id


def test_citizen_recipient_on_foreign_complaint_is_hidden(
    client, citizen, citizen_headers, other_headers, admin_headers, create_complaint
):
    foreign = create_complaint(other_headers)
    created = _manual(client, admin_headers, citizen.user_id, foreign["complaint_id"]).json()["data"]

    assert client.get(f"/api/notifications/{created['notification_id']}", headers=citizen_headers).status_code == 403
    ids = [n["notification_id"] for n in client.get("/api/notifications", headers=citizen_headers).json()["items"]]
    assert created["notification_id"] not in ids


def test_my_notifications_filters_by_type(client, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    client.patch(f"/api/complaints/{complaint['complaint_id']}/status", json={"status": "closed"}, headers=admin_headers)

    everything = client.get("/api/notifications/my-notifications", headers=citizen_headers).json()
    updates = client.get(
        "/api/notifications/my-notifications", params={"type": "status_update"}, headers=citizen_headers
    ).json()

    assert everything["pagination"]["total"] == 2
    assert updates["pagination"]["total"] == 1
    assert updates["items"][0]["new_status"] == "closed"


def test_recent_returns_newest_first(client, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    client.patch(f"/api/complaints/{complaint['complaint_id']}/status", json={"status": "in_progress"}, headers=admin_headers)

    recent = client.get("/api/notifications/recent", params={"limit": 1}, headers=citizen_headers).json()["data"]

    assert len(recent) == 1
    assert recent[0]["type"] == "status_update"


def test_by_complaint_and_by_assignee(client, admin, citizen_headers, other_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    client.patch(
        f"/api/complaints/{complaint['complaint_id']}/assign", json={"assigned_to": admin.user_id}, headers=admin_headers
    )

    by_complaint = client.get(f"/api/notifications/complaint/{complaint['complaint_id']}", headers=citizen_headers)
    assert len(by_complaint.json()["data"]) == 2
    assert client.get(
        f"/api/notifications/complaint/{complaint['complaint_id']}", headers=other_headers
    ).status_code == 403

    assigned = client.get(f"/api/notifications/assigned/{admin.user_id}", headers=admin_headers).json()
    assert assigned["pagination"]["total"] == 1
    assert assigned["items"][0]["assignee_name"] == "Ada Admin"
    assert client.get(f"/api/notifications/assigned/{admin.user_id}", headers=citizen_headers).status_code == 403


def test_update_is_admin_only(client, citizen, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    notification = _manual(client, admin_headers, citizen.user_id, complaint["complaint_id"]).json()["data"]
    url = f"/api/notifications/{notification['notification_id']}"

    assert client.patch(url, json={"message": "Edited"}, headers=citizen_headers).status_code == 403

    updated = client.patch(url, json={"message": "Edited", "type": "status_update"}, headers=admin_headers).json()["data"]
    assert updated["message"] == "Edited"
    assert updated["type"] == "status_update"


def test_update_ignores_nulls_on_required_fields(client, citizen, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    notification = _manual(client, admin_headers, citizen.user_id, complaint["complaint_id"]).json()["data"]
    url = f"/api/notifications/{notification['notification_id']}"

    response = client.patch(url, json={"message": None, "type": None}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["message"] == notification["message"]
    assert response.json()["data"]["type"] == notification["type"]
    assert client.patch(url, json={"message": "  "}, headers=admin_headers).status_code == 400


def test_recipient_deletes_own_notification(client, citizen_headers, other_headers, create_complaint):
    create_complaint(citizen_headers)
    notification_id = client.get("/api/notifications", headers=citizen_headers).json()["items"][0]["notification_id"]

    assert client.delete(f"/api/notifications/{notification_id}", headers=other_headers).status_code == 403
    assert client.delete(f"/api/notifications/{notification_id}", headers=citizen_headers).status_code == 200
    assert client.get(f"/api/notifications/{notification_id}", headers=citizen_headers).status_code == 404


def test_delete_by_complaint(client, citizen_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    url = f"/api/notifications/complaint/{complaint['complaint_id']}"

    assert client.delete(url, headers=citizen_headers).status_code == 403
    assert client.delete(url, headers=admin_headers).json()["data"]["deleted_count"] == 1


def test_statistics(client, citizen_headers, other_headers, admin_headers, create_complaint):
    complaint = create_complaint(citizen_headers)
    create_complaint(other_headers)
    client.patch(f"/api/complaints/{complaint['complaint_id']}/status", json={"status": "resolved"}, headers=admin_headers)

    mine = client.get("/api/notifications/statistics", headers=citizen_headers).json()["data"]
    everything = client.get("/api/notifications/statistics", headers=admin_headers).json()["data"]

    assert mine == {
        "total_notifications": 2,
        "by_type": {"new_comment": 1, "status_update": 1},
        "by_status": {"pending": 1, "resolved": 1},
    }
    assert everything["total_notifications"] == 3


def test_cache_keys_are_per_user():
    assert notification_cache_key(7, "recent", 10) == "notifications:user:7:recent:10"


def test_notifications_work_for_a_fresh_user_without_cache(client, db):
    user = make_user(db, "CIT-NEW")

    body = client.get("/api/notifications/recent", headers=auth_headers(user)).json()

    assert body["success"] is True
    assert body["data"] == []
