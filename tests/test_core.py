import cloudinary.api
import pytest

from models.complaint import Complaint
from services.lifecycle import ComplaintEvent, LifecycleHooks
from utils.cloudinary_manager import CloudinaryManager, build_image_urls
from utils.errors import BadRequestError
from utils.pagination import resolve_sort_column
from utils.responses import build_pagination


def test_sort_column_accepts_camel_and_snake_case():
    assert resolve_sort_column(Complaint, "createdAt") is Complaint.created_at
    assert resolve_sort_column(Complaint, "complaint_code") is Complaint.complaint_code
    with pytest.raises(BadRequestError):
        resolve_sort_column(Complaint, "ownerSecret")


def test_build_pagination_rounds_up():
    assert build_pagination(25, 2, 10) == {"total": 25, "page": 2, "limit": 10, "totalPages": 3}
    assert build_pagination(0, 1, 10)["totalPages"] == 0


def test_hooks_isolate_failing_handlers():
    hooks = LifecycleHooks()
    calls = []

    class FakeSession:
        rolled_back = 0

        def rollback(self):
            self.rolled_back += 1

    class FakeComplaint:
        complaint_code = "CMP-20260101-000001"

    @hooks.register(ComplaintEvent.created)
    def first(db, complaint, actor, **payload):
        raise ValueError("boom")

    def second(db, complaint, actor, **payload):
        calls.append(payload)

    hooks.register(ComplaintEvent.created, second)
    session = FakeSession()

    failures = hooks.emit(ComplaintEvent.created, session, FakeComplaint(), None, source="test")

    assert failures == 1
    assert session.rolled_back == 1
    assert calls == [{"source": "test"}]

    hooks.unregister(ComplaintEvent.created, first)
    assert hooks.handlers(ComplaintEvent.created) == [second]


def test_hooks_log_failures_after_rollback_expires_the_complaint():
    hooks = LifecycleHooks()

    class FakeSession:
        def __init__(self, complaint):
            self.complaint = complaint

        def rollback(self):
            self.complaint.expired = True

    class FakeComplaint:
        expired = False

        @property
        def complaint_code(self):
            if self.expired:
                raise RuntimeError("instance is expired")
            return "CMP-20260101-000002"

    @hooks.register(ComplaintEvent.status_changed)
    def first(db, complaint, actor, **payload):
        raise ValueError("boom")

    @hooks.register(ComplaintEvent.status_changed)
    def second(db, complaint, actor, **payload):
        raise ValueError("boom again")

    complaint = FakeComplaint()

    assert hooks.emit(ComplaintEvent.status_changed, FakeSession(complaint), complaint, None) == 2


def test_extract_public_id():
    image = "https://res.cloudinary.com/demo/image/upload/v12345/complaints-app/complaints/3/a.jpg"
    raw = "https://res.cloudinary.com/demo/raw/upload/v12345/complaints-app/complaints/3/b.pdf"

    assert CloudinaryManager.extract_public_id(image) == "complaints-app/complaints/3/a"
    assert CloudinaryManager.extract_public_id(raw) == "complaints-app/complaints/3/b.pdf"
    assert CloudinaryManager.extract_public_id("https://example.com/a.jpg") is None


def test_build_image_urls_handles_legacy_names():
    urls = build_image_urls(["https://res.cloudinary.com/demo/image/upload/v1/x/pic.png", "legacy.jpg"])

    assert urls[0] == {"file_name": "pic.png", "file_url": "https://res.cloudinary.com/demo/image/upload/v1/x/pic.png"}
    assert urls[1]["file_name"] == "legacy.jpg"
    assert urls[1]["file_url"].endswith("/uploads/complaints/legacy.jpg")


def test_root_and_health(client, monkeypatch):
    monkeypatch.setattr(cloudinary.api, "ping", lambda **kwargs: {"status": "ok"})
    assert client.get("/").json()["success"] is True

    health = client.get("/health").json()
    assert health["data"]["database"] == "ok"
    assert health["data"]["cache"] == "disabled"
    assert health["data"]["storage"] == "ok"


def test_health_reports_unreachable_storage(client, monkeypatch):
    def ping(**kwargs):
        raise ConnectionError("cloudinary unreachable")

    monkeypatch.setattr(cloudinary.api, "ping", ping)

    health = client.get("/health").json()

    assert health["success"] is True
    assert health["data"]["storage"] == "error"


def test_not_found_errors_use_the_standard_envelope(client, admin_headers):
    response = client.get("/api/complaints/12345", headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Complaint not found"}
