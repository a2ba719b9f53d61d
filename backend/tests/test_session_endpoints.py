"""Tests for the upload session API endpoints.

Each test installs a fresh InMemorySessionStore on a ManualClock (see
conftest.py), so expiry is simulated without sleeping.
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from app.main import app
from app.sessions.router import set_session_store, set_upload_limit


def _upload(client: TestClient, *parts):
    """POST /api/upload with ``(filename, content)`` parts."""
    return client.post(
        "/api/upload",
        files=[("files", (name, content, "application/octet-stream")) for name, content in parts],
    )


# ---------------------------------------------------------------------------
# POST /api/upload
# ---------------------------------------------------------------------------

class TestUpload:
    def test_returns_session_id(self, api_client, session_store):
        resp = _upload(api_client, ("a.txt", b"0123456789"))

        assert resp.status_code == 200
        session_id = resp.json()["sessionId"]
        assert session_id
        assert len(session_store) == 1
        assert session_store.get(session_id).found

    def test_keeps_upload_order_and_sizes(self, api_client, session_store):
        resp = _upload(api_client, ("a.txt", b"x" * 10), ("b.txt", b"y" * 20))
        session_id = resp.json()["sessionId"]

        files = session_store.get(session_id).metadata.files
        assert [(f.original_name, f.size) for f in files] == [("a.txt", 10), ("b.txt", 20)]

    def test_no_files_returns_400(self, api_client, session_store):
        resp = api_client.post("/api/upload")

        assert resp.status_code == 400
        assert resp.json() == {"error": "No files uploaded"}
        assert len(session_store) == 0

    def test_form_without_files_returns_400(self, api_client, session_store):
        resp = api_client.post("/api/upload", data={"comment": "hello"})

        assert resp.status_code == 400
        assert len(session_store) == 0

    def test_text_value_under_files_field_returns_400(self, api_client, session_store):
        resp = api_client.post("/api/upload", data={"files": "notafile"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "No files uploaded"}
        assert len(session_store) == 0

    def test_text_values_mixed_with_files_are_ignored(self, api_client, session_store):
        resp = api_client.post(
            "/api/upload",
            data={"files": "notafile"},
            files=[("files", ("a.txt", b"x" * 3, "text/plain"))],
        )
        session_id = resp.json()["sessionId"]

        files = session_store.get(session_id).metadata.files
        assert [(f.original_name, f.size) for f in files] == [("a.txt", 3)]

    def test_oversized_payload_returns_413(self, api_client, session_store):
        set_upload_limit(25)

        resp = _upload(api_client, ("a.txt", b"x" * 10), ("b.txt", b"y" * 20))

        assert resp.status_code == 413
        assert "error" in resp.json()
        assert len(session_store) == 0

    def test_oversized_part_is_not_read_in_full(self, api_client, session_store, monkeypatch):
        set_upload_limit(25)
        reads: list[int] = []
        original_read = UploadFile.read

        async def recording_read(self, size: int = -1) -> bytes:
            data = await original_read(self, size)
            reads.append(len(data))
            return data

        monkeypatch.setattr(UploadFile, "read", recording_read)

        resp = _upload(api_client, ("big.bin", b"x" * 5_000_000))

        assert resp.status_code == 413
        assert sum(reads) <= 26
        assert len(session_store) == 0

    def test_payload_at_limit_accepted(self, api_client, session_store):
        set_upload_limit(30)

        resp = _upload(api_client, ("a.txt", b"x" * 10), ("b.txt", b"y" * 20))

        assert resp.status_code == 200

    def test_empty_file_accepted(self, api_client, session_store):
        resp = _upload(api_client, ("empty.txt", b""))
        session_id = resp.json()["sessionId"]

        assert resp.status_code == 200
        assert session_store.get(session_id).metadata.files[0].size == 0

    def test_store_failure_returns_500(self, api_client, session_store):
        broken = MagicMock()
        broken.create.side_effect = RuntimeError("boom")
        set_session_store(broken)

        resp = _upload(api_client, ("a.txt", b"x"))

        assert resp.status_code == 500
        assert resp.json() == {"error": "Upload failed"}

    def test_returns_503_when_store_not_configured(self, api_client, session_store):
        set_session_store(None)

        resp = _upload(api_client, ("a.txt", b"x"))

        assert resp.status_code == 503

    def test_invalid_limit_rejected(self):
        with pytest.raises(ValueError):
            set_upload_limit(0)


# ---------------------------------------------------------------------------
# GET /api/session/{id}
# ---------------------------------------------------------------------------

class TestGetSession:
    def test_returns_files_and_expiry(self, api_client, session_store, clock):
        session_id = _upload(
            api_client, ("a.txt", b"x" * 10), ("b.txt", b"y" * 20)
        ).json()["sessionId"]

        resp = api_client.get(f"/api/session/{session_id}")

        assert resp.status_code == 200
        data = resp.json()
        assert data["files"] == [
            {"originalName": "a.txt", "size": 10},
            {"originalName": "b.txt", "size": 20},
        ]
        expires_at = datetime.fromisoformat(data["expiresAt"].replace("Z", "+00:00"))
        assert expires_at > clock.now()
        assert expires_at == clock.now() + timedelta(minutes=5)

    def test_content_never_returned(self, api_client, session_store):
        session_id = _upload(api_client, ("secret.txt", b"TOP-SECRET")).json()["sessionId"]

        resp = api_client.get(f"/api/session/{session_id}")

        assert "TOP-SECRET" not in resp.text

    def test_unknown_session_returns_404(self, api_client, session_store):
        resp = api_client.get("/api/session/does-not-exist")

        assert resp.status_code == 404
        assert resp.json() == {"error": "Session not found"}

    def test_expired_returns_410_then_404(self, api_client, session_store, clock):
        session_id = _upload(api_client, ("a.txt", b"x")).json()["sessionId"]
        clock.advance(minutes=5, seconds=1)

        first = api_client.get(f"/api/session/{session_id}")
        second = api_client.get(f"/api/session/{session_id}")

        assert first.status_code == 410
        assert first.json() == {"error": "Session expired"}
        assert second.status_code == 404

    def test_returns_503_when_store_not_configured(self, api_client, session_store):
        set_session_store(None)
        assert api_client.get("/api/session/abc").status_code == 503


# ---------------------------------------------------------------------------
# POST /api/session/{id}/complete
# ---------------------------------------------------------------------------

class TestCompleteSession:
    def test_complete_then_get_returns_404(self, api_client, session_store):
        session_id = _upload(api_client, ("a.txt", b"x" * 10)).json()["sessionId"]

        resp = api_client.post(f"/api/session/{session_id}/complete")

        assert resp.status_code == 200
        assert resp.json() == {"message": "Session completed"}
        assert api_client.get(f"/api/session/{session_id}").status_code == 404

    def test_second_complete_returns_404(self, api_client, session_store):
        session_id = _upload(api_client, ("a.txt", b"x")).json()["sessionId"]

        assert api_client.post(f"/api/session/{session_id}/complete").status_code == 200
        assert api_client.post(f"/api/session/{session_id}/complete").status_code == 404

    def test_expired_session_can_still_be_completed(self, api_client, session_store, clock):
        session_id = _upload(api_client, ("a.txt", b"x")).json()["sessionId"]
        clock.advance(minutes=30)

        resp = api_client.post(f"/api/session/{session_id}/complete")

        assert resp.status_code == 200
        assert len(session_store) == 0

    def test_unknown_session_returns_404(self, api_client, session_store):
        resp = api_client.post("/api/session/nope/complete")

        assert resp.status_code == 404
        assert resp.json() == {"error": "Session not found"}

    def test_returns_503_when_store_not_configured(self, api_client, session_store):
        set_session_store(None)
        assert api_client.post("/api/session/abc/complete").status_code == 503


# ---------------------------------------------------------------------------
# Health and lifespan
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health(self, api_client):
        resp = api_client.get("/api/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["timestamp"].endswith("Z")
        assert datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))

    def test_error_responses_documented(self, api_client):
        paths = api_client.get("/openapi.json").json()["paths"]

        get_responses = paths["/api/session/{session_id}"]["get"]["responses"]
        upload_responses = paths["/api/upload"]["post"]["responses"]
        assert {"404", "410", "503"} <= set(get_responses)
        assert {"400", "413", "500", "503"} <= set(upload_responses)
        schema_ref = get_responses["410"]["content"]["application/json"]["schema"]["$ref"]
        assert schema_ref.endswith("/ErrorResponse")


class TestLifespan:
    def test_lifespan_installs_store_and_limit(self, monkeypatch):
        from app.config import AppConfig, SessionSettings
        from app.sessions import router as sessions_router

        config = AppConfig(
            sessions=SessionSettings(ttl_seconds=60, max_payload_bytes=1024, sweep_interval_seconds=3600)
        )
        monkeypatch.setattr("app.main.get_config", lambda: config)
        original_limit = sessions_router.get_upload_limit()

        try:
            with TestClient(app) as client:
                store = sessions_router.get_session_store()
                assert store is not None
                assert store.ttl == timedelta(seconds=60)
                assert sessions_router.get_upload_limit() == 1024

                session_id = _upload(client, ("a.txt", b"x")).json()["sessionId"]
                assert client.get(f"/api/session/{session_id}").status_code == 200

            assert sessions_router.get_session_store() is None
        finally:
            set_upload_limit(original_limit)
