"""
Tests for the calibration API routes.

Tests cover:
- Listing, creating and deleting calibrations
- Per-user scoping through the X-User-Id header
- Error response format
- Sync against the running app through the HTTP client
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from rowbike_converter.api.app import create_app
from rowbike_converter.config import get_settings
from rowbike_converter.schemas import CalibrationPayload
from rowbike_converter.sync.connectivity import ConnectivityMonitor
from rowbike_converter.sync.reconciler import SyncReconciler
from rowbike_converter.sync.remote import USER_ID_HEADER, RemoteCalibrationClient


# ============================================================================
# Test Client Setup
# ============================================================================

@pytest.fixture
def app(tmp_path, monkeypatch):
    """App backed by a temporary SQLite database."""
    monkeypatch.setenv("ROWBIKE_DATABASE_PATH", str(tmp_path / "server.db"))
    monkeypatch.setenv("ROWBIKE_STORAGE_BACKEND", "sqlite")
    get_settings.cache_clear()
    yield create_app()
    get_settings.cache_clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def headers():
    return {USER_ID_HEADER: "user-1"}


@pytest.fixture
def payload(make_profile):
    return CalibrationPayload.from_profile(make_profile(created_at=1_700_000_000_000)).model_dump(mode="json")


# ============================================================================
# Tests
# ============================================================================

class TestRoot:
    def test_health(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestListCalibrations:
    def test_empty(self, client, headers):
        response = client.get("/api/calibrations", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"calibrations": []}

    def test_requires_user_header(self, client):
        response = client.get("/api/calibrations")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert USER_ID_HEADER in error["message"]


class TestCreateCalibration:
    """Tests for POST /api/calibrations."""

    def test_create_and_list(self, client, headers, payload):
        response = client.post("/api/calibrations", json=payload, headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True

        listed = client.get("/api/calibrations", headers=headers).json()["calibrations"]
        assert len(listed) == 1
        assert str(listed[0]["id"]) == body["calibrationId"]
        assert listed[0]["damper"] == 5
        assert len(listed[0]["samples"]) == 4

    def test_client_id_is_ignored(self, client, headers, payload):
        payload["id"] = 9999
        body = client.post("/api/calibrations", json=payload, headers=headers).json()
        assert body["calibrationId"] != "9999"

    def test_invalid_damper(self, client, headers, payload):
        payload["damper"] = 11
        response = client.post("/api/calibrations", json=payload, headers=headers)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(e["field"].endswith("damper") for e in error["details"]["errors"])

    def test_missing_coefficients(self, client, headers):
        response = client.post("/api/calibrations", json={"damper": 5}, headers=headers)
        assert response.status_code == 422


class TestDeleteCalibration:
    def test_delete(self, client, headers, payload):
        calibration_id = client.post("/api/calibrations", json=payload, headers=headers).json()["calibrationId"]

        response = client.delete(f"/api/calibrations/{calibration_id}", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get("/api/calibrations", headers=headers).json()["calibrations"] == []

    def test_delete_missing(self, client, headers):
        response = client.delete("/api/calibrations/404", headers=headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CALIBRATION_NOT_FOUND"


class TestUserScoping:
    def test_users_do_not_see_each_other(self, client, headers, payload):
        calibration_id = client.post("/api/calibrations", json=payload, headers=headers).json()["calibrationId"]
        other = {USER_ID_HEADER: "user-2"}

        assert client.get("/api/calibrations", headers=other).json()["calibrations"] == []
        assert client.delete(f"/api/calibrations/{calibration_id}", headers=other).status_code == 404


class TestSyncAgainstApp:
    """The sync client and reconciler talking to the real routes."""

    @pytest.mark.asyncio
    async def test_round_trip_sync(self, app, store, make_profile):
        store.save(make_profile())
        remote = RemoteCalibrationClient(
            "http://testserver",
            user_id=store.user_id,
            transport=httpx.ASGITransport(app=app),
        )
        reconciler = SyncReconciler(store, remote, ConnectivityMonitor())

        try:
            first = await reconciler.sync_calibrations()
            second = await reconciler.sync_calibrations()
            remote_profiles = await remote.list_calibrations()
        finally:
            await remote.close()

        assert (first.uploaded, first.downloaded, first.errors) == (1, 0, [])
        assert (second.uploaded, second.downloaded) == (0, 0)
        assert len(remote_profiles) == 1
