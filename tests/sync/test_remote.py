"""
Tests for the remote calibration HTTP client.

Requests are served by httpx.MockTransport so no network is needed.
"""

import json

import httpx
import pytest

from rowbike_converter.exceptions import RemoteRequestFailure
from rowbike_converter.models import Modality
from rowbike_converter.schemas import CalibrationPayload
from rowbike_converter.sync.remote import USER_ID_HEADER, RemoteCalibrationClient


def _client(handler, user_id="user-1"):
    return RemoteCalibrationClient(
        "https://sync.example.com/",
        user_id=user_id,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def remote_payload(make_profile):
    profile = make_profile(id="5f0c", created_at=1_700_000_000_000)
    return CalibrationPayload.from_profile(profile).model_dump(mode="json")


class TestListCalibrations:
    """Tests for GET /api/calibrations."""

    @pytest.mark.asyncio
    async def test_parses_profiles(self, remote_payload):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["user"] = request.headers.get(USER_ID_HEADER)
            return httpx.Response(200, json={"calibrations": [remote_payload]})

        async with _client(handler) as remote:
            profiles = await remote.list_calibrations()

        assert seen == {"path": "/api/calibrations", "user": "user-1"}
        assert len(profiles) == 1
        assert profiles[0].id == "5f0c"
        assert profiles[0].modality is Modality.BIKE
        assert [s.rpm for s in profiles[0].samples] == [70, 80, 90, 100]

    @pytest.mark.asyncio
    async def test_empty_list(self):
        async with _client(lambda request: httpx.Response(200, json={"calibrations": []})) as remote:
            assert await remote.list_calibrations() == []

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        body = {"calibrations": [{"damper": 20, "a": 1, "b": 2, "r2": 0.9}]}
        async with _client(lambda request: httpx.Response(200, json=body)) as remote:
            with pytest.raises(RemoteRequestFailure) as exc_info:
                await remote.list_calibrations()
        assert "errors" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as remote:
            with pytest.raises(RemoteRequestFailure):
                await remote.list_calibrations()

    @pytest.mark.asyncio
    async def test_error_status_uses_error_message(self):
        def handler(request):
            return httpx.Response(500, json={"error": {"code": "INTERNAL_ERROR", "message": "db down"}})

        async with _client(handler) as remote:
            with pytest.raises(RemoteRequestFailure) as exc_info:
                await remote.list_calibrations()

        assert exc_info.value.remote_status == 500
        assert "db down" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_error_status_with_text_body(self):
        async with _client(lambda request: httpx.Response(503, text="maintenance")) as remote:
            with pytest.raises(RemoteRequestFailure) as exc_info:
                await remote.list_calibrations()

        assert exc_info.value.remote_status == 503
        assert "maintenance" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as remote:
            with pytest.raises(RemoteRequestFailure) as exc_info:
                await remote.list_calibrations()

        assert exc_info.value.remote_status is None


class TestCreateCalibration:
    @pytest.mark.asyncio
    async def test_posts_payload_and_returns_id(self, make_profile):
        received = {}

        def handler(request):
            received["method"] = request.method
            received["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "calibrationId": "abc-123"})

        async with _client(handler) as remote:
            calibration_id = await remote.create_calibration(make_profile())

        assert calibration_id == "abc-123"
        assert received["method"] == "POST"
        assert received["body"]["damper"] == 5
        assert len(received["body"]["samples"]) == 4

    @pytest.mark.asyncio
    async def test_rejected_upload(self, make_profile):
        body = {"success": False, "calibrationId": "x"}
        async with _client(lambda request: httpx.Response(200, json=body)) as remote:
            with pytest.raises(RemoteRequestFailure):
                await remote.create_calibration(make_profile())

    @pytest.mark.asyncio
    async def test_missing_id(self, make_profile):
        async with _client(lambda request: httpx.Response(200, json={"success": True})) as remote:
            with pytest.raises(RemoteRequestFailure):
                await remote.create_calibration(make_profile())


class TestDeleteCalibration:
    @pytest.mark.asyncio
    async def test_delete(self):
        def handler(request):
            assert request.method == "DELETE"
            assert request.url.path == "/api/calibrations/abc"
            return httpx.Response(200, json={"success": True})

        async with _client(handler) as remote:
            assert await remote.delete_calibration("abc") is True

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        body = {"error": {"code": "CALIBRATION_NOT_FOUND", "message": "not found"}}
        async with _client(lambda request: httpx.Response(404, json=body)) as remote:
            assert await remote.delete_calibration("abc") is False


class TestClientLifecycle:
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        remote = _client(lambda request: httpx.Response(200, json={"calibrations": []}))
        await remote.list_calibrations()

        await remote.close()
        await remote.close()

        assert remote._http_client is None

    @pytest.mark.asyncio
    async def test_reopens_after_close(self):
        remote = _client(lambda request: httpx.Response(200, json={"calibrations": []}))
        await remote.close()
        assert await remote.list_calibrations() == []
        await remote.close()
