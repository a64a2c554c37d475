"""HTTP client for the remote calibration endpoint."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import RemoteRequestFailure
from ..models import CalibrationProfile, ProfileId
from ..schemas import (
    CalibrationListResponse,
    CalibrationPayload,
    CreateCalibrationResponse,
)

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


class RemoteCalibrationClient:
    """Async client for ``/api/calibrations``.

    Every response is validated before it reaches the caller; anything that
    does not match the expected shape raises RemoteRequestFailure.

    Usage:
        async with RemoteCalibrationClient("https://example.com", user_id="u1") as remote:
            profiles = await remote.list_calibrations()
    """

    def __init__(
        self,
        base_url: str,
        user_id: str = "default",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the server hosting the endpoint.
            user_id: Sent as the X-User-Id header on every request.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={USER_ID_HEADER: self.user_id},
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "RemoteCalibrationClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make a request and return the decoded JSON body.

        Raises:
            RemoteRequestFailure: Transport errors, non-2xx statuses and
                bodies that are not JSON.
        """
        client = await self._get_client()

        try:
            response = await client.request(method, endpoint, json=json_data)
        except httpx.HTTPError as e:
            raise RemoteRequestFailure(f"{method} {endpoint} failed: {e}") from e

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = None

            error_msg = response.text or f"HTTP {response.status_code}"
            if isinstance(error_data, dict):
                error = error_data.get("error", error_data)
                error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise RemoteRequestFailure(
                f"{method} {endpoint} returned {response.status_code}: {error_msg}",
                remote_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteRequestFailure(
                f"{method} {endpoint} returned a non-JSON body",
                remote_status=response.status_code,
            ) from e

    async def list_calibrations(self) -> List[CalibrationProfile]:
        """Fetch every calibration the remote store holds for this user."""
        data = await self._request("GET", "/api/calibrations")
        try:
            parsed = CalibrationListResponse.model_validate(data)
        except PydanticValidationError as e:
            raise RemoteRequestFailure(
                "Malformed calibration list from remote",
                details={"errors": str(e)},
            ) from e
        return [payload.to_profile() for payload in parsed.calibrations]

    async def create_calibration(self, profile: CalibrationProfile) -> str:
        """Upload a calibration.

        Returns:
            The id assigned by the remote store.
        """
        payload = CalibrationPayload.from_profile(profile)
        data = await self._request(
            "POST", "/api/calibrations", json_data=payload.model_dump(mode="json")
        )
        try:
            parsed = CreateCalibrationResponse.model_validate(data)
        except PydanticValidationError as e:
            raise RemoteRequestFailure(
                "Malformed create response from remote",
                details={"errors": str(e)},
            ) from e
        if not parsed.success:
            raise RemoteRequestFailure("Remote rejected calibration upload")

        logger.debug(f"Uploaded calibration as {parsed.calibration_id}")
        return parsed.calibration_id

    async def delete_calibration(self, calibration_id: ProfileId) -> bool:
        """Delete a remote calibration. False when it does not exist."""
        try:
            await self._request("DELETE", f"/api/calibrations/{calibration_id}")
        except RemoteRequestFailure as e:
            if e.remote_status == 404:
                return False
            raise
        return True
