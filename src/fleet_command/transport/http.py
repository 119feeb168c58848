"""
Fleet API relay client: carries signed envelopes to the vehicle.
"""

import base64
import binascii
import logging
from typing import Any, Optional, Protocol

import httpx

from fleet_command.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://fleet-api.prd.na.vn.cloud.tesla.com"
DEFAULT_TIMEOUT = 30.0


class CommandTransport(Protocol):
    async def signed_command(self, vin: str, envelope: bytes) -> bytes:
        ...


class FleetApiClient:
    def __init__(
        self,
        access_token: str,
        client_id: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = access_token
        user_agent = "fleet-command/0.1.0"
        if client_id:
            user_agent += f" ({client_id})"
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api/1",
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self._token}"}

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.post(path, json=body, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {path} failed: {e}")
        if resp.status_code >= 400:
            raise TransportError(f"HTTP {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError:
            raise TransportError(f"Non-JSON response from {path}", status_code=resp.status_code)

    async def signed_command(self, vin: str, envelope: bytes) -> bytes:
        """POST a routable message to the vehicle and return the raw response envelope."""
        logger.debug("signed_command %s: %d bytes", vin, len(envelope))
        data = await self.post(
            f"/vehicles/{vin}/signed_command",
            {"routable_message": base64.b64encode(envelope).decode("ascii")},
        )
        encoded = data.get("response") if isinstance(data, dict) else None
        if not isinstance(encoded, str):
            raise TransportError("signed_command response carries no routable message")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransportError(f"signed_command response is not base64: {e}")

    async def close(self) -> None:
        await self._client.aclose()
