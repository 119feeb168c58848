"""
AsyncVehicleClient / VehicleClient — main SDK clients.
"""

import asyncio
from typing import Any, Optional

from cryptography.hazmat.primitives.asymmetric import ec

from fleet_command.engine import EXPIRES_IN, CommandEngine
from fleet_command.models.action import ChargingSetLimit, ChargingStartStop, SetChargingAmps
from fleet_command.sessions import SessionManager
from fleet_command.signer import Signer
from fleet_command.transport.http import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, CommandTransport, FleetApiClient


class AsyncVehicleClient:
    """Async signed-command client for one vehicle (primary)."""

    def __init__(
        self,
        vin: str,
        private_key: ec.EllipticCurvePrivateKey,
        access_token: Optional[str] = None,
        client_id: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[CommandTransport] = None,
        expires_in: int = EXPIRES_IN,
    ):
        if transport is None:
            if not access_token:
                raise ValueError("access_token required when no transport is given")
            transport = FleetApiClient(access_token, client_id=client_id, base_url=base_url, timeout=timeout)
        self.vin = vin
        self.transport = transport
        self.sessions = SessionManager(transport, vin, private_key)
        self.engine = CommandEngine(transport, vin, self.sessions, expires_in=expires_in)

    @property
    def session_established(self) -> bool:
        return self.sessions.established

    async def start_session(self, domain: int) -> Signer:
        """Handshake explicitly; commands do this on demand."""
        return await self.sessions.start_session(domain)

    async def charging_set_limit(self, percent: int) -> None:
        await self.engine.request_action(ChargingSetLimit(percent=percent))

    async def charging_start_stop(self, action: str) -> None:
        await self.engine.request_action(ChargingStartStop(action=action))  # type: ignore[arg-type]

    async def set_charging_amps(self, amps: int) -> None:
        await self.engine.request_action(SetChargingAmps(amps=amps))

    async def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()


class VehicleClient:
    """Sync wrapper around AsyncVehicleClient. Runs the event loop internally."""

    def __init__(self, vin: str, private_key: ec.EllipticCurvePrivateKey, **kwargs: Any):
        self._loop = asyncio.new_event_loop()
        self._async = AsyncVehicleClient(vin, private_key, **kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def sessions(self) -> SessionManager:
        return self._async.sessions

    @property
    def session_established(self) -> bool:
        return self._async.session_established

    def start_session(self, domain: int) -> Signer:
        return self._run(self._async.start_session(domain))

    def charging_set_limit(self, percent: int) -> None:
        self._run(self._async.charging_set_limit(percent))

    def charging_start_stop(self, action: str) -> None:
        self._run(self._async.charging_start_stop(action))

    def set_charging_amps(self, amps: int) -> None:
        self._run(self._async.set_charging_amps(amps))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
