"""Command engine and client flows against the simulated vehicle."""

import asyncio

import pytest
from pydantic import ValidationError

from conftest import VIN
from fleet_command import AsyncVehicleClient, VehicleClient
from fleet_command.engine import CommandEngine, interpret_action_status
from fleet_command.errors import ActionRejected, ProtocolFault, ProtocolViolation
from fleet_command.models.action import ActionStatus, ChargingSetLimit
from fleet_command.models.enums import Domain, MessageFault
from fleet_command.sessions import SessionManager


@pytest.fixture
def client(vehicle, private_key) -> AsyncVehicleClient:
    return AsyncVehicleClient(VIN, private_key, transport=vehicle)


def counters(vehicle) -> list:
    return [
        r.signature_data.HMAC_Personalized_data.counter
        for r in vehicle.requests
        if r.HasField("protobuf_message_as_bytes")
    ]


class TestInterpretActionStatus:
    def test_ok(self):
        interpret_action_status(ActionStatus(result=0))

    def test_already_set_is_success(self):
        interpret_action_status(ActionStatus(result=1, reason="already_set"))

    def test_other_reason(self):
        with pytest.raises(ActionRejected) as exc:
            interpret_action_status(ActionStatus(result=1, reason="cable_not_connected"))
        assert exc.value.reason == "cable_not_connected"

    def test_missing_reason(self):
        with pytest.raises(ActionRejected) as exc:
            interpret_action_status(ActionStatus(result=1))
        assert exc.value.reason == "unknown"

    def test_unrecognized_result(self):
        with pytest.raises(ProtocolViolation):
            interpret_action_status(ActionStatus(result=4))


class TestRequestAction:
    @pytest.mark.asyncio
    async def test_set_limit_without_session(self, client, vehicle):
        await client.charging_set_limit(80)
        assert vehicle.handshakes == 1
        assert len(vehicle.commands) == 1
        domain, action = vehicle.commands[0]
        assert domain == Domain.INFOTAINMENT
        assert action.vehicleAction.chargingSetLimitAction.percent == 80
        assert client.session_established

    @pytest.mark.asyncio
    async def test_reuses_session(self, client, vehicle):
        await client.charging_set_limit(80)
        await client.set_charging_amps(16)
        assert vehicle.handshakes == 1
        assert counters(vehicle) == [8, 9]

    @pytest.mark.asyncio
    async def test_start_stop_routes_to_security(self, client, vehicle):
        await client.charging_start_stop("start")
        await client.charging_start_stop("stop")
        domains = [d for d, _ in vehicle.commands]
        assert domains == [Domain.VEHICLE_SECURITY, Domain.VEHICLE_SECURITY]
        first, second = (a.vehicleAction.chargingStartStopAction for _, a in vehicle.commands)
        assert first.WhichOneof("charging_action") == "start"
        assert second.WhichOneof("charging_action") == "stop"

    @pytest.mark.asyncio
    async def test_domain_switch_rehandshakes(self, client, vehicle):
        await client.charging_set_limit(80)
        await client.charging_start_stop("start")
        await client.set_charging_amps(32)
        assert vehicle.handshakes == 3
        assert [d for d, _ in vehicle.commands] == [3, 2, 3]

    @pytest.mark.asyncio
    async def test_already_set(self, client, vehicle):
        vehicle.result = 1
        vehicle.reason = "already_set"
        await client.charging_set_limit(80)

    @pytest.mark.asyncio
    async def test_rejected(self, client, vehicle):
        vehicle.result = 1
        vehicle.reason = "not_charging"
        with pytest.raises(ActionRejected, match="not_charging"):
            await client.charging_start_stop("stop")
        assert client.session_established

    @pytest.mark.asyncio
    async def test_rejected_with_undecodable_reason(self, client, vehicle):
        # result=ERROR, result_reason carries an unknown field
        vehicle.action_response = b"\x0a\x07\x08\x01\x12\x03\x12\x01\x78"
        with pytest.raises(ActionRejected) as exc:
            await client.set_charging_amps(16)
        assert exc.value.reason == "unknown"

    @pytest.mark.asyncio
    async def test_missing_action_status(self, client, vehicle):
        vehicle.action_response = b""
        with pytest.raises(ProtocolViolation, match="action status"):
            await client.charging_set_limit(80)

    @pytest.mark.asyncio
    async def test_unrecognized_result_code(self, client, vehicle):
        vehicle.action_response = b"\x0a\x02\x08\x05"
        with pytest.raises(ProtocolViolation):
            await client.charging_set_limit(80)

    @pytest.mark.asyncio
    async def test_missing_payload(self, client, vehicle):
        vehicle.mutate = lambda resp: resp.ClearField("protobuf_message_as_bytes")
        with pytest.raises(ProtocolViolation, match="payload"):
            await client.charging_set_limit(80)

    @pytest.mark.asyncio
    async def test_invalid_parameters_send_nothing(self, client, vehicle):
        with pytest.raises(ValidationError):
            await client.charging_set_limit(101)
        with pytest.raises(ValidationError):
            await client.charging_start_stop("pause")
        with pytest.raises(ValidationError):
            await client.set_charging_amps(-5)
        assert vehicle.requests == []


class TestSignedMessageFaults:
    @pytest.mark.asyncio
    async def test_expired_invalidates_session(self, client, vehicle):
        await client.start_session(Domain.VEHICLE_SECURITY)
        vehicle.next_fault = MessageFault.ERROR_TIME_EXPIRED
        with pytest.raises(ProtocolFault) as exc:
            await client.charging_start_stop("start")
        assert exc.value.fault == MessageFault.ERROR_TIME_EXPIRED
        assert not client.session_established

        await client.charging_start_stop("start")
        assert vehicle.handshakes == 2
        assert len(vehicle.commands) == 1

    @pytest.mark.asyncio
    async def test_busy_keeps_session(self, client, vehicle):
        await client.charging_set_limit(80)
        vehicle.next_fault = MessageFault.ERROR_BUSY
        with pytest.raises(ProtocolFault):
            await client.charging_set_limit(70)
        assert client.session_established

        await client.charging_set_limit(70)
        assert vehicle.handshakes == 1
        assert counters(vehicle) == [8, 9, 10]

    @pytest.mark.asyncio
    async def test_repeated_counter(self, client, vehicle):
        await client.start_session(Domain.INFOTAINMENT)
        vehicle.counter = 50
        with pytest.raises(ProtocolFault) as exc:
            await client.charging_set_limit(80)
        assert exc.value.fault == MessageFault.ERROR_REPEATED_COUNTER
        assert not client.session_established

    @pytest.mark.asyncio
    async def test_resync_from_fault_response(self, client, vehicle):
        await client.charging_set_limit(80)
        vehicle.next_fault = MessageFault.ERROR_INCORRECT_EPOCH
        vehicle.resync_on_fault = True
        with pytest.raises(ProtocolFault):
            await client.charging_set_limit(70)
        assert client.session_established
        assert client.sessions.signer.counter == vehicle.counter

        vehicle.resync_on_fault = False
        await client.charging_set_limit(70)
        assert vehicle.handshakes == 1
        assert counters(vehicle)[-1] == vehicle.counter

    @pytest.mark.asyncio
    async def test_tampered_resync_is_ignored(self, client, vehicle):
        await client.charging_set_limit(80)
        vehicle.next_fault = MessageFault.ERROR_INCORRECT_EPOCH
        vehicle.resync_on_fault = True
        vehicle.tamper_session_info = True
        with pytest.raises(ProtocolFault):
            await client.charging_set_limit(70)
        assert not client.session_established


class TestEngine:
    @pytest.mark.asyncio
    async def test_explicit_domain_override(self, vehicle, private_key, clock):
        sessions = SessionManager(vehicle, VIN, private_key, clock=clock)
        engine = CommandEngine(vehicle, VIN, sessions)
        await engine.request_action(ChargingSetLimit(percent=50), domain=Domain.VEHICLE_SECURITY)
        assert vehicle.commands[0][0] == Domain.VEHICLE_SECURITY
        assert sessions.domain == Domain.VEHICLE_SECURITY

    @pytest.mark.asyncio
    async def test_expiry_window(self, vehicle, private_key, clock):
        sessions = SessionManager(vehicle, VIN, private_key, clock=clock)
        engine = CommandEngine(vehicle, VIN, sessions, expires_in=30)
        await engine.request_action(ChargingSetLimit(percent=50))
        data = vehicle.requests[-1].signature_data.HMAC_Personalized_data
        assert data.expires_at == vehicle.clock_time + 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resync", [True, False])
    async def test_fault_leaves_newer_session_alone(self, vehicle, private_key, clock, resync):
        sessions = SessionManager(vehicle, VIN, private_key, clock=clock)
        engine = CommandEngine(vehicle, VIN, sessions)
        await sessions.ensure(Domain.INFOTAINMENT)
        vehicle.command_delay = 0.02
        vehicle.next_fault = MessageFault.ERROR_INCORRECT_EPOCH
        vehicle.resync_on_fault = resync

        fault, security = await asyncio.gather(
            engine.request_action(ChargingSetLimit(percent=80)),
            sessions.ensure(Domain.VEHICLE_SECURITY),
            return_exceptions=True,
        )
        assert isinstance(fault, ProtocolFault)
        assert sessions.domain == Domain.VEHICLE_SECURITY
        assert sessions.signer is security


class TestClients:
    def test_requires_token_or_transport(self, private_key):
        with pytest.raises(ValueError):
            AsyncVehicleClient(VIN, private_key)

    def test_sync_client(self, vehicle, private_key):
        client = VehicleClient(VIN, private_key, transport=vehicle)
        try:
            client.charging_set_limit(80)
            client.set_charging_amps(16)
            assert client.session_established
        finally:
            client.close()
        assert vehicle.handshakes == 1
        assert len(vehicle.commands) == 2
