"""Shared fixtures: a simulated vehicle speaking the wire protocol."""

import asyncio
import hashlib
import hmac
import os
import struct
from typing import Callable, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from fleet_command.keys import generate_private_key
from fleet_command.models.session import SessionInfo
from fleet_command.transport.schema import ActionPb, ResponsePb, RoutableMessagePb, SessionInfoPb

VIN = "5YJ3E1EA7KF000001"


def tlv(*entries: tuple[int, bytes]) -> bytes:
    return b"".join(bytes([tag, len(value)]) + value for tag, value in entries) + b"\xff"


def point(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint,
    )


def encode_session_info(info: SessionInfo) -> bytes:
    return SessionInfoPb(
        counter=info.counter,
        publicKey=info.public_key,
        epoch=info.epoch,
        clock_time=info.clock_time,
        status=info.status,
        handle=info.handle,
    ).SerializeToString()


class FakeVehicle:
    """Answers handshakes and verifies command tags independently of the client code."""

    def __init__(self, vin: str = VIN):
        self.vin = vin
        self.key = ec.generate_private_key(ec.SECP256R1())
        self.epoch = os.urandom(16)
        self.counter = 7
        self.clock_time = 1000
        self.session_status = 0
        self.handshakes = 0
        self.commands: list = []  # (domain, Action message)
        self.requests: list = []  # every decoded RoutableMessage
        self.next_fault: Optional[int] = None
        self.handshake_fault: Optional[int] = None
        self.resync_on_fault = False
        self.tamper_session_info = False
        self.result = 0
        self.reason: Optional[str] = None
        self.action_response: Optional[bytes] = None  # raw CarServer.Response override
        self.mutate: Optional[Callable] = None  # edits the response before sending
        self.delay = 0.0
        self.command_delay = 0.0  # extra latency on signed commands only
        self.fail_with: Optional[Exception] = None

    def session_key(self, client_public: bytes) -> bytes:
        peer = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), client_public)
        return hashlib.sha1(self.key.exchange(ec.ECDH(), peer)).digest()[:16]

    def session_info_bytes(self) -> bytes:
        return encode_session_info(SessionInfo(
            counter=self.counter,
            public_key=point(self.key),
            epoch=self.epoch,
            clock_time=self.clock_time,
            status=self.session_status,
        ))

    def attach_session_info(self, resp, client_public: bytes, challenge: bytes) -> None:
        info = self.session_info_bytes()
        key = hmac.new(self.session_key(client_public), b"session info", hashlib.sha256).digest()
        tag = hmac.new(key, tlv((0, b"\x06"), (2, self.vin.encode()), (6, challenge)) + info,
                       hashlib.sha256).digest()
        if self.tamper_session_info:
            info = info[:-1] + bytes([info[-1] ^ 0x01])
        resp.session_info = info
        resp.signature_data.session_info_tag.tag = tag

    def command_tag_ok(self, req) -> bool:
        data = req.signature_data.HMAC_Personalized_data
        client_public = req.signature_data.signer_identity.public_key
        key = hmac.new(self.session_key(client_public), b"authenticated command", hashlib.sha256).digest()
        meta = tlv(
            (0, b"\x08"),
            (1, bytes([req.to_destination.domain])),
            (2, self.vin.encode()),
            (3, data.epoch),
            (4, struct.pack(">I", data.expires_at)),
            (5, struct.pack(">I", data.counter)),
        )
        expected = hmac.new(key, meta + req.protobuf_message_as_bytes, hashlib.sha256).digest()
        return hmac.compare_digest(expected, data.tag)

    def action_response_bytes(self) -> bytes:
        if self.action_response is not None:
            return self.action_response
        resp = ResponsePb()
        resp.actionStatus.result = self.result
        resp.actionStatus.SetInParent()
        if self.reason is not None:
            resp.actionStatus.result_reason.plain_text = self.reason
        return resp.SerializeToString()

    async def signed_command(self, vin: str, envelope: bytes) -> bytes:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        assert vin == self.vin
        req = RoutableMessagePb()
        req.ParseFromString(envelope)
        self.requests.append(req)

        resp = RoutableMessagePb()
        resp.from_destination.domain = req.to_destination.domain
        resp.to_destination.routing_address = req.from_destination.routing_address
        resp.request_uuid = req.uuid

        if req.HasField("session_info_request"):
            self.handshakes += 1
            if self.handshake_fault is not None:
                resp.signedMessageStatus.operation_status = 2
                resp.signedMessageStatus.signed_message_fault = self.handshake_fault
            else:
                self.attach_session_info(resp, req.session_info_request.public_key, req.uuid)
        else:
            if self.command_delay:
                await asyncio.sleep(self.command_delay)
            data = req.signature_data.HMAC_Personalized_data
            fault = self.next_fault
            self.next_fault = None
            if fault is None and not self.command_tag_ok(req):
                fault = 5  # INVALID_SIGNATURE
            if fault is None and data.counter <= self.counter:
                fault = 26  # REPEATED_COUNTER
            if fault is not None:
                resp.signedMessageStatus.operation_status = 2
                resp.signedMessageStatus.signed_message_fault = fault
                if self.resync_on_fault:
                    self.counter += 100
                    self.attach_session_info(resp, req.signature_data.signer_identity.public_key, req.uuid)
            else:
                self.counter = data.counter
                action = ActionPb()
                action.ParseFromString(req.protobuf_message_as_bytes)
                self.commands.append((req.to_destination.domain, action))
                resp.protobuf_message_as_bytes = self.action_response_bytes()

        if self.mutate is not None:
            self.mutate(resp)
        return resp.SerializeToString()


@pytest.fixture
def vehicle() -> FakeVehicle:
    return FakeVehicle()


@pytest.fixture
def private_key() -> ec.EllipticCurvePrivateKey:
    return generate_private_key()


class FakeClock:
    def __init__(self, now: float = 5000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
