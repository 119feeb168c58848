"""
Command engine: ensure session, sign, envelope, send, interpret.

The target domain travels with each call; the engine keeps no per-request
state between calls.
"""

import logging
from typing import Optional

from fleet_command.errors import ActionRejected, ProtocolFault, ProtocolViolation
from fleet_command.models.action import ActionStatus, VehicleAction
from fleet_command.models.enums import (
    SESSION_FAULTS,
    ActionResultCode,
    OperationStatus,
    fault_name,
)
from fleet_command.models.envelope import RoutableMessage
from fleet_command.sessions import SessionManager, exchange, new_request
from fleet_command.signer import Signer
from fleet_command.transport.actions import decode_action_status, encode_action
from fleet_command.transport.http import CommandTransport

logger = logging.getLogger(__name__)

EXPIRES_IN = 15  # seconds
ALREADY_SET = "already_set"


def interpret_action_status(status: ActionStatus) -> None:
    """Return normally for success; raise for a refused or unrecognized result."""
    if status.result == ActionResultCode.OK:
        return
    if status.result == ActionResultCode.ERROR:
        if status.reason_known and status.reason == ALREADY_SET:
            # value already in effect: not an error
            return
        raise ActionRejected(status.reason_text)
    raise ProtocolViolation("Invalid CarServer action result", {"result": status.result})


class CommandEngine:
    def __init__(
        self,
        transport: CommandTransport,
        vin: str,
        sessions: SessionManager,
        expires_in: int = EXPIRES_IN,
    ):
        self._transport = transport
        self._vin = vin
        self._sessions = sessions
        self._expires_in = expires_in

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    async def request_action(self, action: VehicleAction, domain: Optional[int] = None) -> None:
        """Run ``action`` on the vehicle. ``domain`` defaults to the action's own."""
        if domain is None:
            domain = action.domain
        payload = encode_action(action)
        signer = await self._sessions.ensure(domain)
        signature = signer.generate_signature(payload, domain, self._expires_in)
        request = new_request(
            domain,
            protobuf_message_as_bytes=payload,
            signature_data=signature,
        )
        response = await exchange(self._transport, self._vin, request)
        self._check_message_status(signer, request, response)

        if response.protobuf_message_as_bytes is None:
            raise ProtocolViolation("Response carries no action payload")
        status = decode_action_status(response.protobuf_message_as_bytes)
        if status is None:
            raise ProtocolViolation("Response carries no action status")
        interpret_action_status(status)

    def _check_message_status(
        self, signer: Signer, request: RoutableMessage, response: RoutableMessage,
    ) -> None:
        status = response.signed_message_status
        if status is None or (status.operation_status or OperationStatus.OK) == OperationStatus.OK:
            return
        fault = status.signed_message_fault or 0
        logger.warning("Vehicle rejected signed message: %s", fault_name(fault))
        if not self._sessions.resync(signer, request, response) and fault in SESSION_FAULTS:
            self._sessions.invalidate(signer)
        raise ProtocolFault(fault)
