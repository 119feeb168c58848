"""
Session manager: handshake with the vehicle and own the resulting Signer.

Two states, NoSession (``signer is None``) and Established. At most one
session is held; asking for another domain replaces it with a new handshake.
Concurrent callers share a single in-flight handshake.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Callable, Optional

from cryptography.hazmat.primitives.asymmetric import ec

from fleet_command.errors import (
    MalformedEnvelope,
    ProtocolViolation,
    SessionInvalid,
    SessionUnavailable,
)
from fleet_command.keys import public_key_bytes
from fleet_command.models.enums import OperationStatus, SessionInfoStatus, fault_name
from fleet_command.models.envelope import Destination, RoutableMessage, SessionInfoRequest
from fleet_command.signer import Signer
from fleet_command.transport.envelope import decode_envelope, decode_session_info, encode_envelope
from fleet_command.transport.http import CommandTransport

logger = logging.getLogger(__name__)

UUID_SIZE = 16
ADDRESS_SIZE = 16


def new_request(domain: int, **fields) -> RoutableMessage:
    """Request envelope with a fresh uuid and a fresh ephemeral reply address."""
    return RoutableMessage(
        to_destination=Destination(domain=domain),
        from_destination=Destination(routing_address=os.urandom(ADDRESS_SIZE)),
        uuid=os.urandom(UUID_SIZE),
        **fields,
    )


def check_response(request: RoutableMessage, response: RoutableMessage) -> None:
    """Enforce that ``response`` answers ``request``: same domain, our address, our uuid."""
    if response.from_destination is None:
        raise MalformedEnvelope("Missing response source")
    if response.to_destination is None:
        raise MalformedEnvelope("Missing response destination")
    if response.request_uuid is None:
        raise MalformedEnvelope("Missing request UUID")
    if response.from_destination.domain != request.to_destination.domain:  # type: ignore[union-attr]
        raise ProtocolViolation("Invalid source domain", {"domain": response.from_destination.domain})
    if response.to_destination.routing_address != request.from_destination.routing_address:  # type: ignore[union-attr]
        raise ProtocolViolation("Invalid destination address")
    if response.request_uuid != request.uuid:
        raise ProtocolViolation("Response does not echo request UUID")


async def exchange(transport: CommandTransport, vin: str, request: RoutableMessage) -> RoutableMessage:
    """Send one envelope, decode the reply and check it answers the request."""
    logger.debug("Request %s", request)
    raw = await transport.signed_command(vin, encode_envelope(request))
    response = decode_envelope(raw)
    logger.debug("Response %s", response)
    check_response(request, response)
    return response


class SessionManager:
    def __init__(
        self,
        transport: CommandTransport,
        vin: str,
        private_key: ec.EllipticCurvePrivateKey,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._transport = transport
        self._vin = vin
        self._private_key = private_key
        self._clock = clock
        self._signer: Optional[Signer] = None
        self._domain: Optional[int] = None
        self._pending: Optional[asyncio.Task] = None
        self._pending_domain: Optional[int] = None

    @property
    def signer(self) -> Optional[Signer]:
        return self._signer

    @property
    def domain(self) -> Optional[int]:
        return self._domain

    @property
    def established(self) -> bool:
        return self._signer is not None

    def invalidate(self, signer: Optional[Signer] = None) -> None:
        """Drop the session. Given ``signer``, only if it is still the current one."""
        if signer is not None and self._signer is not signer:
            return
        if self._signer is not None:
            logger.info("Session for domain %s invalidated", self._domain)
        self._signer = None
        self._domain = None

    async def ensure(self, domain: int) -> Signer:
        """Return a Signer for ``domain``, handshaking first if needed."""
        while self._pending is not None and self._pending_domain != domain:
            # another domain is handshaking; the session may have changed once it ends
            await asyncio.wait([self._pending])
        if self._signer is not None and self._domain == domain:
            return self._signer
        if self._pending is None:
            self._pending = asyncio.ensure_future(self.start_session(domain))
            self._pending_domain = domain
            self._pending.add_done_callback(self._clear_pending)
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None
            self._pending_domain = None

    async def start_session(self, domain: int) -> Signer:
        """Handshake with ``domain``. NoSession on any failure past the transport."""
        logger.info("Starting session with domain %d", domain)
        request = new_request(
            domain,
            session_info_request=SessionInfoRequest(public_key=public_key_bytes(self._private_key)),
        )
        response = await exchange(self._transport, self._vin, request)
        self.invalidate()

        status = response.signed_message_status
        if status is not None and (status.operation_status or OperationStatus.OK) != OperationStatus.OK:
            fault = status.signed_message_fault or 0
            raise SessionUnavailable(
                f"Handshake rejected: {fault_name(fault)}", {"fault": fault},
            )
        signer = self._verified_signer(request, response)
        if signer.session_info.status != SessionInfoStatus.OK:
            raise SessionUnavailable(
                "Key is not on the vehicle whitelist", {"status": signer.session_info.status},
            )
        self._signer = signer
        self._domain = domain
        logger.info("Session established with domain %d (counter=%d)", domain, signer.counter)
        return signer

    def resync(self, signer: Signer, request: RoutableMessage, response: RoutableMessage) -> bool:
        """Adopt session info piggybacked on a response to ``request``.

        ``signer`` is the one that signed ``request``; a session replaced since
        then is left alone. Returns True when the response carried a session
        info with a valid tag.
        """
        if response.session_info is None or self._signer is not signer:
            return False
        try:
            fresh = self._verified_signer(request, response)
        except (MalformedEnvelope, SessionInvalid) as e:
            logger.warning("Ignoring session info on response: %s", e)
            return False
        self._signer = fresh
        logger.info("Session resynchronized (counter=%d)", fresh.counter)
        return True

    def _verified_signer(self, request: RoutableMessage, response: RoutableMessage) -> Signer:
        tag = None
        if response.signature_data is not None and response.signature_data.session_info_tag is not None:
            tag = response.signature_data.session_info_tag.tag
        if response.session_info is None:
            raise MalformedEnvelope("Missing session info")
        if tag is None:
            raise MalformedEnvelope("Missing sessionInfo tag")
        session_info = decode_session_info(response.session_info)
        try:
            signer = Signer(self._private_key, self._vin, session_info, clock=self._clock)
        except ValueError as e:
            raise SessionInvalid(f"Vehicle session key rejected: {e}")
        if not signer.validate_session_info(response.session_info, request.uuid, tag):  # type: ignore[arg-type]
            raise SessionInvalid("Session info hmac invalid")
        return signer
