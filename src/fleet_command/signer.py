"""
HMAC signing for the vehicle command protocol.

Session key:   K = SHA1(ECDH(client_private, vehicle_public).x)[:16]
Session info:  HMAC-SHA256(HMAC-SHA256(K, "session info"), metadata || 0xFF || session_info)
Commands:      HMAC-SHA256(HMAC-SHA256(K, "authenticated command"), metadata || 0xFF || payload)

Metadata is a TLV list (tag byte, length byte, value) hashed in strictly
increasing tag order. The 0xFF terminator is written bare, without a length.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import struct
import time
from typing import Callable, Optional

from cryptography.hazmat.primitives.asymmetric import ec

from fleet_command.errors import CounterReuse
from fleet_command.keys import public_key_bytes
from fleet_command.models.enums import SignatureType, Tag
from fleet_command.models.envelope import HmacPersonalizedData, KeyIdentity, SignatureData
from fleet_command.models.session import SessionInfo

logger = logging.getLogger(__name__)

_LABEL_AUTHENTICATED_COMMAND = b"authenticated command"
_LABEL_SESSION_INFO = b"session info"

SESSION_KEY_SIZE = 16


class MetadataHash:
    """Streams TLV metadata into an HMAC, enforcing tag order."""

    def __init__(self, key: bytes):
        self._mac = hmac.new(key, digestmod=hashlib.sha256)
        self._last_tag = -1

    def add(self, tag: Tag, value: bytes) -> None:
        if tag <= self._last_tag:
            raise ValueError(f"metadata tag {tag.name} out of order")
        if len(value) > 255:
            raise ValueError(f"metadata value for {tag.name} exceeds 255 bytes")
        self._last_tag = tag
        self._mac.update(bytes([tag, len(value)]))
        self._mac.update(value)

    def add_uint32(self, tag: Tag, value: int) -> None:
        self.add(tag, struct.pack(">I", value))

    def checksum(self, message: bytes) -> bytes:
        self._mac.update(bytes([Tag.END]))
        self._mac.update(message)
        return self._mac.digest()


def derive_session_key(private_key: ec.EllipticCurvePrivateKey, vehicle_public_key: bytes) -> bytes:
    """ECDH with the vehicle's session key. Raises ValueError for an invalid point."""
    peer = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), vehicle_public_key)
    shared = private_key.exchange(ec.ECDH(), peer)
    return hashlib.sha1(shared).digest()[:SESSION_KEY_SIZE]


def _subkey(session_key: bytes, label: bytes) -> bytes:
    return hmac.new(session_key, label, hashlib.sha256).digest()


def session_info_tag(session_key: bytes, vin: str, challenge: bytes, session_info: bytes) -> bytes:
    meta = MetadataHash(_subkey(session_key, _LABEL_SESSION_INFO))
    meta.add(Tag.SIGNATURE_TYPE, bytes([SignatureType.HMAC]))
    meta.add(Tag.PERSONALIZATION, vin.encode())
    meta.add(Tag.CHALLENGE, challenge)
    return meta.checksum(session_info)


def command_tag(
    session_key: bytes,
    vin: str,
    domain: int,
    epoch: bytes,
    expires_at: int,
    counter: int,
    payload: bytes,
    flags: int = 0,
) -> bytes:
    meta = MetadataHash(_subkey(session_key, _LABEL_AUTHENTICATED_COMMAND))
    meta.add(Tag.SIGNATURE_TYPE, bytes([SignatureType.HMAC_PERSONALIZED]))
    meta.add(Tag.DOMAIN, bytes([domain]))
    meta.add(Tag.PERSONALIZATION, vin.encode())
    meta.add(Tag.EPOCH, epoch)
    meta.add_uint32(Tag.EXPIRES_AT, expires_at)
    meta.add_uint32(Tag.COUNTER, counter)
    if flags:
        meta.add_uint32(Tag.FLAGS, flags)
    return meta.checksum(payload)


class Signer:
    """Signing state for one established session.

    The session key is derived once at construction and reused for every tag.
    ``clock`` returns monotonic seconds and is injectable for tests.
    """

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        vin: str,
        session_info: SessionInfo,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.vin = vin
        self.session_info = session_info
        self._public_key = public_key_bytes(private_key)
        self._session_key = derive_session_key(private_key, session_info.public_key)
        self._clock = clock
        self._time_zero = clock() - session_info.clock_time
        self._counter = session_info.counter

    @property
    def counter(self) -> int:
        """Last counter value used (or received from the vehicle)."""
        return self._counter

    def validate_session_info(self, raw_session_info: bytes, request_uuid: bytes, tag: bytes) -> bool:
        expected = session_info_tag(self._session_key, self.vin, request_uuid, raw_session_info)
        return hmac.compare_digest(expected, tag)

    def expires_at(self, expires_in: int) -> int:
        """Vehicle clock time ``expires_in`` seconds from now."""
        return int(self._clock() - self._time_zero) + expires_in

    def generate_signature(
        self,
        payload: bytes,
        domain: int,
        expires_in: int,
        counter: Optional[int] = None,
        flags: int = 0,
    ) -> SignatureData:
        if counter is None:
            counter = self._counter + 1
        elif counter <= self._counter:
            raise CounterReuse(counter, self._counter)
        self._counter = counter
        expires_at = self.expires_at(expires_in)
        tag = command_tag(
            self._session_key, self.vin, domain, self.session_info.epoch,
            expires_at, counter, payload, flags,
        )
        logger.debug("Signed %d-byte payload for domain %d (counter=%d, expires_at=%d)",
                     len(payload), domain, counter, expires_at)
        return SignatureData(
            signer_identity=KeyIdentity(public_key=self._public_key),
            hmac_personalized_data=HmacPersonalizedData(
                epoch=self.session_info.epoch,
                counter=counter,
                expires_at=expires_at,
                tag=tag,
            ),
        )
