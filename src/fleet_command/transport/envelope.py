"""
Envelope construction and parsing.

Converts between the RoutableMessage model and its protobuf wire form.
Presence comes from protobuf (submessages and oneof members). Scalars with
their zero value cannot be told apart from absent ones, so they decode as None.
"""

from google.protobuf.message import DecodeError

from fleet_command.errors import MalformedEnvelope
from fleet_command.models.envelope import (
    Destination,
    HmacPersonalizedData,
    KeyIdentity,
    MessageStatus,
    RoutableMessage,
    SessionInfoRequest,
    SessionInfoTag,
    SignatureData,
)
from fleet_command.models.session import SessionInfo
from fleet_command.transport.schema import RoutableMessagePb, SessionInfoPb


def _nz(value):
    """Map a proto3 scalar default to None."""
    return value if value else None


# --- encode ---

def _put_destination(pb, dest: Destination) -> None:
    pb.SetInParent()
    if dest.domain is not None:
        pb.domain = dest.domain
    if dest.routing_address is not None:
        pb.routing_address = dest.routing_address


def _put_signature_data(pb, sig: SignatureData) -> None:
    pb.SetInParent()
    if sig.signer_identity is not None:
        pb.signer_identity.SetInParent()
        if sig.signer_identity.public_key is not None:
            pb.signer_identity.public_key = sig.signer_identity.public_key
        if sig.signer_identity.handle is not None:
            pb.signer_identity.handle = sig.signer_identity.handle
    if sig.session_info_tag is not None:
        pb.session_info_tag.SetInParent()
        if sig.session_info_tag.tag is not None:
            pb.session_info_tag.tag = sig.session_info_tag.tag
    if sig.hmac_personalized_data is not None:
        data = sig.hmac_personalized_data
        pb.HMAC_Personalized_data.SetInParent()
        if data.epoch is not None:
            pb.HMAC_Personalized_data.epoch = data.epoch
        if data.counter is not None:
            pb.HMAC_Personalized_data.counter = data.counter
        if data.expires_at is not None:
            pb.HMAC_Personalized_data.expires_at = data.expires_at
        if data.tag is not None:
            pb.HMAC_Personalized_data.tag = data.tag


def encode_envelope(message: RoutableMessage) -> bytes:
    """Serialize a RoutableMessage to its canonical wire form."""
    pb = RoutableMessagePb()
    if message.to_destination is not None:
        _put_destination(pb.to_destination, message.to_destination)
    if message.from_destination is not None:
        _put_destination(pb.from_destination, message.from_destination)
    if message.protobuf_message_as_bytes is not None:
        pb.protobuf_message_as_bytes = message.protobuf_message_as_bytes
    if message.session_info_request is not None:
        pb.session_info_request.SetInParent()
        if message.session_info_request.public_key is not None:
            pb.session_info_request.public_key = message.session_info_request.public_key
        if message.session_info_request.challenge is not None:
            pb.session_info_request.challenge = message.session_info_request.challenge
    if message.session_info is not None:
        pb.session_info = message.session_info
    if message.signature_data is not None:
        _put_signature_data(pb.signature_data, message.signature_data)
    if message.signed_message_status is not None:
        pb.signedMessageStatus.SetInParent()
        status = message.signed_message_status
        if status.operation_status is not None:
            pb.signedMessageStatus.operation_status = status.operation_status
        if status.signed_message_fault is not None:
            pb.signedMessageStatus.signed_message_fault = status.signed_message_fault
    if message.request_uuid is not None:
        pb.request_uuid = message.request_uuid
    if message.uuid is not None:
        pb.uuid = message.uuid
    if message.flags is not None:
        pb.flags = message.flags
    return pb.SerializeToString()


# --- decode ---

def _get_destination(pb) -> Destination:
    which = pb.WhichOneof("sub_destination")
    if which == "domain":
        return Destination(domain=pb.domain)
    if which == "routing_address":
        return Destination(routing_address=pb.routing_address)
    return Destination()


def _get_signature_data(pb) -> SignatureData:
    sig = SignatureData()
    if pb.HasField("signer_identity"):
        which = pb.signer_identity.WhichOneof("identity_type")
        sig.signer_identity = KeyIdentity(
            public_key=pb.signer_identity.public_key if which == "public_key" else None,
            handle=pb.signer_identity.handle if which == "handle" else None,
        )
    which = pb.WhichOneof("sig_type")
    if which == "session_info_tag":
        sig.session_info_tag = SessionInfoTag(tag=_nz(pb.session_info_tag.tag))
    elif which == "HMAC_Personalized_data":
        data = pb.HMAC_Personalized_data
        sig.hmac_personalized_data = HmacPersonalizedData(
            epoch=_nz(data.epoch),
            counter=_nz(data.counter),
            expires_at=_nz(data.expires_at),
            tag=_nz(data.tag),
        )
    return sig


def decode_envelope(raw: bytes) -> RoutableMessage:
    """Parse a RoutableMessage. Raises MalformedEnvelope if the bytes do not decode."""
    pb = RoutableMessagePb()
    try:
        pb.ParseFromString(raw)
    except DecodeError as e:
        raise MalformedEnvelope(f"Undecodable envelope: {e}")

    message = RoutableMessage(
        to_destination=_get_destination(pb.to_destination) if pb.HasField("to_destination") else None,
        from_destination=_get_destination(pb.from_destination) if pb.HasField("from_destination") else None,
        request_uuid=_nz(pb.request_uuid),
        uuid=_nz(pb.uuid),
        flags=_nz(pb.flags),
    )
    payload = pb.WhichOneof("payload")
    if payload == "protobuf_message_as_bytes":
        message.protobuf_message_as_bytes = pb.protobuf_message_as_bytes
    elif payload == "session_info_request":
        message.session_info_request = SessionInfoRequest(
            public_key=_nz(pb.session_info_request.public_key),
            challenge=_nz(pb.session_info_request.challenge),
        )
    elif payload == "session_info":
        message.session_info = pb.session_info
    if pb.HasField("signature_data"):
        message.signature_data = _get_signature_data(pb.signature_data)
    if pb.HasField("signedMessageStatus"):
        message.signed_message_status = MessageStatus(
            operation_status=_nz(pb.signedMessageStatus.operation_status),
            signed_message_fault=_nz(pb.signedMessageStatus.signed_message_fault),
        )
    return message


def decode_session_info(raw: bytes) -> SessionInfo:
    pb = SessionInfoPb()
    try:
        pb.ParseFromString(raw)
    except DecodeError as e:
        raise MalformedEnvelope(f"Undecodable session info: {e}")
    return SessionInfo(
        counter=pb.counter,
        public_key=pb.publicKey,
        epoch=pb.epoch,
        clock_time=pb.clock_time,
        status=pb.status,
        handle=pb.handle,
    )
