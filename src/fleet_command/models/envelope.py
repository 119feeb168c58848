"""
Routable message envelope.

Every field is Optional: None means the field was absent on the wire. Zero
scalars are indistinguishable from absent, so the codec reports them as None.
"""

from typing import Optional
from pydantic import BaseModel, model_validator


class Destination(BaseModel):
    domain: Optional[int] = None
    routing_address: Optional[bytes] = None

    @model_validator(mode="after")
    def _one_of(self) -> "Destination":
        if self.domain is not None and self.routing_address is not None:
            raise ValueError("destination carries either a domain or a routing address, not both")
        return self


class SessionInfoRequest(BaseModel):
    public_key: Optional[bytes] = None
    challenge: Optional[bytes] = None


class KeyIdentity(BaseModel):
    public_key: Optional[bytes] = None
    handle: Optional[int] = None


class SessionInfoTag(BaseModel):
    tag: Optional[bytes] = None


class HmacPersonalizedData(BaseModel):
    epoch: Optional[bytes] = None
    counter: Optional[int] = None
    expires_at: Optional[int] = None
    tag: Optional[bytes] = None


class SignatureData(BaseModel):
    signer_identity: Optional[KeyIdentity] = None
    session_info_tag: Optional[SessionInfoTag] = None
    hmac_personalized_data: Optional[HmacPersonalizedData] = None

    @model_validator(mode="after")
    def _single_sig_type(self) -> "SignatureData":
        if self.session_info_tag is not None and self.hmac_personalized_data is not None:
            raise ValueError("signature data carries more than one signature type")
        return self


class MessageStatus(BaseModel):
    operation_status: Optional[int] = None
    signed_message_fault: Optional[int] = None


class RoutableMessage(BaseModel):
    to_destination: Optional[Destination] = None
    from_destination: Optional[Destination] = None
    # payload oneof
    protobuf_message_as_bytes: Optional[bytes] = None
    session_info_request: Optional[SessionInfoRequest] = None
    session_info: Optional[bytes] = None
    signature_data: Optional[SignatureData] = None
    signed_message_status: Optional[MessageStatus] = None
    request_uuid: Optional[bytes] = None
    uuid: Optional[bytes] = None
    flags: Optional[int] = None

    @model_validator(mode="after")
    def _single_payload(self) -> "RoutableMessage":
        present = [
            name for name in ("protobuf_message_as_bytes", "session_info_request", "session_info")
            if getattr(self, name) is not None
        ]
        if len(present) > 1:
            raise ValueError(f"envelope carries more than one payload: {present}")
        return self
