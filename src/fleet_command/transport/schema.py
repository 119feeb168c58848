"""
Protobuf schemas for the vehicle command protocol.

The three files (signatures, universal_message, car_server) are declared as
FileDescriptorProtos and loaded into a private descriptor pool, so no protoc
step is needed. Field numbers and enum values must match the vehicle's
schemas; only the messages this client reads or writes are declared.
"""

from enum import IntEnum
from typing import Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from fleet_command.models.enums import (
    ActionResultCode,
    Domain,
    MessageFault,
    OperationStatus,
    SessionInfoStatus,
    SignatureType,
)

_F = descriptor_pb2.FieldDescriptorProto

BYTES = _F.TYPE_BYTES
UINT32 = _F.TYPE_UINT32
INT32 = _F.TYPE_INT32
FIXED32 = _F.TYPE_FIXED32
STRING = _F.TYPE_STRING
ENUM = _F.TYPE_ENUM
MESSAGE = _F.TYPE_MESSAGE


def _enum(name: str, values: type[IntEnum], prefix: str) -> descriptor_pb2.EnumDescriptorProto:
    return descriptor_pb2.EnumDescriptorProto(
        name=name,
        value=[
            descriptor_pb2.EnumValueDescriptorProto(name=prefix + member.name, number=member.value)
            for member in values
        ],
    )


def _message(
    name: str,
    fields: list[tuple],
    oneofs: Optional[list[str]] = None,
) -> descriptor_pb2.DescriptorProto:
    """Build a message from (name, number, type, type_name, oneof) tuples."""
    msg = descriptor_pb2.DescriptorProto(name=name)
    for oneof in oneofs or []:
        msg.oneof_decl.add(name=oneof)
    for field_name, number, type_, type_name, oneof in fields:
        f = msg.field.add(name=field_name, number=number, type=type_, label=_F.LABEL_OPTIONAL)
        if type_name:
            f.type_name = type_name
        if oneof is not None:
            f.oneof_index = oneofs.index(oneof)  # type: ignore[union-attr]
    return msg


_SIGNATURES = descriptor_pb2.FileDescriptorProto(
    name="signatures.proto",
    package="Signatures",
    syntax="proto3",
    enum_type=[
        _enum("SignatureType", SignatureType, "SIGNATURE_TYPE_"),
        _enum("Session_Info_Status", SessionInfoStatus, "SESSION_INFO_STATUS_"),
    ],
    message_type=[
        _message("KeyIdentity", [
            ("public_key", 1, BYTES, None, "identity_type"),
            ("handle", 3, UINT32, None, "identity_type"),
        ], oneofs=["identity_type"]),
        _message("HMAC_Signature_Data", [
            ("tag", 1, BYTES, None, None),
        ]),
        _message("HMAC_Personalized_Signature_Data", [
            ("epoch", 1, BYTES, None, None),
            ("counter", 2, UINT32, None, None),
            ("expires_at", 3, FIXED32, None, None),
            ("tag", 4, BYTES, None, None),
        ]),
        _message("SignatureData", [
            ("signer_identity", 1, MESSAGE, ".Signatures.KeyIdentity", None),
            ("session_info_tag", 6, MESSAGE, ".Signatures.HMAC_Signature_Data", "sig_type"),
            ("HMAC_Personalized_data", 8, MESSAGE, ".Signatures.HMAC_Personalized_Signature_Data", "sig_type"),
        ], oneofs=["sig_type"]),
        _message("SessionInfo", [
            ("counter", 1, UINT32, None, None),
            ("publicKey", 2, BYTES, None, None),
            ("epoch", 3, BYTES, None, None),
            ("clock_time", 4, FIXED32, None, None),
            ("status", 5, ENUM, ".Signatures.Session_Info_Status", None),
            ("handle", 6, UINT32, None, None),
        ]),
    ],
)

_UNIVERSAL_MESSAGE = descriptor_pb2.FileDescriptorProto(
    name="universal_message.proto",
    package="UniversalMessage",
    syntax="proto3",
    dependency=["signatures.proto"],
    enum_type=[
        _enum("Domain", Domain, "DOMAIN_"),
        _enum("OperationStatus_E", OperationStatus, "OPERATIONSTATUS_"),
        _enum("MessageFault_E", MessageFault, "MESSAGEFAULT_"),
    ],
    message_type=[
        _message("Destination", [
            ("domain", 1, ENUM, ".UniversalMessage.Domain", "sub_destination"),
            ("routing_address", 2, BYTES, None, "sub_destination"),
        ], oneofs=["sub_destination"]),
        _message("MessageStatus", [
            ("operation_status", 1, ENUM, ".UniversalMessage.OperationStatus_E", None),
            ("signed_message_fault", 2, ENUM, ".UniversalMessage.MessageFault_E", None),
        ]),
        _message("SessionInfoRequest", [
            ("public_key", 1, BYTES, None, None),
            ("challenge", 2, BYTES, None, None),
        ]),
        _message("RoutableMessage", [
            ("to_destination", 6, MESSAGE, ".UniversalMessage.Destination", None),
            ("from_destination", 7, MESSAGE, ".UniversalMessage.Destination", None),
            # oneof members must be declared consecutively
            ("protobuf_message_as_bytes", 10, BYTES, None, "payload"),
            ("session_info_request", 14, MESSAGE, ".UniversalMessage.SessionInfoRequest", "payload"),
            ("session_info", 15, BYTES, None, "payload"),
            ("signedMessageStatus", 12, MESSAGE, ".UniversalMessage.MessageStatus", None),
            ("signature_data", 13, MESSAGE, ".Signatures.SignatureData", "sub_sigData"),
            ("request_uuid", 50, BYTES, None, None),
            ("uuid", 51, BYTES, None, None),
            ("flags", 52, UINT32, None, None),
        ], oneofs=["payload", "sub_sigData"]),
    ],
)

_CAR_SERVER = descriptor_pb2.FileDescriptorProto(
    name="car_server.proto",
    package="CarServer",
    syntax="proto3",
    enum_type=[
        _enum("OperationStatus_E", ActionResultCode, "OPERATIONSTATUS_"),
    ],
    message_type=[
        _message("Void", []),
        _message("ChargingSetLimitAction", [
            ("percent", 1, INT32, None, None),
        ]),
        _message("ChargingStartStopAction", [
            ("unknown", 1, MESSAGE, ".CarServer.Void", "charging_action"),
            ("start", 2, MESSAGE, ".CarServer.Void", "charging_action"),
            ("start_standard", 3, MESSAGE, ".CarServer.Void", "charging_action"),
            ("start_max_range", 4, MESSAGE, ".CarServer.Void", "charging_action"),
            ("stop", 5, MESSAGE, ".CarServer.Void", "charging_action"),
        ], oneofs=["charging_action"]),
        _message("SetChargingAmpsAction", [
            ("charging_amps", 1, INT32, None, None),
        ]),
        _message("VehicleAction", [
            ("chargingSetLimitAction", 5, MESSAGE, ".CarServer.ChargingSetLimitAction", "vehicle_action_msg"),
            ("chargingStartStopAction", 6, MESSAGE, ".CarServer.ChargingStartStopAction", "vehicle_action_msg"),
            ("setChargingAmpsAction", 43, MESSAGE, ".CarServer.SetChargingAmpsAction", "vehicle_action_msg"),
        ], oneofs=["vehicle_action_msg"]),
        _message("Action", [
            ("vehicleAction", 2, MESSAGE, ".CarServer.VehicleAction", "action_msg"),
        ], oneofs=["action_msg"]),
        _message("ResultReason", [
            ("plain_text", 1, STRING, None, "reason"),
        ], oneofs=["reason"]),
        _message("ActionStatus", [
            ("result", 1, ENUM, ".CarServer.OperationStatus_E", None),
            ("result_reason", 2, MESSAGE, ".CarServer.ResultReason", None),
        ]),
        _message("Response", [
            ("actionStatus", 1, MESSAGE, ".CarServer.ActionStatus", None),
        ]),
    ],
)

_pool = descriptor_pool.DescriptorPool()
for _file in (_SIGNATURES, _UNIVERSAL_MESSAGE, _CAR_SERVER):
    _pool.AddSerializedFile(_file.SerializeToString())


def _cls(full_name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(full_name))


RoutableMessagePb = _cls("UniversalMessage.RoutableMessage")
SessionInfoPb = _cls("Signatures.SessionInfo")
ActionPb = _cls("CarServer.Action")
ResponsePb = _cls("CarServer.Response")
