"""
CarServer action payloads: encode requests, decode action status.
"""

from typing import Optional

from google.protobuf.message import DecodeError

from fleet_command.errors import ProtocolViolation
from fleet_command.models.action import (
    ActionStatus,
    ChargingSetLimit,
    ChargingStartStop,
    SetChargingAmps,
    VehicleAction,
)
from fleet_command.models.enums import ChargingAction
from fleet_command.transport.schema import ActionPb, ResponsePb

_START_STOP_FIELDS = {
    ChargingAction.UNKNOWN: "unknown",
    ChargingAction.START: "start",
    ChargingAction.START_STANDARD: "start_standard",
    ChargingAction.START_MAX_RANGE: "start_max_range",
    ChargingAction.STOP: "stop",
}


def encode_action(action: VehicleAction) -> bytes:
    """Serialize an action as a CarServer.Action payload."""
    pb = ActionPb()
    vehicle_action = pb.vehicleAction
    if isinstance(action, ChargingSetLimit):
        vehicle_action.chargingSetLimitAction.percent = action.percent
        vehicle_action.chargingSetLimitAction.SetInParent()
    elif isinstance(action, ChargingStartStop):
        start_stop = vehicle_action.chargingStartStopAction
        getattr(start_stop, _START_STOP_FIELDS[action.charging_action]).SetInParent()
    elif isinstance(action, SetChargingAmps):
        vehicle_action.setChargingAmpsAction.charging_amps = action.amps
        vehicle_action.setChargingAmpsAction.SetInParent()
    else:
        raise TypeError(f"Unsupported action: {type(action).__name__}")
    return pb.SerializeToString()


def decode_action_status(raw: bytes) -> Optional[ActionStatus]:
    """Parse a CarServer.Response. Returns None when it carries no actionStatus."""
    pb = ResponsePb()
    try:
        pb.ParseFromString(raw)
    except DecodeError as e:
        raise ProtocolViolation(f"Undecodable action response: {e}")
    if not pb.HasField("actionStatus"):
        return None
    status = pb.actionStatus
    if not status.HasField("result_reason"):
        return ActionStatus(result=status.result)
    if status.result_reason.WhichOneof("reason") == "plain_text":
        return ActionStatus(result=status.result, reason=status.result_reason.plain_text)
    return ActionStatus(result=status.result, reason="", reason_known=False)
