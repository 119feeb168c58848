"""
Vehicle actions and their outcome.

Each action knows the domain that executes it; the engine takes the domain
from here rather than from mutable client state.
"""

from typing import ClassVar, Literal, Optional, Union
from pydantic import BaseModel, Field

from fleet_command.models.enums import ActionResultCode, ChargingAction, Domain


class ChargingSetLimit(BaseModel):
    domain: ClassVar[Domain] = Domain.INFOTAINMENT
    percent: int = Field(ge=0, le=100)


class ChargingStartStop(BaseModel):
    domain: ClassVar[Domain] = Domain.VEHICLE_SECURITY
    action: Literal["start", "stop"]

    @property
    def charging_action(self) -> ChargingAction:
        return ChargingAction.START if self.action == "start" else ChargingAction.STOP


class SetChargingAmps(BaseModel):
    domain: ClassVar[Domain] = Domain.INFOTAINMENT
    amps: int = Field(ge=0)


VehicleAction = Union[ChargingSetLimit, ChargingStartStop, SetChargingAmps]


UNKNOWN_REASON = "unknown"


class ActionStatus(BaseModel):
    """Decoded CarServer.ActionStatus.

    ``reason`` is None when no result_reason was sent; ``reason_known`` is False
    when one was sent but carried nothing this client can decode.
    """
    result: int = ActionResultCode.OK
    reason: Optional[str] = None
    reason_known: bool = True

    @property
    def reason_text(self) -> str:
        if self.reason is None or not self.reason_known:
            return UNKNOWN_REASON
        return self.reason
