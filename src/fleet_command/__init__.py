"""
fleet-command — signed vehicle commands over the Fleet API relay.

Session handshake, HMAC command signing and routable envelopes for the
vehicle command protocol.
"""

from fleet_command.client import AsyncVehicleClient, VehicleClient
from fleet_command.engine import CommandEngine
from fleet_command.sessions import SessionManager
from fleet_command.signer import Signer
from fleet_command.errors import (
    FleetCommandError,
    MalformedEnvelope,
    SessionUnavailable,
    SessionInvalid,
    ProtocolFault,
    ActionRejected,
    ProtocolViolation,
    TransportError,
    CounterReuse,
)
from fleet_command.models.enums import Domain, MessageFault

__version__ = "0.1.0"
__all__ = [
    "AsyncVehicleClient",
    "VehicleClient",
    "CommandEngine",
    "SessionManager",
    "Signer",
    "FleetCommandError",
    "MalformedEnvelope",
    "SessionUnavailable",
    "SessionInvalid",
    "ProtocolFault",
    "ActionRejected",
    "ProtocolViolation",
    "TransportError",
    "CounterReuse",
    "Domain",
    "MessageFault",
]
