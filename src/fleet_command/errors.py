"""
fleet-command error types.

Every failure is terminal for the request that raised it; nothing here retries.
"""

from typing import Any, Optional

from fleet_command.models.enums import fault_name


class FleetCommandError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class MalformedEnvelope(FleetCommandError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("malformed_envelope", message, details)


class SessionUnavailable(FleetCommandError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("session_unavailable", message, details)


class SessionInvalid(FleetCommandError):
    def __init__(self, message: str):
        super().__init__("session_invalid", message)


class ProtocolFault(FleetCommandError):
    """The vehicle rejected the signed envelope itself."""

    def __init__(self, fault: int, message: Optional[str] = None):
        self.fault = fault
        super().__init__(
            "protocol_fault",
            message or f"Signed message error: {fault_name(fault)}",
            {"fault": fault},
        )


class ActionRejected(FleetCommandError):
    def __init__(self, reason: str):
        super().__init__("action_rejected", f"Action rejected: {reason}", {"reason": reason})
        self.reason = reason


class ProtocolViolation(FleetCommandError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_violation", message, details)


class TransportError(FleetCommandError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__("transport_error", message, {"status_code": status_code} if status_code else None)
        self.status_code = status_code


class CounterReuse(FleetCommandError):
    def __init__(self, counter: int, last: int):
        super().__init__("counter_reuse", f"Signing counter {counter} would repeat (last used {last})")
