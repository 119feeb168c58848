"""
Session parameters returned by the vehicle during the handshake.
"""

from pydantic import BaseModel

from fleet_command.models.enums import SessionInfoStatus


class SessionInfo(BaseModel):
    counter: int = 0
    public_key: bytes = b""
    epoch: bytes = b""
    clock_time: int = 0  # seconds on the vehicle's clock
    status: int = SessionInfoStatus.OK
    handle: int = 0
