"""
Wire enumerations shared with the vehicle firmware.

Values must match universal_message.proto, signatures.proto and
car_server.proto exactly.
"""

from enum import IntEnum


class Domain(IntEnum):
    BROADCAST = 0
    VEHICLE_SECURITY = 2
    INFOTAINMENT = 3


class OperationStatus(IntEnum):
    """UniversalMessage.OperationStatus_E, status of the signed envelope."""
    OK = 0
    WAIT = 1
    ERROR = 2


class MessageFault(IntEnum):
    ERROR_NONE = 0
    ERROR_BUSY = 1
    ERROR_TIMEOUT = 2
    ERROR_UNKNOWN_KEY_ID = 3
    ERROR_INACTIVE_KEY = 4
    ERROR_INVALID_SIGNATURE = 5
    ERROR_INVALID_TOKEN_OR_COUNTER = 6
    ERROR_INSUFFICIENT_PRIVILEGES = 7
    ERROR_INVALID_DOMAINS = 8
    ERROR_INVALID_COMMAND = 9
    ERROR_DECODING = 10
    ERROR_INTERNAL = 11
    ERROR_WRONG_PERSONALIZATION = 12
    ERROR_BAD_PARAMETER = 13
    ERROR_KEYCHAIN_IS_FULL = 14
    ERROR_INCORRECT_EPOCH = 15
    ERROR_IV_INCORRECT_LENGTH = 16
    ERROR_TIME_EXPIRED = 17
    ERROR_NOT_PROVISIONED_WITH_IDENTITY = 18
    ERROR_COULD_NOT_HASH_METADATA = 19
    ERROR_TIME_TO_LIVE_TOO_LONG = 20
    ERROR_REMOTE_ACCESS_DISABLED = 21
    ERROR_REMOTE_SERVICE_ACCESS_DISABLED = 22
    ERROR_COMMAND_REQUIRES_ACCOUNT_CREDENTIALS = 23
    ERROR_REQUEST_MTU_EXCEEDED = 24
    ERROR_RESPONSE_MTU_EXCEEDED = 25
    ERROR_REPEATED_COUNTER = 26
    ERROR_INVALID_KEY_HANDLE = 27
    ERROR_REQUIRES_RESPONSE_ENCRYPTION = 28


# Faults meaning our session state no longer matches the vehicle's.
SESSION_FAULTS = frozenset({
    MessageFault.ERROR_UNKNOWN_KEY_ID,
    MessageFault.ERROR_INACTIVE_KEY,
    MessageFault.ERROR_INVALID_SIGNATURE,
    MessageFault.ERROR_INVALID_TOKEN_OR_COUNTER,
    MessageFault.ERROR_WRONG_PERSONALIZATION,
    MessageFault.ERROR_INCORRECT_EPOCH,
    MessageFault.ERROR_TIME_EXPIRED,
    MessageFault.ERROR_REPEATED_COUNTER,
    MessageFault.ERROR_INVALID_KEY_HANDLE,
})


def fault_name(fault: int) -> str:
    try:
        return MessageFault(fault).name
    except ValueError:
        return f"UNKNOWN_FAULT_{fault}"


class SignatureType(IntEnum):
    AES_GCM = 0
    AES_GCM_PERSONALIZED = 5
    HMAC = 6
    HMAC_PERSONALIZED = 8
    AES_GCM_RESPONSE = 9


class Tag(IntEnum):
    """Metadata TLV tags. Entries are hashed in increasing tag order."""
    SIGNATURE_TYPE = 0
    DOMAIN = 1
    PERSONALIZATION = 2
    EPOCH = 3
    EXPIRES_AT = 4
    COUNTER = 5
    CHALLENGE = 6
    FLAGS = 7
    REQUEST_HASH = 8
    FAULT = 9
    END = 255


class SessionInfoStatus(IntEnum):
    OK = 0
    KEY_NOT_ON_WHITELIST = 1


class ActionResultCode(IntEnum):
    """CarServer.OperationStatus_E, result of the action itself."""
    OK = 0
    ERROR = 1


class ChargingAction(IntEnum):
    """Field numbers of the ChargingStartStopAction oneof."""
    UNKNOWN = 1
    START = 2
    START_STANDARD = 3
    START_MAX_RANGE = 4
    STOP = 5
