# mc_rcon/errors.py
from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(enum.Enum):
    AUTH_FAILED = "auth_failed"
    INVALID_AUTH_RESPONSE = "invalid_auth_response"
    UNEXPECTED_FORMAT = "unexpected_format"
    COMMAND_TOO_LONG = "command_too_long"
    RESPONSE_TOO_LONG = "response_too_long"
    CONNECTION_CLOSED = "connection_closed"


class RconError(Exception):
    """Protocol-level RCON failure. Branch on ``.kind`` or on the subclass."""

    kind: ErrorKind
    default_message = "rcon: error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class AuthFailed(RconError):
    kind = ErrorKind.AUTH_FAILED
    default_message = "rcon: authentication failed"


class InvalidAuthResponse(RconError):
    kind = ErrorKind.INVALID_AUTH_RESPONSE
    default_message = "rcon: invalid response type during auth"


class UnexpectedFormat(RconError):
    kind = ErrorKind.UNEXPECTED_FORMAT
    default_message = "rcon: unexpected response format"


class CommandTooLong(RconError):
    kind = ErrorKind.COMMAND_TOO_LONG
    default_message = "rcon: command too long"


class ResponseTooLong(RconError):
    kind = ErrorKind.RESPONSE_TOO_LONG
    default_message = "rcon: response too long"


class ConnectionClosed(RconError, ConnectionError):
    kind = ErrorKind.CONNECTION_CLOSED
    default_message = "rcon: connection closed"
