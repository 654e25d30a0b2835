"""Source RCON client.

Frame codec in ``packet``, the session in ``rcon``, error kinds in ``errors``.
"""

from .errors import (
    AuthFailed,
    CommandTooLong,
    ConnectionClosed,
    ErrorKind,
    InvalidAuthResponse,
    RconError,
    ResponseTooLong,
    UnexpectedFormat,
)
from .rcon import RconConfig, RemoteConsole, RequestIds, Response, connect

__all__ = [
    "AuthFailed",
    "CommandTooLong",
    "ConnectionClosed",
    "ErrorKind",
    "InvalidAuthResponse",
    "RconConfig",
    "RconError",
    "RemoteConsole",
    "RequestIds",
    "Response",
    "ResponseTooLong",
    "UnexpectedFormat",
    "connect",
]
