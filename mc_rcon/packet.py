# mc_rcon/packet.py
from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import CommandTooLong, UnexpectedFormat

CMD_AUTH = 3
CMD_EXEC_COMMAND = 2

RESP_RESPONSE = 0
RESP_AUTH_RESPONSE = 2

MAX_COMMAND_LENGTH = 1014  # payload bytes, excluding the two NULs
MIN_DATA_SIZE = 10         # request id + type + two NULs
MAX_DATA_SIZE = 4106
READ_BUFFER_SIZE = 4 + MAX_DATA_SIZE

_SIZE = struct.Struct("<i")
_HEADER = struct.Struct("<ii")  # request id, type


@dataclass(frozen=True, slots=True)
class Frame:
    request_id: int
    kind: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", "replace")


def encode(request_id: int, kind: int, body: str) -> bytes:
    """Build one wire frame: size, request id, type, payload, two NULs."""
    return pack(request_id, kind, encode_payload(body))


def encode_payload(body: str) -> bytes:
    payload = body.encode("utf-8")
    if len(payload) > MAX_COMMAND_LENGTH:
        raise CommandTooLong()
    return payload


def pack(request_id: int, kind: int, payload: bytes) -> bytes:
    size = MIN_DATA_SIZE + len(payload)
    return _SIZE.pack(size) + _HEADER.pack(request_id, kind) + payload + b"\x00\x00"


def read_size(data) -> int:
    (size,) = _SIZE.unpack_from(data, 0)
    return size


def decode(data, length: int) -> Frame:
    """
    Decode the ``length`` bytes that follow the size prefix.

    The body ends at the first NUL; a body without one is taken whole.
    """
    if length < MIN_DATA_SIZE:
        raise UnexpectedFormat()
    request_id, kind = _HEADER.unpack_from(data, 0)
    raw = bytes(data[_HEADER.size:_HEADER.size + length - MIN_DATA_SIZE])
    nul = raw.find(b"\x00")
    if nul >= 0:
        raw = raw[:nul]
    return Frame(request_id=request_id, kind=kind, body=raw)
