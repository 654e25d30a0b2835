# mc_rcon/rcon.py
"""
Source RCON client.

One ``RemoteConsole`` owns one TCP socket. Writes and reads may come from
different threads and may be pipelined: issue several ``write()`` calls, then
the same number of ``read()`` calls, and match responses to requests by
``request_id``. Responses come back in wire arrival order.

    with connect("localhost:25575", "secret") as rcon:
        print(rcon.command("list").body)
"""
from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import AuthFailed, ConnectionClosed, InvalidAuthResponse, ResponseTooLong, UnexpectedFormat
from .packet import (
    CMD_AUTH,
    CMD_EXEC_COMMAND,
    MAX_DATA_SIZE,
    MIN_DATA_SIZE,
    READ_BUFFER_SIZE,
    RESP_AUTH_RESPONSE,
    RESP_RESPONSE,
    Frame,
    decode,
    encode_payload,
    pack,
    read_size,
)
from .util import parse_host_port

log = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0   # seconds
DEFAULT_READ_TIMEOUT = 120.0     # seconds

ID_SEED = 0x7fffffff
ID_MASK = 0x0fffffff
ID_RESEED_RANGE = 100_000


@dataclass(frozen=True, slots=True)
class Response:
    body: str
    request_id: int


@dataclass(frozen=True, slots=True)
class RconConfig:
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    def __post_init__(self) -> None:
        for name in ("connect_timeout", "read_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number of seconds, got {value!r}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value!r}")


class RequestIds:
    """
    Request id allocator.

    Counts up by one from the seed. Once a value leaves the 28-bit mask it is
    reseeded from the clock into [0, 100000) instead of running into the sign
    bit, so right after a reseed an id can repeat one issued long ago.
    """

    def __init__(self, seed: int = ID_SEED, clock: Callable[[], int] = time.monotonic_ns) -> None:
        self._value = seed
        self._clock = clock
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            cur = self._value
            if (cur & ID_MASK) != cur:
                cur = (self._clock() // 100_000) % ID_RESEED_RANGE
            else:
                cur += 1
            self._value = cur
            return cur


def _fill(sock: socket.socket, view: memoryview, pos: int, need: int) -> int:
    """recv_into ``view`` until ``need`` bytes are present or the peer closes."""
    while pos < need:
        n = sock.recv_into(view[pos:need])
        if n <= 0:
            break
        pos += n
    return pos


def read_frame(sock: socket.socket, buf: bytearray, timeout: Optional[float] = None) -> Frame:
    """
    Read exactly one frame into ``buf`` and decode it.

    ``buf`` is filled from offset 0 and never read past the current frame, so
    leftovers from a previous frame are overwritten, not parsed. The size
    prefix is bounds-checked before the body is read.
    """
    if timeout is not None:
        sock.settimeout(timeout)
    view = memoryview(buf)

    got = _fill(sock, view, 0, 4)
    if got < 4:
        raise ConnectionClosed()

    size = read_size(view)
    if size < MIN_DATA_SIZE:
        raise UnexpectedFormat()
    if size > MAX_DATA_SIZE:
        raise ResponseTooLong()

    total = 4 + size
    if _fill(sock, view, got, total) < total:
        raise ConnectionClosed()

    frame = decode(view[4:total], size)
    log.debug("recv frame id=%d type=%d size=%d", frame.request_id, frame.kind, size)
    return frame


class RemoteConsole:
    def __init__(
        self,
        sock: socket.socket,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        request_ids: Optional[RequestIds] = None,
    ) -> None:
        self.sock = sock
        self.read_timeout = read_timeout
        self._ids = request_ids or RequestIds()
        self._buf = bytearray(READ_BUFFER_SIZE)
        self._read_lock = threading.RLock()
        self._write_lock = threading.Lock()

    def __enter__(self) -> "RemoteConsole":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        try:
            peer = self.sock.getpeername()
        except OSError:
            peer = "closed"
        return f"<RemoteConsole {peer}>"

    @property
    def local_address(self):
        return self.sock.getsockname()

    @property
    def remote_address(self):
        return self.sock.getpeername()

    def command(self, cmd: str) -> Response:
        self.write(cmd)
        return self.read()

    def write(self, cmd: str) -> int:
        """Send ``cmd`` as an exec frame and return its request id."""
        return self._write(CMD_EXEC_COMMAND, cmd)

    def read(self, timeout: Optional[float] = None) -> Response:
        """
        Read the next response frame.

        Frames of any type other than a command response come back as
        ``Response("", 0)``. ``timeout`` is set on the socket itself, so it
        also bounds sends until the next read changes it.
        """
        if timeout is None:
            timeout = self.read_timeout
        elif timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout!r}")
        frame = self._read_frame(timeout)
        if frame.kind != RESP_RESPONSE:
            log.debug("ignoring frame type=%d id=%d", frame.kind, frame.request_id)
            return Response("", 0)
        return Response(frame.text, frame.request_id)

    def close(self) -> None:
        log.info("closing %r", self)
        self.sock.close()

    def _write(self, kind: int, body: str) -> int:
        # length is checked before an id is allocated
        payload = encode_payload(body)
        req_id = self._ids.next()
        data = pack(req_id, kind, payload)
        with self._write_lock:
            self.sock.sendall(data)
        log.debug("sent frame id=%d type=%d size=%d", req_id, kind, len(data) - 4)
        return req_id

    def _read_frame(self, timeout: float) -> Frame:
        with self._read_lock:
            return read_frame(self.sock, self._buf, timeout)

    def _authenticate(self, password: str, timeout: float) -> None:
        auth_id = self._write(CMD_AUTH, password)

        frame = self._read_frame(timeout)
        if frame.kind != RESP_AUTH_RESPONSE:
            # Some servers send an empty response frame ahead of the auth
            # response. Tolerate exactly one.
            log.debug("skipping frame type=%d before auth response", frame.kind)
            frame = self._read_frame(timeout)

        if frame.kind != RESP_AUTH_RESPONSE:
            raise InvalidAuthResponse()
        if frame.request_id != auth_id:
            raise AuthFailed()


def connect(address: str, password: str, config: Optional[RconConfig] = None) -> RemoteConsole:
    """
    Open a connection to ``"host:port"`` and authenticate.

    Authentication runs with the connect timeout. If anything fails after the
    socket is open, the socket is closed before the error propagates.
    """
    config = config or RconConfig()
    host, port = parse_host_port(address)
    sock = socket.create_connection((host, port), timeout=config.connect_timeout)
    try:
        rcon = RemoteConsole(sock, read_timeout=config.read_timeout)
        rcon._authenticate(password, config.connect_timeout)
    except BaseException as e:
        log.warning("rcon login to %s failed: %s", address, e)
        sock.close()
        raise
    log.info("connected to %s", address)
    return rcon
