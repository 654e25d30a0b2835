from __future__ import annotations

import socket
import struct
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

import pytest

RESP_RESPONSE = 0
RESP_AUTH_RESPONSE = 2
PASSWORD = "secret"


def pack_frame(request_id: int, kind: int, body: str = "") -> bytes:
    data = struct.pack("<ii", request_id, kind) + body.encode("utf-8") + b"\x00\x00"
    return struct.pack("<i", len(data)) + data


@dataclass
class Packet:
    request_id: int
    kind: int
    body: str


def _recv_exact(conn: socket.socket, n: int) -> Optional[bytes]:
    data = b""
    while len(data) < n:
        chunk = conn.recv(n - len(data))
        if not chunk:
            return None
        data += chunk
    return data


def read_packet(conn: socket.socket) -> Optional[Packet]:
    raw_len = _recv_exact(conn, 4)
    if raw_len is None:
        return None
    (ln,) = struct.unpack("<i", raw_len)
    data = _recv_exact(conn, ln)
    if data is None:
        return None
    req_id, kind = struct.unpack("<ii", data[:8])
    return Packet(req_id, kind, data[8:-2].decode("utf-8"))


class MockRconServer:
    """
    Threaded RCON server on 127.0.0.1.

    Echoes request ids, answers a wrong password with id -1, and can be told
    to send extra frames before the auth response, hold replies back and
    send them in reverse, or stay silent.
    """

    def __init__(self) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen()
        self.port = self.sock.getsockname()[1]
        self.password = PASSWORD
        self.leading_frames: List[int] = []
        self.auth_kind = RESP_AUTH_RESPONSE
        self.reply: Callable[[Packet], Optional[str]] = lambda pkt: "OK"
        self.reply_kind = RESP_RESPONSE
        self.batch = 1
        self.received: List[Packet] = []
        self._threads: List[threading.Thread] = []

    @property
    def address(self) -> str:
        return f"127.0.0.1:{self.port}"

    def start(self) -> "MockRconServer":
        t = threading.Thread(target=self._accept_loop, daemon=True)
        t.start()
        self._threads.append(t)
        return self

    def close(self) -> None:
        self.sock.close()

    def _accept_loop(self) -> None:
        while True:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            t = threading.Thread(target=self._handle, args=(conn,), daemon=True)
            t.start()
            self._threads.append(t)

    def _handle(self, conn: socket.socket) -> None:
        with conn:
            try:
                auth = read_packet(conn)
                if auth is None:
                    return
                self.received.append(auth)
                for kind in self.leading_frames:
                    conn.sendall(pack_frame(0, kind, ""))
                if auth.body != self.password:
                    conn.sendall(pack_frame(-1, self.auth_kind, ""))
                    read_packet(conn)  # wait for the client to hang up
                    return
                conn.sendall(pack_frame(auth.request_id, self.auth_kind, ""))

                pending: List[Packet] = []
                while True:
                    pkt = read_packet(conn)
                    if pkt is None:
                        return
                    self.received.append(pkt)
                    pending.append(pkt)
                    if len(pending) < self.batch:
                        continue
                    out = b""
                    for p in reversed(pending) if self.batch > 1 else pending:
                        body = self.reply(p)
                        if body is not None:
                            out += pack_frame(p.request_id, self.reply_kind, body)
                    pending.clear()
                    if out:
                        conn.sendall(out)
            except OSError:
                return


class ChunkedSocket:
    """Socket stand-in that hands out at most ``chunk`` bytes per recv_into."""

    def __init__(self, data: bytes, chunk: int = 1) -> None:
        self.data = bytearray(data)
        self.chunk = chunk
        self.timeout: Optional[float] = None
        self.reads = 0
        self.sent = b""

    def settimeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout

    def recv_into(self, view, nbytes: int = 0) -> int:
        n = min(len(view), self.chunk, len(self.data))
        view[:n] = self.data[:n]
        del self.data[:n]
        self.reads += 1
        return n

    def sendall(self, data: bytes) -> None:
        self.sent += data


@pytest.fixture
def server():
    srv = MockRconServer()
    yield srv
    srv.close()


@pytest.fixture
def pack():
    return pack_frame
