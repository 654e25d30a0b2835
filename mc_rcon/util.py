# mc_rcon/util.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 25575

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Union[str, int] = "WARNING") -> None:
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)


def parse_host_port(host: str) -> Tuple[str, int]:
    """Split ``"host:port"`` on the last colon. ``[::1]:25575`` is accepted."""
    idx = host.rfind(":")
    if idx < 0:
        raise ValueError(f"Invalid host format. Expected 'host:port', got: {host}")
    name, port_s = host[:idx], host[idx + 1:]
    try:
        port = int(port_s)
    except ValueError as e:
        raise ValueError(f"Invalid port number in host: {host}") from e
    if not 0 <= port <= 65535:
        raise ValueError(f"Invalid port number in host: {host}")
    if name.startswith("[") and name.endswith("]"):
        name = name[1:-1]
    return name, port


def read_properties(path: Path) -> dict:
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                props[k.strip()] = v.strip()
    return props


def rcon_settings(
    server_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[str, int, str]:
    """
    Resolve (host, port, password) for a server.

    server.properties wins over RCON_HOST / RCON_PORT / RCON_PASSWORD,
    which win over the defaults.
    """
    env = os.environ if env is None else env
    props = read_properties(Path(server_dir) / "server.properties") if server_dir else {}
    host = props.get("server-ip") or env.get("RCON_HOST") or DEFAULT_HOST
    port = int(props.get("rcon.port") or env.get("RCON_PORT") or DEFAULT_PORT)
    password = props.get("rcon.password") or env.get("RCON_PASSWORD") or ""
    return host, port, password


def format_address(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
