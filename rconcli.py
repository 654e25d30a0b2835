#!/usr/bin/env python3
from __future__ import annotations
import argparse, sys, asyncio, logging
from pathlib import Path
from mc_rcon.errors import RconError
from mc_rcon.rcon import RconConfig, RemoteConsole, connect, DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT
from mc_rcon.util import rcon_settings, format_address, setup_logging

log = logging.getLogger("rconcli")

# --- connection --------------------------------------------------------------

def open_console(args) -> RemoteConsole:
    host, port, password = rcon_settings(args.server_dir)
    address = args.host or format_address(host, port)
    if args.password is not None:
        password = args.password
    config = RconConfig(connect_timeout=args.connect_timeout, read_timeout=args.read_timeout)
    log.info("connecting to %s", address)
    return connect(address, password, config)

# --- exec / pipe / console ---------------------------------------------------

def do_exec(args):
    with open_console(args) as rcon:
        for cmd in args.commands:
            print(rcon.command(cmd).body)
    return 0

def do_pipe(args):
    """Writes every command first, then reads the responses in arrival order."""
    with open_console(args) as rcon:
        ids = [rcon.write(cmd) for cmd in args.commands]
        log.debug("pipelined request ids: %s", ids)
        for _ in ids:
            r = rcon.read()
            print(f"{r.request_id}\t{r.body}")
    return 0

def do_console(args):
    """Opens the prompt_toolkit console; plain input loop when it is unavailable."""
    with open_console(args) as rcon:
        logs = [Path(p) for p in args.log or []]
        if args.server_dir and not logs:
            logs = [Path(args.server_dir) / "logs" / "latest.log"]
        if not sys.stdin.isatty():
            return _plain(rcon)
        try:
            from mc_rcon.rcon_ui import run_rcon_ui
        except ImportError as e:
            print(f"prompt_toolkit UI not available ({e}); falling back to plain RCON.", flush=True)
            return _plain(rcon)
        try:
            asyncio.run(run_rcon_ui(rcon, args.host or format_address(*rcon.remote_address[:2]), logs))
        except KeyboardInterrupt:
            pass
    return 0

QUIT_WORDS = ("/quit", "quit", "exit")

def _plain(rcon, read=input, write=print):
    write("Interactive RCON. Type /quit to exit.")
    while True:
        try:
            cmd = read("> ").strip()
        except EOFError:
            break
        if cmd.lower() in QUIT_WORDS: break
        if not cmd: continue
        try:
            write(rcon.command(cmd).body)
        except (RconError, OSError) as e:
            write(f"[rcon error] {e}")
            if isinstance(e, ConnectionError): break
    return 0

# --- argparse ----------------------------------------------------------------

def build_parser():
    p = argparse.ArgumentParser(prog="rconcli", description="Source RCON client.")
    p.add_argument("--host", help="host:port (default: server.properties, $RCON_HOST/$RCON_PORT, 127.0.0.1:25575)")
    p.add_argument("--password", help="RCON password (default: server.properties or $RCON_PASSWORD)")
    p.add_argument("--server-dir", type=Path, help="Minecraft server directory with server.properties")
    p.add_argument("--connect-timeout", type=float, default=DEFAULT_CONNECT_TIMEOUT, help="seconds")
    p.add_argument("--read-timeout", type=float, default=DEFAULT_READ_TIMEOUT, help="seconds")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser("exec", help="Run commands one at a time and print each response")
    pe.add_argument("commands", nargs="+")
    pe.set_defaults(func=do_exec)

    pp = sub.add_parser("pipe", help="Send all commands, then read all responses")
    pp.add_argument("commands", nargs="+")
    pp.set_defaults(func=do_pipe)

    pc = sub.add_parser("console", help="Interactive console (prompt_toolkit)")
    pc.add_argument("--log", action="append", help="server log file to tail (repeatable)")
    pc.set_defaults(func=do_console)

    return p

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return args.func(args)
    except (RconError, OSError, ValueError) as e:
        print(f"rconcli: {e}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    raise SystemExit(main())
