# mc_rcon/rcon_ui.py
from __future__ import annotations

import asyncio
import contextlib
import os
from pathlib import Path
from typing import Callable, Iterable, Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .errors import RconError
from .rcon import RemoteConsole

TAIL_BOOT_BYTES = 64_000  # show last ~64KB of each log on open
TAIL_POLL = 0.25          # seconds
LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the output pane

QUIT_WORDS = ("/quit", "quit", "exit")


async def run_rcon_ui(rcon: RemoteConsole, title: str, logs: Iterable[Path] = ()) -> None:
    """Fullscreen RCON console: output pane (+ tailed server logs) and an input bar."""
    output = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,  # programmatic inserts
    )
    input_field = TextArea(height=1, prompt="> ", multiline=False)
    status = Label(
        text=f"RCON — {title}    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()

    @kb.add("enter", filter=has_focus(input_field))
    async def _(event) -> None:
        cmd = (input_field.text or "").strip()
        input_field.buffer.document = Document(text="")
        if not cmd:
            return
        if cmd.lower() in QUIT_WORDS:
            event.app.exit()
            return
        try:
            resp = await asyncio.to_thread(rcon.command, cmd)
            _append(app, output, f"$ {cmd}\n{resp.body}\n")
        except (RconError, OSError) as e:
            _append(app, output, f"[rcon error] {e}\n")

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        event.app.exit()

    app = Application(
        layout=Layout(HSplit([status, output, input_field]), focused_element=input_field),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )

    _append(app, output, "[rcon] connected. Try: list, say hello, time query daytime\n")

    paths = list(dict.fromkeys(Path(p) for p in logs))
    tail_task = None
    if paths:
        tail_task = asyncio.create_task(tail_many(paths, lambda text: _append(app, output, text)))

    try:
        await app.run_async()
    finally:
        if tail_task is not None:
            tail_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await tail_task


async def tail_many(paths: list[Path], emit: Callable[[str], None]) -> None:
    # Emit the last TAIL_BOOT_BYTES of each file once, then follow.
    offsets: dict[Path, int] = {}
    for p in paths:
        try:
            with p.open("rb") as f:
                f.seek(0, os.SEEK_END)
                end = f.tell()
                start = max(0, end - TAIL_BOOT_BYTES)
                f.seek(start)
                if start > 0:
                    f.readline()  # drop partial first line
                chunk = f.read()
                if chunk:
                    emit(chunk.decode("utf-8", "ignore"))
                offsets[p] = end
        except FileNotFoundError:
            offsets[p] = 0

    while True:
        for p in paths:
            try:
                with p.open("rb") as f:
                    f.seek(offsets.get(p, 0))
                    data = f.read()
                    if data:
                        offsets[p] = f.tell()
                        emit(data.decode("utf-8", "ignore"))
            except FileNotFoundError:
                # may appear later
                pass
        await asyncio.sleep(TAIL_POLL)


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
