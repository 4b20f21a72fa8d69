"""Niri IPC communication via JSON over Unix socket."""

from __future__ import annotations

import asyncio
import json
import os
import socket
from typing import AsyncIterator

from .display import DisplayError
from .models import Monitor


class NiriIPC:
    """Communicate with Niri via its JSON Unix socket IPC."""

    name = "Niri"

    def __init__(self) -> None:
        self._socket_path = os.environ.get("NIRI_SOCKET", "")

    def _request(self, msg: str) -> dict | list | None:
        """Send a JSON request to the Niri socket, return the Ok result."""
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self._socket_path)
            sock.sendall((msg + "\n").encode())
            sock.shutdown(socket.SHUT_WR)

            chunks: list[bytes] = []
            while True:
                chunk = sock.recv(8192)
                if not chunk:
                    break
                chunks.append(chunk)
        finally:
            sock.close()

        raw = b"".join(chunks).decode(errors="replace")
        response = json.loads(raw)

        if "Ok" in response:
            ok = response["Ok"]
            # The Ok value is a dict with a single key (the response type)
            if isinstance(ok, dict) and len(ok) == 1:
                return next(iter(ok.values()))
            return ok
        if "Err" in response:
            raise RuntimeError(f"Niri IPC error: {response['Err']}")
        return response

    def get_monitors(self) -> list[Monitor]:
        """Query the enabled outputs; the focused output stands in for primary."""
        try:
            data = self._request('"Outputs"')
            focused = self._request('"FocusedOutput"')
        except (OSError, json.JSONDecodeError, RuntimeError) as e:
            raise DisplayError(f"niri outputs query failed: {e}") from e
        focused_name = focused.get("name") if isinstance(focused, dict) else None
        return [
            Monitor.from_niri_output(name, out, focused_name)
            for name, out in data.items()
            if out.get("logical") is not None
        ]

    async def connect_event_socket(self) -> AsyncIterator[dict]:
        """Connect to EventStream and yield events indicating output changes.

        Niri has no dedicated output event.  We watch ``WorkspacesChanged``
        and yield only when the set of outputs mentioned in the workspace
        list changes (i.e. a monitor was added or removed).
        """
        reader, writer = await asyncio.open_unix_connection(self._socket_path)

        try:
            writer.write(b'"EventStream"\n')
            await writer.drain()

            known_outputs: set[str] | None = None

            while True:
                line = await reader.readline()
                if not line:
                    break
                text = line.decode(errors="replace").strip()
                if not text:
                    continue
                try:
                    event = json.loads(text)
                except json.JSONDecodeError:
                    continue
                if not isinstance(event, dict):
                    continue

                ws_data = event.get("WorkspacesChanged")
                if ws_data is not None:
                    outputs = {
                        ws.get("output", "")
                        for ws in ws_data.get("workspaces", [])
                        if ws.get("output")
                    }
                    if known_outputs is None:
                        # First event: record initial state, don't yield
                        known_outputs = outputs
                    elif outputs != known_outputs:
                        known_outputs = outputs
                        yield event
        finally:
            writer.close()
