"""Hyprland IPC communication via Unix sockets."""

from __future__ import annotations

import asyncio
import json
import socket
from pathlib import Path
from typing import AsyncIterator

from .display import DisplayError
from .models import Monitor
from .utils import hyprland_runtime_dir


class HyprlandIPC:
    """Communicate with Hyprland via its Unix socket IPC."""

    name = "Hyprland"

    def __init__(self) -> None:
        self._runtime = hyprland_runtime_dir()

    @property
    def command_socket(self) -> Path:
        return self._runtime / ".socket.sock"

    @property
    def event_socket(self) -> Path:
        return self._runtime / ".socket2.sock"

    def _send(self, payload: bytes) -> bytes:
        """Send a raw command to the Hyprland command socket and return the response."""
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(str(self.command_socket))
            sock.sendall(payload)
            chunks: list[bytes] = []
            while True:
                chunk = sock.recv(8192)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)
        finally:
            sock.close()

    def command_json(self, cmd: str) -> list | dict:
        """Send a -j command and return parsed JSON."""
        raw = self._send(f"j/{cmd}".encode()).decode(errors="replace")
        return json.loads(raw)

    def get_monitors(self) -> list[Monitor]:
        """Query the enabled monitors in one round trip."""
        try:
            data = self.command_json("monitors")
        except (OSError, json.JSONDecodeError) as e:
            raise DisplayError(f"hyprctl monitors query failed: {e}") from e
        return [Monitor.from_hyprctl(m) for m in data if not m.get("disabled", False)]

    _MONITOR_EVENTS = (
        "monitoradded>>", "monitorremoved>>",
        "monitoraddedv2>>", "monitorremovedv2>>",
    )

    async def connect_event_socket(self) -> AsyncIterator[str]:
        """Connect to the event socket and yield only monitor hotplug events."""
        reader, writer = await asyncio.open_unix_connection(str(self.event_socket))
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                event = line.decode(errors="replace").strip()
                if any(event.startswith(e) for e in self._MONITOR_EVENTS):
                    yield event
        finally:
            writer.close()
