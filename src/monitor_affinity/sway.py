"""Sway IPC communication via binary i3-ipc protocol."""

from __future__ import annotations

import asyncio
import json
import os
import socket
import struct
from typing import AsyncIterator

from .display import DisplayError
from .models import Monitor

# i3-ipc protocol constants
_MAGIC = b"i3-ipc"
_HEADER_SIZE = 14  # 6 (magic) + 4 (payload_len) + 4 (type)
_HEADER_FMT = f"={len(_MAGIC)}sII"

# Message types
IPC_SUBSCRIBE = 2
IPC_GET_OUTPUTS = 3

# Event type (high bit set)
EVENT_OUTPUT = 0x80000001


def _recv_exactly(sock: socket.socket, n: int) -> bytes:
    """Read exactly n bytes from a socket."""
    buf = bytearray()
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        if not chunk:
            raise ConnectionError("Socket closed while reading")
        buf.extend(chunk)
    return bytes(buf)


def _pack(msg_type: int, payload: bytes = b"") -> bytes:
    return struct.pack(_HEADER_FMT, _MAGIC, len(payload), msg_type) + payload


class SwayIPC:
    """Communicate with Sway via the i3-ipc binary protocol."""

    name = "Sway"

    def __init__(self) -> None:
        self._socket_path = os.environ.get("SWAYSOCK", "")

    def _send(self, msg_type: int, payload: str = "") -> dict | list:
        """Send a message and return the parsed JSON response."""
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self._socket_path)
            sock.sendall(_pack(msg_type, payload.encode()))

            resp_header = _recv_exactly(sock, _HEADER_SIZE)
            _, resp_len, _ = struct.unpack(_HEADER_FMT, resp_header)

            resp_payload = _recv_exactly(sock, resp_len)
            return json.loads(resp_payload.decode())
        finally:
            sock.close()

    def get_monitors(self) -> list[Monitor]:
        """Query the active outputs in one round trip."""
        try:
            outputs = self._send(IPC_GET_OUTPUTS)
        except (OSError, json.JSONDecodeError) as e:
            raise DisplayError(f"sway get_outputs failed: {e}") from e
        return [Monitor.from_sway_output(o) for o in outputs if o.get("active", True)]

    async def connect_event_socket(self) -> AsyncIterator[dict]:
        """Subscribe to output events and yield their payloads."""
        reader, writer = await asyncio.open_unix_connection(self._socket_path)

        try:
            writer.write(_pack(IPC_SUBSCRIBE, json.dumps(["output"]).encode()))
            await writer.drain()

            # Consume the subscribe ACK
            ack_header = await reader.readexactly(_HEADER_SIZE)
            _, ack_len, _ = struct.unpack(_HEADER_FMT, ack_header)
            await reader.readexactly(ack_len)

            # sway reports most layout changes as "unspecified"
            while True:
                evt_header = await reader.readexactly(_HEADER_SIZE)
                _, evt_len, evt_type = struct.unpack(_HEADER_FMT, evt_header)
                evt_payload = await reader.readexactly(evt_len)

                if evt_type == EVENT_OUTPUT:
                    event = json.loads(evt_payload.decode())
                    if event.get("change", "") in ("new", "del", "unspecified"):
                        yield event
        finally:
            writer.close()
