"""Xorg monitor queries via screeninfo, hotplug events via udev."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import AsyncIterator

import pyudev
from screeninfo import Enumerator, ScreenInfoError, get_monitors

from .display import DisplayError
from .models import Monitor

log = logging.getLogger(__name__)

_DRM_ACTIONS = ("change", "add", "remove")


class XorgDisplay:
    """Read the RandR monitor list of the X server named by $DISPLAY."""

    name = "Xorg"

    def __init__(self) -> None:
        self.display = os.environ.get("DISPLAY", "")

    def get_monitors(self) -> list[Monitor]:
        """Query all RandR monitors in one round trip."""
        try:
            found = get_monitors(Enumerator.Xrandr)
        except (ScreenInfoError, UnicodeDecodeError) as e:
            raise DisplayError(f"xrandr query on {self.display or 'default display'} failed: {e}") from e
        return [Monitor.from_screeninfo(m) for m in found]

    async def connect_event_socket(self) -> AsyncIterator[pyudev.Device]:
        """Yield udev DRM events (connector plugged, unplugged or changed)."""
        context = pyudev.Context()
        monitor = pyudev.Monitor.from_netlink(context)
        monitor.filter_by(subsystem="drm")
        monitor.start()

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def on_readable() -> None:
            device = monitor.poll(timeout=0)
            if device and device.action in _DRM_ACTIONS:
                queue.put_nowait(device)

        loop.add_reader(monitor.fileno(), on_readable)
        try:
            while True:
                device = await queue.get()
                log.debug("udev DRM event: %s %s", device.action, device.device_path)
                yield device
        finally:
            loop.remove_reader(monitor.fileno())
