"""Display server detection."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from .utils import runtime_dir

if TYPE_CHECKING:
    from .hyprland import HyprlandIPC
    from .niri import NiriIPC
    from .sway import SwayIPC
    from .x11 import XorgDisplay

    Backend = HyprlandIPC | NiriIPC | SwayIPC | XorgDisplay

log = logging.getLogger(__name__)


class DisplayError(RuntimeError):
    """The display server could not be queried."""


def detect_backend() -> Backend | None:
    """Auto-detect the running display server.

    First checks environment variables, then probes XDG_RUNTIME_DIR
    for compositor sockets (handles race condition at login when env vars
    are not yet exported to the systemd user manager).
    """
    from .hyprland import HyprlandIPC
    from .niri import NiriIPC
    from .sway import SwayIPC
    from .x11 import XorgDisplay

    if os.environ.get("HYPRLAND_INSTANCE_SIGNATURE"):
        return HyprlandIPC()
    if os.environ.get("NIRI_SOCKET"):
        return NiriIPC()
    if os.environ.get("SWAYSOCK"):
        return SwayIPC()
    if os.environ.get("DISPLAY") and not os.environ.get("WAYLAND_DISPLAY"):
        return XorgDisplay()

    xdg_path = runtime_dir()

    # Hyprland: look for $XDG_RUNTIME_DIR/hypr/<signature>/.socket.sock
    hypr_dir = xdg_path / "hypr"
    if hypr_dir.is_dir():
        for child in hypr_dir.iterdir():
            if child.is_dir() and (child / ".socket.sock").exists():
                os.environ["HYPRLAND_INSTANCE_SIGNATURE"] = child.name
                log.info("Found Hyprland socket: %s", child.name)
                return HyprlandIPC()

    # Niri: look for $XDG_RUNTIME_DIR/niri.*.sock
    for sock in xdg_path.glob("niri.*.sock"):
        if sock.is_socket():
            os.environ["NIRI_SOCKET"] = str(sock)
            log.info("Found Niri socket: %s", sock.name)
            return NiriIPC()

    # Sway: look for $XDG_RUNTIME_DIR/sway-ipc.*.sock
    for sock in xdg_path.glob("sway-ipc.*.sock"):
        if sock.is_socket():
            os.environ["SWAYSOCK"] = str(sock)
            log.info("Found Sway socket: %s", sock.name)
            return SwayIPC()

    # XWayland-only sessions still answer RandR queries
    if os.environ.get("DISPLAY"):
        return XorgDisplay()

    return None
