"""Utility helpers: XDG paths, compositor runtime dirs, logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path


APP_NAME = "monitor-affinity"

LOG_FORMAT = "%(asctime)s [monitor-affinity] %(levelname)s %(message)s"


def config_dir() -> Path:
    """Return ~/.config/monitor-affinity (not created)."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / APP_NAME


def default_config_path() -> Path:
    """Return the config file used when no command or --config-file is given."""
    return config_dir() / "config.toml"


def runtime_dir() -> Path:
    """Return $XDG_RUNTIME_DIR, falling back to /run/user/<uid>."""
    return Path(os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}"))


def hyprland_runtime_dir() -> Path:
    """Return the Hyprland runtime directory for IPC sockets."""
    his = os.environ.get("HYPRLAND_INSTANCE_SIGNATURE", "")
    return runtime_dir() / "hypr" / his


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for the command-line tool and the daemon."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
