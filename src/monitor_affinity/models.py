"""Data models: Monitor, Affinity, AffinityTerm, CommandTemplate, ProcessSpec."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


# ── Enums ────────────────────────────────────────────────────────────────

class Affinity(Enum):
    PRIMARY = "primary"
    NONPRIMARY = "nonprimary"
    LARGEST = "largest"
    SMALLEST = "smallest"
    LEFTMOST = "leftmost"
    RIGHTMOST = "rightmost"
    TOPMOST = "topmost"
    BOTTOMMOST = "bottommost"
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    HIGH_DENSITY = "high-density"
    LOW_DENSITY = "low-density"

    @property
    def is_ranking(self) -> bool:
        """True if resolved by sorting on a key rather than a yes/no test."""
        return self not in _PREDICATE_AFFINITIES


_PREDICATE_AFFINITIES = frozenset({
    Affinity.PRIMARY,
    Affinity.NONPRIMARY,
    Affinity.PORTRAIT,
    Affinity.LANDSCAPE,
})


class Polarity(Enum):
    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"


class Transform(Enum):
    NORMAL = 0
    ROTATE_90 = 1
    ROTATE_180 = 2
    ROTATE_270 = 3
    FLIPPED = 4
    FLIPPED_90 = 5
    FLIPPED_180 = 6
    FLIPPED_270 = 7

    @property
    def is_rotated(self) -> bool:
        """True if width/height are swapped (90° or 270° variants)."""
        return self.value in (1, 3, 5, 7)


# ── Monitor ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Monitor:
    """A monitor as laid out by the display server at snapshot time.

    ``width``/``height`` are the effective pixel dimensions, i.e. already
    swapped for rotated outputs.
    """

    name: str = ""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    is_primary: bool = False
    width_mm: int | None = None
    height_mm: int | None = None

    # Sway transform strings (Wayland protocol order)
    _SWAY_TRANSFORMS_INV: ClassVar[dict[str, int]] = {
        "normal": 0, "90": 1, "180": 2, "270": 3,
        "flipped": 4, "flipped-90": 5, "flipped-180": 6, "flipped-270": 7,
    }

    # Niri JSON transform strings
    _NIRI_TRANSFORMS_INV: ClassVar[dict[str, int]] = {
        "Normal": 0, "90": 1, "180": 2, "270": 3,
        "Flipped": 4, "Flipped90": 5, "Flipped180": 6, "Flipped270": 7,
    }

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height

    @property
    def pixel_density(self) -> float | None:
        """Horizontal pixels per millimetre, or None if the physical size is unknown."""
        if not self.width_mm:
            return None
        return self.width / self.width_mm

    def __str__(self) -> str:
        flag = " primary" if self.is_primary else ""
        return f"{self.name} {self.width}x{self.height}+{self.x}+{self.y}{flag}"

    @staticmethod
    def _rotated(width: int, height: int, transform: int) -> tuple[int, int]:
        if Transform(transform).is_rotated:
            return height, width
        return width, height

    @classmethod
    def from_hyprctl(cls, data: dict) -> Monitor:
        """Create from a ``hyprctl monitors -j`` record.

        Hyprland has no primary output; the focused one stands in for it.
        """
        width, height = cls._rotated(
            data.get("width", 0), data.get("height", 0), data.get("transform", 0),
        )
        return cls(
            name=data.get("name", ""),
            x=data.get("x", 0),
            y=data.get("y", 0),
            width=width,
            height=height,
            is_primary=bool(data.get("focused", False)),
        )

    @classmethod
    def from_sway_output(cls, data: dict) -> Monitor:
        """Create from a swaymsg ``get_outputs`` record."""
        current_mode = data.get("current_mode") or {}
        rect = data.get("rect", {})
        transform = cls._SWAY_TRANSFORMS_INV.get(data.get("transform", "normal"), 0)
        width, height = cls._rotated(
            current_mode.get("width", rect.get("width", 0)),
            current_mode.get("height", rect.get("height", 0)),
            transform,
        )
        return cls(
            name=data.get("name", ""),
            x=rect.get("x", 0),
            y=rect.get("y", 0),
            width=width,
            height=height,
            is_primary=bool(data.get("primary") or data.get("focused")),
        )

    @classmethod
    def from_niri_output(cls, name: str, data: dict, focused: str | None = None) -> Monitor:
        """Create from a Niri ``Outputs`` entry (name is the connector like "DP-2")."""
        modes = data.get("modes", [])
        idx = data.get("current_mode")
        if idx is not None and 0 <= idx < len(modes):
            current_mode = modes[idx]
        else:
            current_mode = {}

        logical = data.get("logical") or {}
        transform = cls._NIRI_TRANSFORMS_INV.get(logical.get("transform", "Normal"), 0)
        width, height = cls._rotated(
            current_mode.get("width", 0), current_mode.get("height", 0), transform,
        )

        # physical_size is [w, h] in mm, null when the EDID has none
        physical = data.get("physical_size") or (None, None)
        width_mm, height_mm = physical
        if transform in (1, 3, 5, 7) and width_mm is not None:
            width_mm, height_mm = height_mm, width_mm

        return cls(
            name=name,
            x=logical.get("x", 0),
            y=logical.get("y", 0),
            width=width,
            height=height,
            is_primary=focused is not None and name == focused,
            width_mm=width_mm or None,
            height_mm=height_mm or None,
        )

    @classmethod
    def from_screeninfo(cls, m: Any) -> Monitor:
        """Create from a ``screeninfo.Monitor``."""
        return cls(
            name=m.name or "",
            x=m.x,
            y=m.y,
            width=m.width,
            height=m.height,
            is_primary=bool(m.is_primary),
            width_mm=m.width_mm or None,
            height_mm=m.height_mm or None,
        )


# ── Affinity terms ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class AffinityTerm:
    affinity: Affinity
    polarity: Polarity = Polarity.INCLUSIVE

    @property
    def exclusive(self) -> bool:
        return self.polarity is Polarity.EXCLUSIVE

    def __str__(self) -> str:
        if self.exclusive:
            return f"not-{self.affinity.value}"
        return self.affinity.value


# ── Commands ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CommandTemplate:
    program: str
    args: tuple[str, ...] = ()
    env_var: str | None = None
    allow_multiple: bool = False
    placeholder: str = "%s"


@dataclass(frozen=True)
class ProcessSpec:
    """An inert description of a process to launch."""

    program: str
    argv: tuple[str, ...]
    env: dict[str, str] = field(default_factory=dict)
    monitor: str = ""

    def __str__(self) -> str:
        parts = [f"{k}={shlex.quote(v)}" for k, v in self.env.items()]
        parts.extend(shlex.quote(a) for a in self.argv)
        return " ".join(parts)
