"""Affinity resolution: narrow a monitor snapshot down to the preferred monitors."""

from __future__ import annotations

import math
from typing import Callable, Iterable, Sequence

from .models import Affinity, AffinityTerm, Monitor


def _density_key(sign: int) -> Callable[[Monitor], float]:
    def key(m: Monitor) -> float:
        density = m.pixel_density
        # Unknown physical size never wins, unless nothing is known at all
        if density is None:
            return math.inf
        return sign * density
    return key


# Predicates answer yes/no per monitor.
PREDICATES: dict[Affinity, Callable[[Monitor], bool]] = {
    Affinity.PRIMARY: lambda m: m.is_primary,
    Affinity.NONPRIMARY: lambda m: not m.is_primary,
    Affinity.PORTRAIT: lambda m: m.is_portrait,
    Affinity.LANDSCAPE: lambda m: m.is_landscape,
}

# Ranking keys: the smallest key is always the preferred extreme.
RANKING_KEYS: dict[Affinity, Callable[[Monitor], float]] = {
    Affinity.LARGEST: lambda m: -m.area,
    Affinity.SMALLEST: lambda m: m.area,
    Affinity.LEFTMOST: lambda m: m.x,
    Affinity.RIGHTMOST: lambda m: -m.x,
    # Larger y is higher up
    Affinity.TOPMOST: lambda m: -m.y,
    Affinity.BOTTOMMOST: lambda m: m.y,
    Affinity.HIGH_DENSITY: _density_key(-1),
    Affinity.LOW_DENSITY: _density_key(1),
}


def apply_term(term: AffinityTerm, monitors: Sequence[Monitor]) -> list[Monitor]:
    """Apply a single term to a working set, returning the survivors."""
    affinity = term.affinity
    keep_matching = not term.exclusive

    if not affinity.is_ranking:
        predicate = PREDICATES[affinity]
        return [m for m in monitors if predicate(m) == keep_matching]

    if not monitors:
        return []

    key = RANKING_KEYS[affinity]
    ranked = sorted(monitors, key=key)
    best = key(ranked[0])
    return [m for m in ranked if (key(m) == best) == keep_matching]


def resolve(terms: Iterable[AffinityTerm], monitors: Iterable[Monitor]) -> list[Monitor]:
    """Return the monitors matching every term, evaluated left to right.

    Each term narrows the survivors of the previous one, so later terms act
    as tie-breakers. Ranking terms keep every monitor tied at the extreme;
    their ``not-`` form keeps everything else, which is nothing when a
    single monitor is left. The result is sorted by name so that
    under-determined selections are reproducible.
    """
    selected = list(monitors)
    for term in terms:
        selected = apply_term(term, selected)

    selected.sort(key=lambda m: m.name)
    return selected


def describe(selection: Iterable[Monitor]) -> str:
    """Comma-separated monitor names, for log lines."""
    names = [m.name for m in selection]
    return ", ".join(names) if names else "(none)"
