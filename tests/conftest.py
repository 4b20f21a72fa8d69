"""Shared test fixtures for the monitor_affinity test suite."""

from __future__ import annotations

import pytest

from monitor_affinity.models import Monitor


@pytest.fixture
def primary() -> Monitor:
    return Monitor(name="PRIMARY", x=0, y=0, width=1920, height=1080, is_primary=True)


@pytest.fixture
def large() -> Monitor:
    return Monitor(name="LARGE", x=1920, y=0, width=3440, height=1440)


@pytest.fixture
def top() -> Monitor:
    """Sits above PRIMARY."""
    return Monitor(name="TOP", x=0, y=1440, width=1024, height=768)


@pytest.fixture
def portrait() -> Monitor:
    """Rotated monitor between PRIMARY and TOP."""
    return Monitor(name="PORTRAIT", x=0, y=1080, width=768, height=1024)


@pytest.fixture
def all_monitors(
    primary: Monitor, top: Monitor, large: Monitor, portrait: Monitor,
) -> list[Monitor]:
    return [primary, top, large, portrait]
