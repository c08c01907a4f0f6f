"""Shared fixtures: raw snapshot builders, an in-memory DisplayConfig service, a temp store."""

from pathlib import Path
from typing import Callable

import pytest

from dispswitch.config_manager import ConfigManager, JsonConfigStore
from dispswitch.exceptions import ServiceUnavailable
from dispswitch.models import (
    DisplayIdentity,
    RawDisplayState,
    RawLogicalMonitor,
    RawMode,
    RawOutput,
)


DELL = ("DP-1", "DEL", "DELL U2720Q", "ABC123")
HP = ("HDMI-1", "HPN", "HP Z27", "W1")
LG = ("DP-2", "GSM", "LG ULTRAWIDE", "0x00038C43")


def raw_output(ids, modes=("3840x2160@60", "1920x1080@60"), current=0, properties=None) -> RawOutput:
    """Output whose mode number *current* is flagged is-current (None for none)."""
    return RawOutput(
        identity=DisplayIdentity.from_list(ids),
        modes=[
            RawMode(id=mode_id, properties={"is-current": i == current, "is-preferred": i == 0})
            for i, mode_id in enumerate(modes)
        ],
        properties=dict(properties or {}),
    )


def raw_logical(x, y, *ids, scale=1.0, transform=0, primary=False) -> RawLogicalMonitor:
    return RawLogicalMonitor(
        x=x, y=y, scale=scale, transform=transform, primary=primary,
        monitors=[DisplayIdentity.from_list(i) for i in ids],
    )


def raw_state(outputs, logical_monitors, serial=1, properties=None) -> RawDisplayState:
    return RawDisplayState(
        serial=serial,
        outputs=list(outputs),
        logical_monitors=list(logical_monitors),
        properties=dict(properties or {}),
    )


def two_display_state(serial=1, dell_mode=0) -> RawDisplayState:
    """Dell at the origin (primary, scale 2), HP to its right."""
    return raw_state(
        [
            raw_output(DELL, current=dell_mode),
            raw_output(HP, modes=("1920x1080@60",), properties={"is-underscanning": False}),
        ],
        [
            raw_logical(0, 0, DELL, scale=2.0, primary=True),
            raw_logical(1920, 0, HP),
        ],
        serial=serial,
        properties={"layout-mode": 1, "supports-changing-layout-mode": True},
    )


class FakeDisplayService:
    """In-memory stand-in for org.gnome.Mutter.DisplayConfig."""

    def __init__(self, raw: RawDisplayState) -> None:
        self.raw = raw
        self.applied: list[tuple] = []
        self.callback: Callable[[], None] | None = None
        self.fail_fetch = False
        self.fail_apply = False
        self.closed = False

    async def fetch_state(self) -> RawDisplayState:
        if self.fail_fetch:
            raise ServiceUnavailable("GetCurrentState failed: timeout")
        return self.raw

    async def apply(self, serial, method, logical_monitors, properties) -> None:
        if self.fail_apply:
            raise ServiceUnavailable("ApplyMonitorsConfig failed: wrong serial")
        self.applied.append((serial, method, logical_monitors, properties))

    def subscribe(self, callback) -> None:
        self.callback = callback

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def two_displays() -> RawDisplayState:
    return two_display_state()


@pytest.fixture
def fake_service() -> FakeDisplayService:
    return FakeDisplayService(two_display_state())


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "configs.json"


@pytest.fixture
def manager(store_path: Path) -> ConfigManager:
    return ConfigManager(JsonConfigStore(store_path))
