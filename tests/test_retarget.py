"""Tests for replaying saved layouts on live modes."""

import pytest

from dispswitch.exceptions import IdentityError, RetargetError
from dispswitch.models import (
    DisplayIdentity,
    LogicalMonitor,
    MonitorAssignment,
    PhysicalDisplay,
    Transform,
)
from dispswitch.retarget import retarget


def test_geometry_kept_mode_substituted():
    saved = [LogicalMonitor(
        x=0, y=0, scale=1.0, transform=Transform.NORMAL, primary=True,
        monitors=[MonitorAssignment(DisplayIdentity("DP-1"), "mode-A", {})],
    )]
    live = [PhysicalDisplay(DisplayIdentity("DP-1", "Dell", "U2720Q", "ABC123"), "mode-B", {})]

    result = retarget(saved, live)

    assert len(result) == 1
    lm = result[0]
    assert (lm.x, lm.y, lm.scale, lm.transform, lm.primary) == (0, 0, 1.0, Transform.NORMAL, True)
    assert [(m.connector, m.mode_id, m.properties) for m in lm.monitors] == [("DP-1", "mode-B", {})]


def test_live_properties_replace_saved_ones():
    saved = [LogicalMonitor(x=1920, scale=1.5, transform=Transform.ROTATE_90, monitors=[
        MonitorAssignment(DisplayIdentity("HDMI-1", "HPN"), "old", {"underscanning": True}),
    ])]
    live = [PhysicalDisplay(DisplayIdentity("HDMI-1", "HPN", "HP Z27", "W1"), "new", {"underscanning": False})]

    lm = retarget(saved, live)[0]

    assert (lm.x, lm.scale, lm.transform) == (1920, 1.5, Transform.ROTATE_90)
    assert lm.monitors[0].properties == {"underscanning": False}
    assert lm.monitors[0].identity == DisplayIdentity("HDMI-1", "HPN", "HP Z27", "W1")


def test_missing_clone_is_dropped():
    saved = [LogicalMonitor(monitors=[
        MonitorAssignment(DisplayIdentity("DP-1"), "a"),
        MonitorAssignment(DisplayIdentity("DP-2"), "b"),
    ])]
    live = [PhysicalDisplay(DisplayIdentity("DP-1"), "a2")]

    lm = retarget(saved, live)[0]

    assert [(m.connector, m.mode_id) for m in lm.monitors] == [("DP-1", "a2")]


def test_empty_logical_monitor_aborts():
    saved = [
        LogicalMonitor(monitors=[MonitorAssignment(DisplayIdentity("DP-1"), "a")]),
        LogicalMonitor(x=1920, monitors=[MonitorAssignment(DisplayIdentity("DP-2"), "b")]),
    ]
    live = [PhysicalDisplay(DisplayIdentity("DP-1"), "a")]

    with pytest.raises(RetargetError):
        retarget(saved, live)


def test_retarget_error_is_identity_error():
    assert issubclass(RetargetError, IdentityError)


def test_saved_layout_not_mutated():
    saved = [LogicalMonitor(monitors=[MonitorAssignment(DisplayIdentity("DP-1"), "mode-A")])]
    retarget(saved, [PhysicalDisplay(DisplayIdentity("DP-1"), "mode-B")])
    assert saved[0].monitors[0].mode_id == "mode-A"
