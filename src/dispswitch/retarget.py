"""Replay a saved layout on the live displays' current modes."""

from __future__ import annotations

import logging

from .exceptions import RetargetError
from .models import LogicalMonitor, MonitorAssignment, PhysicalDisplay, find_display

log = logging.getLogger(__name__)


def retarget(
    saved: list[LogicalMonitor], live: list[PhysicalDisplay],
) -> list[LogicalMonitor]:
    """Rebuild *saved* for the apply call.

    Position, scale, transform and the primary flag are kept as saved.  Each
    assignment takes the connector, current mode and properties of the
    matching live display; saved mode IDs are never sent.  Assignments whose
    display is gone are dropped.  Raises RetargetError if that leaves a
    logical monitor empty.
    """
    result: list[LogicalMonitor] = []
    for lm in saved:
        monitors: list[MonitorAssignment] = []
        for assignment in lm.monitors:
            display = find_display(live, assignment.identity)
            if display is None:
                log.warning("Display %s is not connected, dropping it from the layout", assignment.identity)
                continue
            monitors.append(MonitorAssignment(
                identity=display.identity,
                mode_id=display.current_mode_id,
                properties=dict(display.properties),
            ))
        if not monitors:
            raise RetargetError(
                f"logical monitor at ({lm.x}, {lm.y}) has no connected display"
            )
        result.append(LogicalMonitor(
            x=lm.x,
            y=lm.y,
            scale=lm.scale,
            transform=lm.transform,
            primary=lm.primary,
            monitors=monitors,
        ))
    return result
