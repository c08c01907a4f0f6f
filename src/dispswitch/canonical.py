"""Canonical form of the live display state and the configuration hash."""

from __future__ import annotations

import copy
import hashlib
import json
import logging

from .exceptions import IdentityError
from .models import (
    GLOBAL_PROPERTIES,
    MONITOR_PROPERTIES,
    DisplayIdentity,
    DisplayState,
    LogicalMonitor,
    MonitorAssignment,
    PhysicalDisplay,
    RawDisplayState,
    RawOutput,
    SavedConfiguration,
    Transform,
    filter_properties,
)

log = logging.getLogger(__name__)


def _current_mode_id(output: RawOutput) -> str:
    current = [m.id for m in output.modes if m.is_current]
    if len(current) != 1:
        raise IdentityError(
            f"{output.identity}: expected exactly one current mode, found {len(current)}"
        )
    return current[0]


def _output_properties(output: RawOutput) -> dict:
    # Mutter reports the toggle as "is-underscanning"; the apply call takes "underscanning".
    props = output.properties
    if "is-underscanning" not in props:
        return {}
    if props.get("supports-underscanning") is False:
        return {}
    return filter_properties({"underscanning": props["is-underscanning"]}, MONITOR_PROPERTIES)


def _global_properties(props: dict) -> dict:
    if "layout-mode" not in props or not props.get("supports-changing-layout-mode", False):
        return {}
    return filter_properties({"layout-mode": props["layout-mode"]}, GLOBAL_PROPERTIES)


def sort_logical_monitors(logical_monitors: list[LogicalMonitor]) -> list[LogicalMonitor]:
    """Sort assignments inside each logical monitor, then the monitors themselves."""
    for lm in logical_monitors:
        lm.monitors.sort(key=MonitorAssignment.sort_key)
    return sorted(logical_monitors, key=LogicalMonitor.sort_key)


def canonicalize(raw: RawDisplayState) -> DisplayState:
    """Build a DisplayState whose layout reflects each display's live current mode.

    Raises IdentityError when an output has no (or more than one) current
    mode, when two outputs share an identity, or when a logical monitor
    references an output that is not part of the snapshot.
    """
    displays: dict[DisplayIdentity, PhysicalDisplay] = {}
    for output in raw.outputs:
        if output.identity in displays:
            raise IdentityError(f"duplicate display identity {output.identity}")
        displays[output.identity] = PhysicalDisplay(
            identity=output.identity,
            current_mode_id=_current_mode_id(output),
            properties=_output_properties(output),
        )

    logical_monitors: list[LogicalMonitor] = []
    for raw_lm in raw.logical_monitors:
        monitors: list[MonitorAssignment] = []
        for identity in raw_lm.monitors:
            display = displays.get(identity)
            if display is None:
                raise IdentityError(f"logical monitor references unknown display {identity}")
            monitors.append(MonitorAssignment(
                identity=display.identity,
                mode_id=display.current_mode_id,
                properties=dict(display.properties),
            ))
        try:
            transform = Transform(int(raw_lm.transform))
        except ValueError as e:
            raise IdentityError(f"invalid transform {raw_lm.transform!r}") from e
        logical_monitors.append(LogicalMonitor(
            x=int(raw_lm.x),
            y=int(raw_lm.y),
            scale=float(raw_lm.scale),
            transform=transform,
            primary=bool(raw_lm.primary),
            monitors=monitors,
        ))

    state = DisplayState(
        serial=int(raw.serial),
        physical_displays=sorted(displays.values(), key=PhysicalDisplay.sort_key),
        logical_monitors=sort_logical_monitors(logical_monitors),
        properties=_global_properties(raw.properties),
    )
    log.debug(
        "Canonicalized serial %d: %d display(s), %d logical monitor(s)",
        state.serial, len(state.physical_displays), len(state.logical_monitors),
    )
    return state


def serialize(
    logical_monitors: list[LogicalMonitor],
    properties: dict,
    physical_displays: list[DisplayIdentity],
) -> str:
    """Deterministic JSON text of the parts that make up a configuration's identity."""
    payload = {
        "logical_monitors": [lm.to_dict() for lm in logical_monitors],
        "properties": properties,
        "physical_displays": [d.to_list() for d in physical_displays],
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def config_hash(
    logical_monitors: list[LogicalMonitor],
    properties: dict,
    physical_displays: list[DisplayIdentity],
) -> int:
    """Unsigned 64-bit hash of a canonical layout. The serial never takes part."""
    text = serialize(
        sort_logical_monitors(copy.deepcopy(logical_monitors)),
        dict(sorted(properties.items())),
        sorted(physical_displays),
    )
    return int.from_bytes(hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest(), "big")


def identify(state: DisplayState) -> tuple[int, SavedConfiguration]:
    """Return the state's hash and an unnamed SavedConfiguration capturing it."""
    logical_monitors = sort_logical_monitors(copy.deepcopy(state.logical_monitors))
    properties = dict(sorted(state.properties.items()))
    physical = sorted(d.identity for d in state.physical_displays)
    value = config_hash(logical_monitors, properties, physical)
    return value, SavedConfiguration(
        name="",
        hash=value,
        logical_monitors=logical_monitors,
        properties=properties,
        physical_displays=physical,
    )
