"""Positional DisplayConfig D-Bus shapes <-> named model types.

GetCurrentState returns::

    (u serial,
     a((ssss) a(siiddada{sv}) a{sv}) monitors,
     a(iiduba(ssss)a{sv}) logical_monitors,
     a{sv} properties)

ApplyMonitorsConfig takes ``(u serial, u method, a(iiduba(ssa{sv})), a{sv})``.
Values here are plain Python objects as produced by ``GLib.Variant.unpack()``.
"""

from __future__ import annotations

from typing import Any, Callable

from .models import (
    GLOBAL_PROPERTIES,
    MONITOR_PROPERTIES,
    DisplayIdentity,
    LogicalMonitor,
    RawDisplayState,
    RawLogicalMonitor,
    RawMode,
    RawOutput,
)

GET_CURRENT_STATE_SIGNATURE = "(ua((ssss)a(siiddada{sv})a{sv})a(iiduba(ssss)a{sv})a{sv})"
APPLY_SIGNATURE = "(uua(iiduba(ssa{sv}))a{sv})"

# Wraps a (signature, value) pair into whatever the transport needs for a "v".
Wrapper = Callable[[str, Any], Any]


def _as_pair(signature: str, value: Any) -> Any:
    return (signature, value)


def parse_current_state(reply: tuple | list) -> RawDisplayState:
    """Turn an unpacked GetCurrentState reply into a RawDisplayState."""
    serial, raw_monitors, raw_logical, properties = reply

    outputs: list[RawOutput] = []
    for ids, raw_modes, props in raw_monitors:
        modes = [
            RawMode(id=str(mode_id), properties=dict(mode_props))
            for mode_id, _width, _height, _refresh, _pref_scale, _scales, mode_props in raw_modes
        ]
        outputs.append(RawOutput(
            identity=DisplayIdentity.from_list(ids),
            modes=modes,
            properties=dict(props),
        ))

    logical = [
        RawLogicalMonitor(
            x=x, y=y, scale=scale, transform=transform, primary=primary,
            monitors=[DisplayIdentity.from_list(ids) for ids in monitors],
        )
        for x, y, scale, transform, primary, monitors, _props in raw_logical
    ]

    return RawDisplayState(
        serial=int(serial),
        outputs=outputs,
        logical_monitors=logical,
        properties=dict(properties),
    )


def properties_to_wire(
    props: dict[str, Any],
    table: dict[str, tuple[type, str]],
    wrap: Wrapper = _as_pair,
) -> dict[str, Any]:
    """Wrap each whitelisted value with its declared signature; drop the rest."""
    result: dict[str, Any] = {}
    for key, value in props.items():
        entry = table.get(key)
        if entry is None:
            continue
        py_type, signature = entry
        result[key] = wrap(signature, py_type(value))
    return result


def logical_monitors_to_wire(
    logical_monitors: list[LogicalMonitor], wrap: Wrapper = _as_pair,
) -> list[tuple]:
    """``a(iiduba(ssa{sv}))`` payload for ApplyMonitorsConfig."""
    return [
        (
            int(lm.x),
            int(lm.y),
            float(lm.scale),
            lm.transform.value,
            bool(lm.primary),
            [
                (m.connector, m.mode_id, properties_to_wire(m.properties, MONITOR_PROPERTIES, wrap))
                for m in lm.monitors
            ],
        )
        for lm in logical_monitors
    ]


def apply_arguments(
    serial: int,
    method: int,
    logical_monitors: list[LogicalMonitor],
    properties: dict[str, Any],
    wrap: Wrapper = _as_pair,
) -> tuple:
    """Argument tuple matching APPLY_SIGNATURE."""
    return (
        int(serial),
        int(method),
        logical_monitors_to_wire(logical_monitors, wrap),
        properties_to_wire(properties, GLOBAL_PROPERTIES, wrap),
    )
