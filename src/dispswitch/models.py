"""Data models: DisplayIdentity, PhysicalDisplay, LogicalMonitor, SavedConfiguration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ── Typed properties ─────────────────────────────────────────────────────

# Recognized property keys: key -> (python type, GVariant signature).
# Anything else reported by the compositor is dropped.
MONITOR_PROPERTIES: dict[str, tuple[type, str]] = {
    "underscanning": (bool, "b"),
}

GLOBAL_PROPERTIES: dict[str, tuple[type, str]] = {
    "layout-mode": (int, "u"),
}


def filter_properties(
    props: dict[str, Any] | None, table: dict[str, tuple[type, str]],
) -> dict[str, Any]:
    """Keep whitelisted keys only, coerced to their declared type, sorted by key."""
    result: dict[str, Any] = {}
    for key, value in (props or {}).items():
        entry = table.get(key)
        if entry is None:
            continue
        result[key] = entry[0](value)
    return dict(sorted(result.items()))


def _props_key(props: dict[str, Any]) -> tuple:
    return tuple(sorted(props.items()))


# ── Enums ────────────────────────────────────────────────────────────────

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
    def label(self) -> str:
        labels = {
            0: "Normal",
            1: "90°",
            2: "180°",
            3: "270°",
            4: "Flipped",
            5: "Flipped 90°",
            6: "Flipped 180°",
            7: "Flipped 270°",
        }
        return labels[self.value]


class ApplyMethod(Enum):
    """Method argument of ApplyMonitorsConfig."""
    VERIFY = 0
    TEMPORARY = 1
    PERSISTENT = 2


# ── DisplayIdentity ──────────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class DisplayIdentity:
    """Connector plus EDID vendor/product/serial of one physical display.

    Configurations written by older releases may carry only the connector;
    the missing components are stored as empty strings.
    """
    connector: str = ""
    vendor: str = ""
    product: str = ""
    serial: str = ""

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.connector, self.vendor, self.product, self.serial)

    @property
    def significant(self) -> tuple[str, ...]:
        """Components up to the last non-empty one."""
        parts = self.as_tuple()
        end = len(parts)
        while end and not parts[end - 1]:
            end -= 1
        return parts[:end]

    def matches(self, other: DisplayIdentity) -> bool:
        """Prefix equality: the shorter identity must agree with the longer one."""
        a, b = self.significant, other.significant
        n = min(len(a), len(b))
        return a[:n] == b[:n]

    def to_list(self) -> list[str]:
        return list(self.as_tuple())

    @classmethod
    def from_list(cls, parts: list | tuple) -> DisplayIdentity:
        """Build from a sequence of one to four strings."""
        parts = [str(p) for p in parts]
        if not 1 <= len(parts) <= 4:
            raise ValueError(f"display identity needs 1 to 4 components, got {len(parts)}")
        return cls(*parts)

    def __str__(self) -> str:
        return " ".join(p for p in self.as_tuple() if p)


# ── PhysicalDisplay ──────────────────────────────────────────────────────

@dataclass
class PhysicalDisplay:
    identity: DisplayIdentity
    current_mode_id: str
    properties: dict[str, Any] = field(default_factory=dict)

    def sort_key(self) -> tuple:
        return (self.identity.as_tuple(), self.current_mode_id, _props_key(self.properties))


# ── LogicalMonitor ───────────────────────────────────────────────────────

@dataclass
class MonitorAssignment:
    """One physical output mapped into a logical monitor."""
    identity: DisplayIdentity
    mode_id: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def connector(self) -> str:
        return self.identity.connector

    def sort_key(self) -> tuple:
        return (self.identity.as_tuple(), self.mode_id, _props_key(self.properties))

    def to_dict(self) -> dict:
        return {
            "identity": self.identity.to_list(),
            "mode_id": self.mode_id,
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, d: dict) -> MonitorAssignment:
        return cls(
            identity=DisplayIdentity.from_list(d.get("identity", [])),
            mode_id=str(d.get("mode_id", "")),
            properties=filter_properties(d.get("properties"), MONITOR_PROPERTIES),
        )


@dataclass
class LogicalMonitor:
    x: int = 0
    y: int = 0
    scale: float = 1.0
    transform: Transform = Transform.NORMAL
    primary: bool = False
    monitors: list[MonitorAssignment] = field(default_factory=list)

    def sort_key(self) -> tuple:
        return (
            self.x, self.y, self.scale, self.transform.value, self.primary,
            tuple(m.sort_key() for m in self.monitors),
        )

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "scale": self.scale,
            "transform": self.transform.value,
            "primary": self.primary,
            "monitors": [m.to_dict() for m in self.monitors],
        }

    @classmethod
    def from_dict(cls, d: dict) -> LogicalMonitor:
        return cls(
            x=int(d.get("x", 0)),
            y=int(d.get("y", 0)),
            scale=float(d.get("scale", 1.0)),
            transform=Transform(int(d.get("transform", 0))),
            primary=bool(d.get("primary", False)),
            monitors=[MonitorAssignment.from_dict(m) for m in d.get("monitors", [])],
        )


# ── DisplayState ─────────────────────────────────────────────────────────

@dataclass
class DisplayState:
    """Canonical live snapshot. ``serial`` is echoed back on apply."""
    serial: int
    physical_displays: list[PhysicalDisplay] = field(default_factory=list)
    logical_monitors: list[LogicalMonitor] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)

    def find_display(self, identity: DisplayIdentity) -> PhysicalDisplay | None:
        return find_display(self.physical_displays, identity)


def find_display(
    displays: list[PhysicalDisplay], identity: DisplayIdentity,
) -> PhysicalDisplay | None:
    """First display whose identity prefix-matches *identity*."""
    for display in displays:
        if display.identity.matches(identity):
            return display
    return None


# ── SavedConfiguration ───────────────────────────────────────────────────

@dataclass
class SavedConfiguration:
    name: str = ""
    hash: int = 0
    logical_monitors: list[LogicalMonitor] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)
    physical_displays: list[DisplayIdentity] = field(default_factory=list)

    @property
    def referenced_identities(self) -> list[DisplayIdentity]:
        """Every identity mapped into one of the logical monitors."""
        return [m.identity for lm in self.logical_monitors for m in lm.monitors]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "hash": self.hash,
            "logical_monitors": [lm.to_dict() for lm in self.logical_monitors],
            "properties": dict(self.properties),
            "physical_displays": [d.to_list() for d in self.physical_displays],
        }

    @classmethod
    def from_dict(cls, d: dict | list) -> SavedConfiguration:
        """Deserialize; also accepts the positional layout of older releases."""
        if isinstance(d, (list, tuple)):
            return cls._from_positional(d)
        return cls(
            name=str(d.get("name", "")),
            hash=int(d.get("hash", 0)),
            logical_monitors=[LogicalMonitor.from_dict(lm) for lm in d.get("logical_monitors", [])],
            properties=filter_properties(d.get("properties"), GLOBAL_PROPERTIES),
            physical_displays=[DisplayIdentity.from_list(p) for p in d.get("physical_displays", [])],
        )

    @classmethod
    def _from_positional(cls, entry: list | tuple) -> SavedConfiguration:
        """Parse ``[name, hash, logical_monitors, properties, physical_displays]``.

        Logical monitors are ``[x, y, scale, transform, primary, monitors]``
        with monitors ``[connector, mode_id, properties]``.  The connector is
        widened to the full identity when the entry's display list has it.
        """
        if len(entry) != 5:
            raise ValueError(f"positional configuration needs 5 fields, got {len(entry)}")
        name, hash_, raw_lms, props, raw_displays = entry
        displays = [DisplayIdentity.from_list(p) for p in raw_displays]
        by_connector = {d.connector: d for d in displays}

        lms: list[LogicalMonitor] = []
        for x, y, scale, transform, primary, raw_monitors in raw_lms:
            monitors = []
            for connector, mode_id, mon_props in raw_monitors:
                identity = by_connector.get(connector, DisplayIdentity(connector))
                monitors.append(MonitorAssignment(
                    identity=identity,
                    mode_id=str(mode_id),
                    properties=filter_properties(mon_props, MONITOR_PROPERTIES),
                ))
            lms.append(LogicalMonitor(
                x=int(x), y=int(y), scale=float(scale),
                transform=Transform(int(transform)), primary=bool(primary),
                monitors=monitors,
            ))

        return cls(
            name=str(name),
            hash=int(hash_),
            logical_monitors=lms,
            properties=filter_properties(props, GLOBAL_PROPERTIES),
            physical_displays=displays,
        )


# ── Raw snapshot (as delivered by DisplayService) ────────────────────────

@dataclass
class RawMode:
    id: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def is_current(self) -> bool:
        return bool(self.properties.get("is-current", False))


@dataclass
class RawOutput:
    identity: DisplayIdentity
    modes: list[RawMode] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class RawLogicalMonitor:
    x: int
    y: int
    scale: float
    transform: int
    primary: bool
    monitors: list[DisplayIdentity] = field(default_factory=list)


@dataclass
class RawDisplayState:
    serial: int
    outputs: list[RawOutput] = field(default_factory=list)
    logical_monitors: list[RawLogicalMonitor] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)
