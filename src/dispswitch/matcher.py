"""Decide which saved configurations fit the connected displays."""

from __future__ import annotations

from .canonical import identify
from .models import DisplayState, PhysicalDisplay, SavedConfiguration, find_display


def is_applicable(config: SavedConfiguration, live: list[PhysicalDisplay]) -> bool:
    """True if every display the configuration lays out is connected.

    Extra live displays are ignored; a configuration for two monitors stays
    available after a third one is plugged in.
    """
    return all(find_display(live, identity) is not None for identity in config.referenced_identities)


def filter_applicable(
    configs: list[SavedConfiguration], live: list[PhysicalDisplay],
) -> list[SavedConfiguration]:
    """Applicable subset, in stored order."""
    return [c for c in configs if is_applicable(c, live)]


def find_active(
    configs: list[SavedConfiguration], state: DisplayState,
) -> SavedConfiguration | None:
    """Return the first configuration whose hash equals the live arrangement's."""
    current, _ = identify(state)
    for config in configs:
        if config.hash == current:
            return config
    return None


def next_config(
    applicable: list[SavedConfiguration], active: SavedConfiguration | None,
) -> SavedConfiguration | None:
    """Pick the configuration after *active*, wrapping around.

    With nothing active the first applicable configuration is returned.
    """
    if not applicable:
        return None
    if active is None:
        return applicable[0]
    for i, config in enumerate(applicable):
        if config == active:
            return applicable[(i + 1) % len(applicable)]
    return applicable[0]
