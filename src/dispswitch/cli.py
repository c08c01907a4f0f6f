"""Command-line entry point.

Usage:
    dispswitch [-v] <command> [options]

Commands:
    list      Show configurations usable with the connected displays
    save      Save the current arrangement under a name
    apply     Apply a saved configuration
    next      Switch to the next applicable configuration
    rename    Rename a saved configuration
    remove    Delete a saved configuration
    reorder   Store configurations in a new order
    show      Describe a saved configuration
    watch     Follow monitor changes and report the active configuration
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .config_manager import ConfigManager
from .exceptions import DispSwitchError
from .matcher import is_applicable
from .models import ApplyMethod, SavedConfiguration
from .switcher import DisplayConfigSwitcher, DisplayService
from .utils import load_app_settings

log = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [dispswitch] %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def _make_service(settings: dict) -> DisplayService:
    from .mutter import MutterDisplayConfig
    return MutterDisplayConfig(timeout_ms=int(settings["dbus_timeout_ms"]))


def _apply_method(args: argparse.Namespace, settings: dict) -> ApplyMethod:
    if getattr(args, "persistent", False):
        return ApplyMethod.PERSISTENT
    value = str(settings.get("apply_method", "temporary")).upper()
    if value not in ("TEMPORARY", "PERSISTENT"):
        raise DispSwitchError(f"invalid apply_method setting: {settings['apply_method']!r}")
    return ApplyMethod[value]


def _require(manager: ConfigManager, name: str) -> SavedConfiguration:
    config = manager.get(name)
    if config is None:
        raise DispSwitchError(f"no configuration named {name!r}")
    return config


def describe(config: SavedConfiguration) -> str:
    """Human-readable summary of a saved configuration."""
    lines = [f"Configuration: {config.name}", "Logical monitors:"]
    for i, lm in enumerate(config.logical_monitors, 1):
        lines.append(f"{i})\t(x, y) = ({lm.x}, {lm.y})")
        lines.append(f"\tscale = {lm.scale:g}")
        lines.append(f"\ttransform = {lm.transform.label}")
        lines.append(f"\tprimary = {lm.primary}")
        lines.append("\tmonitors:")
        for j, m in enumerate(lm.monitors, 1):
            lines.append(f"\t{j})\t- connector = {m.connector}")
            lines.append(f"\t\t- monitor mode ID = {m.mode_id}")
            if "underscanning" in m.properties:
                lines.append(f"\t\t- underscanning = {m.properties['underscanning']}")
    lines.append("Properties:")
    if "layout-mode" in config.properties:
        lines.append(f"\tlayout-mode = {config.properties['layout-mode']}")
    lines.append("Physical displays:")
    for i, d in enumerate(config.physical_displays, 1):
        lines.append(f"{i})\t- connector = {d.connector}")
        lines.append(f"\t- vendor = {d.vendor}")
        lines.append(f"\t- product = {d.product}")
        lines.append(f"\t- serial = {d.serial}")
    lines.append(f"Config hash: {config.hash}")
    return "\n".join(lines)


# ── Commands that only touch the store ──────────────────────────────

def cmd_rename(args: argparse.Namespace, manager: ConfigManager) -> int:
    manager.rename(_require(manager, args.old), args.new)
    return 0


def cmd_remove(args: argparse.Namespace, manager: ConfigManager) -> int:
    manager.remove(_require(manager, args.name))
    return 0


def cmd_reorder(args: argparse.Namespace, manager: ConfigManager) -> int:
    manager.reorder([_require(manager, name) for name in args.names])
    return 0


def cmd_show(args: argparse.Namespace, manager: ConfigManager) -> int:
    print(describe(_require(manager, args.name)))
    return 0


# ── Commands that need the live state ───────────────────────────────

async def _refresh(switcher: DisplayConfigSwitcher) -> None:
    if await switcher.refresh() is None:
        raise DispSwitchError("display state unavailable")


async def cmd_list(args: argparse.Namespace, switcher: DisplayConfigSwitcher) -> int:
    await _refresh(switcher)
    active = switcher.active_config()
    configs = switcher.manager.configs if args.all else switcher.applicable_configs()
    if not configs:
        print("No configurations saved for this display setup.")
        return 0
    for config in configs:
        if active is not None and config == active:
            mark = "*"
        elif not is_applicable(config, switcher.state.physical_displays):
            mark = "-"
        else:
            mark = " "
        print(f"{mark} {config.name}")
    return 0


async def cmd_save(args: argparse.Namespace, switcher: DisplayConfigSwitcher) -> int:
    await _refresh(switcher)
    config = switcher.save_current(args.name)
    print(f"Saved {config.name!r}")
    return 0


async def cmd_apply(args: argparse.Namespace, switcher: DisplayConfigSwitcher) -> int:
    await _refresh(switcher)
    config = _require(switcher.manager, args.name)
    if not is_applicable(config, switcher.state.physical_displays):
        raise DispSwitchError(f"{config.name!r} needs displays that are not connected")
    return 0 if await switcher.apply_config(config) else 1


async def cmd_next(args: argparse.Namespace, switcher: DisplayConfigSwitcher) -> int:
    await _refresh(switcher)
    config = await switcher.apply_next()
    if config is None:
        print("No configurations saved for this display setup.")
        return 0
    print(f"Switched to {config.name!r}")
    return 0


async def cmd_watch(args: argparse.Namespace, switcher: DisplayConfigSwitcher) -> int:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)

    def _report(_state) -> None:
        active = switcher.active_config()
        log.info("Active configuration: %s", active.name if active else "(none)")

    switcher.connect(_report)
    try:
        await switcher.start()
        await stop.wait()
    finally:
        switcher.stop()
        log.info("Watcher stopped")
    return 0


STORE_COMMANDS = {
    "rename": cmd_rename,
    "remove": cmd_remove,
    "reorder": cmd_reorder,
    "show": cmd_show,
}

STATE_COMMANDS = {
    "list": cmd_list,
    "save": cmd_save,
    "apply": cmd_apply,
    "next": cmd_next,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dispswitch",
        description="Save and switch between display arrangements",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="list configurations for the connected displays")
    p.add_argument("--all", action="store_true", help="include configurations for other setups")

    p = sub.add_parser("save", help="save the current arrangement")
    p.add_argument("name")

    p = sub.add_parser("apply", help="apply a saved configuration")
    p.add_argument("name")
    p.add_argument("--persistent", action="store_true", help="make the change persistent")

    p = sub.add_parser("next", help="switch to the next applicable configuration")
    p.add_argument("--persistent", action="store_true", help="make the change persistent")

    p = sub.add_parser("rename", help="rename a configuration")
    p.add_argument("old")
    p.add_argument("new")

    p = sub.add_parser("remove", help="delete a configuration")
    p.add_argument("name")

    p = sub.add_parser("reorder", help="store configurations in the given order")
    p.add_argument("names", nargs="+")

    p = sub.add_parser("show", help="describe a configuration")
    p.add_argument("name")

    sub.add_parser("watch", help="follow monitor changes")
    return parser


async def _run_with_service(
    args: argparse.Namespace, manager: ConfigManager, settings: dict,
) -> int:
    switcher = DisplayConfigSwitcher(
        _make_service(settings), manager, apply_method=_apply_method(args, settings),
    )
    return await STATE_COMMANDS[args.command](args, switcher)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = load_app_settings()
    setup_logging("DEBUG" if args.verbose else str(settings.get("log_level", "INFO")))

    manager = ConfigManager()
    try:
        if args.command in STORE_COMMANDS:
            return STORE_COMMANDS[args.command](args, manager)
        return asyncio.run(_run_with_service(args, manager, settings))
    except (DispSwitchError, KeyError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
