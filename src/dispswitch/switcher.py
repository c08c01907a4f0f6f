"""Display configuration switcher: tracks live state and applies saved configurations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from .canonical import canonicalize, identify
from .config_manager import ConfigManager
from .exceptions import DispSwitchError, IdentityError, ServiceUnavailable
from .matcher import filter_applicable, find_active, next_config
from .models import (
    ApplyMethod,
    DisplayState,
    LogicalMonitor,
    RawDisplayState,
    SavedConfiguration,
)
from .retarget import retarget

log = logging.getLogger(__name__)


class DisplayService(Protocol):
    def fetch_state(self) -> Awaitable[RawDisplayState]: ...

    def apply(
        self,
        serial: int,
        method: ApplyMethod,
        logical_monitors: list[LogicalMonitor],
        properties: dict,
    ) -> Awaitable[None]: ...

    def subscribe(self, callback: Callable[[], None]) -> None: ...

    def close(self) -> None: ...


class DisplayConfigSwitcher:
    """Keeps the last good DisplayState and replays saved configurations on it.

    Each fetch is stamped with an increasing token when it is issued.  A
    reply is only accepted if its token is newer than the one behind the
    current state, so a slow reply can never overwrite a newer one.
    """

    def __init__(
        self,
        service: DisplayService,
        manager: ConfigManager,
        *,
        apply_method: ApplyMethod = ApplyMethod.TEMPORARY,
    ) -> None:
        self._service = service
        self._manager = manager
        self._apply_method = apply_method
        self._state: DisplayState | None = None
        self._issued = 0
        self._accepted = 0
        self._listeners: list[Callable[[DisplayState], None]] = []
        self._tasks: set[asyncio.Future] = set()

    @property
    def state(self) -> DisplayState | None:
        return self._state

    @property
    def manager(self) -> ConfigManager:
        return self._manager

    def connect(self, listener: Callable[[DisplayState], None]) -> None:
        """Call *listener* with every newly accepted state."""
        self._listeners.append(listener)

    async def start(self) -> DisplayState | None:
        """Subscribe to MonitorsChanged and fetch the initial state."""
        self._service.subscribe(self._on_monitors_changed)
        return await self.refresh()

    def stop(self) -> None:
        self._service.close()
        for task in list(self._tasks):
            task.cancel()

    def _spawn(self, coro: Awaitable) -> asyncio.Future:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.error("Background task failed: %s", error, exc_info=error)

    def _on_monitors_changed(self) -> None:
        log.info("Monitor configuration changed")
        self._spawn(self.refresh())

    # ── State ───────────────────────────────────────────────────────

    async def refresh(self) -> DisplayState | None:
        """Fetch and canonicalize the live state; keep the old one on failure."""
        self._issued += 1
        token = self._issued
        try:
            raw = await self._service.fetch_state()
        except ServiceUnavailable as e:
            log.warning("Cannot fetch display state: %s", e)
            return self._state
        except IdentityError as e:
            log.error("Ignoring malformed display state: %s", e)
            return self._state

        if token < self._accepted:
            log.debug("Discarding stale state reply %d (current %d)", token, self._accepted)
            return self._state

        try:
            state = canonicalize(raw)
        except IdentityError as e:
            log.error("Ignoring inconsistent display state: %s", e)
            return self._state

        self._accepted = token
        self._state = state
        log.debug("Accepted state reply %d (serial %d)", token, state.serial)
        for listener in list(self._listeners):
            try:
                listener(state)
            except DispSwitchError as e:
                log.error("Configuration list temporarily unavailable: %s", e)
        return state

    def _require_state(self) -> DisplayState:
        if self._state is None:
            raise ServiceUnavailable("display state unavailable")
        return self._state

    def current_hash(self) -> int | None:
        if self._state is None:
            return None
        value, _ = identify(self._state)
        return value

    def applicable_configs(self) -> list[SavedConfiguration]:
        """Saved configurations whose displays are all connected, in stored order."""
        if self._state is None:
            return []
        return filter_applicable(self._manager.configs, self._state.physical_displays)

    def active_config(self) -> SavedConfiguration | None:
        """The applicable configuration matching the live arrangement, if any."""
        if self._state is None:
            return None
        return find_active(self.applicable_configs(), self._state)

    def save_current(self, name: str) -> SavedConfiguration:
        """Store the live arrangement under *name*."""
        return self._manager.add(name, self._require_state())

    # ── Apply ───────────────────────────────────────────────────────

    def _prepare(self, config: SavedConfiguration) -> tuple[int, list[LogicalMonitor], dict]:
        state = self._require_state()
        logical_monitors = retarget(config.logical_monitors, state.physical_displays)
        # Only send global properties the compositor currently lets us change
        properties = {k: v for k, v in config.properties.items() if k in state.properties}
        return state.serial, logical_monitors, properties

    async def _send(
        self,
        name: str,
        serial: int,
        logical_monitors: list[LogicalMonitor],
        properties: dict,
        method: ApplyMethod,
    ) -> bool:
        log.info("Applying configuration %r (serial %d, %s)", name, serial, method.name.lower())
        try:
            await self._service.apply(serial, method, logical_monitors, properties)
        except ServiceUnavailable as e:
            log.error("Failed to apply configuration %r: %s", name, e)
            return False
        return True

    async def apply_config(
        self, config: SavedConfiguration, method: ApplyMethod | None = None,
    ) -> bool:
        """Retarget *config* and send it. Returns False if the service refused.

        Raises RetargetError before anything is sent when a logical monitor
        has no connected display left.
        """
        serial, logical_monitors, properties = self._prepare(config)
        return await self._send(
            config.name, serial, logical_monitors, properties, method or self._apply_method,
        )

    def request_apply(
        self, config: SavedConfiguration, method: ApplyMethod | None = None,
    ) -> asyncio.Future:
        """Fire-and-forget variant of apply_config; retarget errors still raise here."""
        serial, logical_monitors, properties = self._prepare(config)
        return self._spawn(self._send(
            config.name, serial, logical_monitors, properties, method or self._apply_method,
        ))

    async def apply_next(self, method: ApplyMethod | None = None) -> SavedConfiguration | None:
        """Switch to the applicable configuration after the active one."""
        config = next_config(self.applicable_configs(), self.active_config())
        if config is None:
            log.info("No applicable configuration")
            return None
        await self.apply_config(config, method)
        return config
