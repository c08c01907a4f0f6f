"""Mutter DisplayConfig communication over the D-Bus session bus."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable

import gi
gi.require_version("Gio", "2.0")
from gi.repository import Gio, GLib

from .exceptions import IdentityError, ServiceUnavailable
from .models import ApplyMethod, LogicalMonitor, RawDisplayState
from .wire import (
    APPLY_SIGNATURE,
    GET_CURRENT_STATE_SIGNATURE,
    apply_arguments,
    parse_current_state,
)

log = logging.getLogger(__name__)

BUS_NAME = "org.gnome.Mutter.DisplayConfig"
OBJECT_PATH = "/org/gnome/Mutter/DisplayConfig"
INTERFACE = "org.gnome.Mutter.DisplayConfig"

DEFAULT_TIMEOUT_MS = 5000
CLOSE_TIMEOUT_S = 2.0


class MutterDisplayConfig:
    """Fetch and apply monitor configurations through org.gnome.Mutter.DisplayConfig.

    Blocking D-Bus calls run in the event loop's default executor.
    ``MonitorsChanged`` is received on a background GLib main loop and handed
    to the asyncio loop with ``call_soon_threadsafe``.
    """

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        self._timeout_ms = timeout_ms
        self._bus: Gio.DBusConnection | None = None
        self._subscription_id: int | None = None
        self._signal_loop: GLib.MainLoop | None = None
        self._signal_thread: threading.Thread | None = None
        self._listening = threading.Event()

    def _connection(self) -> Gio.DBusConnection:
        if self._bus is None:
            try:
                self._bus = Gio.bus_get_sync(Gio.BusType.SESSION, None)
            except GLib.Error as e:
                raise ServiceUnavailable(f"cannot connect to the session bus: {e.message}") from e
        return self._bus

    def _call(self, method: str, params: GLib.Variant | None, reply_type: str | None) -> GLib.Variant:
        """Synchronous method call on the DisplayConfig object."""
        bus = self._connection()
        try:
            return bus.call_sync(
                BUS_NAME, OBJECT_PATH, INTERFACE, method, params,
                GLib.VariantType(reply_type) if reply_type else None,
                Gio.DBusCallFlags.NONE, self._timeout_ms, None,
            )
        except GLib.Error as e:
            raise ServiceUnavailable(f"{method} failed: {e.message}") from e

    async def fetch_state(self) -> RawDisplayState:
        """Query GetCurrentState."""
        loop = asyncio.get_running_loop()
        reply = await loop.run_in_executor(
            None, self._call, "GetCurrentState", None, GET_CURRENT_STATE_SIGNATURE,
        )
        try:
            return parse_current_state(reply.unpack())
        except (ValueError, TypeError) as e:
            raise IdentityError(f"malformed GetCurrentState reply: {e}") from e

    async def apply(
        self,
        serial: int,
        method: ApplyMethod,
        logical_monitors: list[LogicalMonitor],
        properties: dict,
    ) -> None:
        """Call ApplyMonitorsConfig. Mutter rejects the call if *serial* is stale."""
        args = apply_arguments(serial, method.value, logical_monitors, properties, wrap=GLib.Variant)
        params = GLib.Variant(APPLY_SIGNATURE, args)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._call, "ApplyMonitorsConfig", params, None)

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Invoke *callback* on the running asyncio loop for every MonitorsChanged."""
        loop = asyncio.get_running_loop()
        self._signal_loop = GLib.MainLoop.new(GLib.MainContext.new(), False)
        self._listening.clear()

        def _on_signal(_conn, _sender, _path, _iface, _signal, _params, _ud):
            log.debug("MonitorsChanged received")
            loop.call_soon_threadsafe(callback)

        def _run(signal_loop: GLib.MainLoop) -> None:
            context = signal_loop.get_context()
            context.push_thread_default()
            try:
                bus = self._connection()
                # Delivered through the thread-default context pushed above
                self._subscription_id = bus.signal_subscribe(
                    BUS_NAME, INTERFACE, "MonitorsChanged", OBJECT_PATH,
                    None, Gio.DBusSignalFlags.NONE, _on_signal, None,
                )
            except Exception as e:
                log.warning("MonitorsChanged listener failed: %s", e)
                return
            finally:
                self._listening.set()
                context.pop_thread_default()
            signal_loop.run()

        self._signal_thread = threading.Thread(
            target=_run, args=(self._signal_loop,), daemon=True, name="monitors-changed",
        )
        self._signal_thread.start()

    @staticmethod
    def _stop_signal_loop(signal_loop: GLib.MainLoop) -> None:
        """Quit *signal_loop* from its own context, even if run() has not started yet."""
        def _quit(*_args) -> bool:
            signal_loop.quit()
            return GLib.SOURCE_REMOVE

        source = GLib.idle_source_new()
        source.set_callback(_quit)
        source.attach(signal_loop.get_context())

    def close(self) -> None:
        """Stop listening for MonitorsChanged and wait for the listener thread."""
        thread, self._signal_thread = self._signal_thread, None
        if thread is None:
            return
        self._listening.wait(CLOSE_TIMEOUT_S)
        if self._bus is not None and self._subscription_id is not None:
            self._bus.signal_unsubscribe(self._subscription_id)
            self._subscription_id = None
        if self._signal_loop is not None:
            self._stop_signal_loop(self._signal_loop)
            self._signal_loop = None
        thread.join(CLOSE_TIMEOUT_S)
        if thread.is_alive():
            log.warning("MonitorsChanged listener did not stop within %ss", CLOSE_TIMEOUT_S)
