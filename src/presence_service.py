"""Service mode: follow the GNOME presence status over the session bus."""

from __future__ import annotations

import logging
import signal
import time
from typing import Optional

import dbus
import dbus.mainloop.glib
from gi.repository import GLib

import daemon_status
import display_outputs
from power_manager import PowerManager, TvIdentity
from presence_status import (
    PRESENCE_BUS_NAME,
    PRESENCE_INTERFACE,
    PRESENCE_PATH,
    PresenceStatus,
    make_status_handler,
)
from tv_config import Settings
from tv_errors import DBusConnectError

logger = logging.getLogger(__name__)

DBUS_CONNECT_ATTEMPTS = 30
DBUS_RETRY_SECONDS = 1
DBUS_CALL_TIMEOUT_SECONDS = 1
WORKER_JOIN_TIMEOUT_SECONDS = 1.0


def connect_dbus(attempts: int = DBUS_CONNECT_ATTEMPTS) -> dbus.SessionBus:
    """Connect to the session bus, which may not be up yet at login."""
    logger.debug("Connecting to DBUS")
    daemon_status.notify_status("Waiting for DBUS")

    for attempt in range(1, attempts + 1):
        try:
            return dbus.SessionBus()
        except dbus.DBusException as exc:
            logger.warning("Failed to connect to DBUS: %s (attempt %d/%d)", exc, attempt, attempts)
            if attempt < attempts:
                time.sleep(DBUS_RETRY_SECONDS)

    raise DBusConnectError(f"Failed to connect to DBUS after {attempts} attempts")


def get_presence_status(bus) -> PresenceStatus:
    """Read the current ``status`` property of the session presence object."""
    proxy = bus.get_object(PRESENCE_BUS_NAME, PRESENCE_PATH)
    props = dbus.Interface(proxy, "org.freedesktop.DBus.Properties")
    try:
        raw = props.Get(PRESENCE_INTERFACE, "status", timeout=DBUS_CALL_TIMEOUT_SECONDS)
    except dbus.DBusException as exc:
        raise DBusConnectError(f"Failed to get initial presence status over DBUS: {exc}") from exc
    return PresenceStatus.parse(raw)


def run_service(settings: Settings, identity: TvIdentity, output: Optional[str]) -> None:
    """Block in the GLib main loop, switching the TV with the presence status."""
    dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
    bus = connect_dbus()

    status = get_presence_status(bus)
    logger.debug("Got initial presence status %s", status.name)

    output = display_outputs.resolve_output(output)
    manager = PowerManager(
        identity,
        output,
        status.is_active,
        adb_timeout=settings.adb_timeout,
        retry_delay=settings.retry_delay,
        wol_broadcast=settings.wol_broadcast,
    )

    loop = GLib.MainLoop()
    fatal: list[BaseException] = []

    def on_fatal(exc: BaseException) -> None:
        fatal.append(exc)
        loop.quit()

    try:
        bus.add_signal_receiver(
            make_status_handler(manager, on_fatal),
            signal_name="StatusChanged",
            dbus_interface=PRESENCE_INTERFACE,
            path=PRESENCE_PATH,
        )
    except dbus.DBusException as exc:
        manager.stop(timeout=WORKER_JOIN_TIMEOUT_SECONDS)
        raise DBusConnectError(f"Failed to subscribe to presence changes: {exc}") from exc

    def on_signal(signum, _frame):
        logger.info("Received signal %s, shutting down", signal.Signals(signum).name)
        loop.quit()

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    daemon_status.notify_ready("Idle")
    logger.info("Listening to DBUS messages")
    try:
        loop.run()
    finally:
        daemon_status.notify_stopping()
        manager.stop(timeout=WORKER_JOIN_TIMEOUT_SECONDS)

    if fatal:
        raise fatal[0]
