"""GNOME session presence status.

See org.gnome.SessionManager.Presence: the ``status`` property and the
``StatusChanged`` signal carry one of the unsigned integers below.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable

from tv_errors import UnknownPresenceStatus, WorkerDiedError

logger = logging.getLogger(__name__)

PRESENCE_BUS_NAME = "org.gnome.SessionManager"
PRESENCE_PATH = "/org/gnome/SessionManager/Presence"
PRESENCE_INTERFACE = "org.gnome.SessionManager.Presence"


class PresenceStatus(IntEnum):
    AVAILABLE = 0
    INVISIBLE = 1
    BUSY = 2
    IDLE = 3

    @property
    def is_active(self) -> bool:
        return self is not PresenceStatus.IDLE

    @classmethod
    def parse(cls, value: int) -> "PresenceStatus":
        """Convert a raw D-Bus value; unknown values raise UnknownPresenceStatus."""
        try:
            return cls(int(value))
        except ValueError:
            raise UnknownPresenceStatus(int(value)) from None


def make_status_handler(manager, on_fatal: Callable[[BaseException], None]):
    """Build the ``StatusChanged`` callback that feeds ``manager``.

    Unknown statuses are logged and dropped. A dead power worker is handed
    to ``on_fatal`` since exceptions raised inside D-Bus callbacks never
    reach the main loop.
    """

    def on_status_changed(raw_status, *args) -> None:
        try:
            status = PresenceStatus.parse(raw_status)
        except UnknownPresenceStatus as exc:
            logger.error("Failed to parse presence status: %s", exc)
            return

        logger.debug("Got presence status %s", status.name)
        try:
            manager.request_power(status.is_active)
        except WorkerDiedError as exc:
            logger.critical("%s", exc)
            on_fatal(exc)

    return on_status_changed
