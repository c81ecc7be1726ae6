"""systemd readiness and status notifications.

Every call is fire-and-forget: outside systemd (no NOTIFY_SOCKET) or
without systemd-python the notifications are simply not sent.
"""

from __future__ import annotations

import logging

try:
    from systemd import daemon as sd_daemon
    SYSTEMD_AVAILABLE = True
except ImportError:
    sd_daemon = None
    SYSTEMD_AVAILABLE = False

logger = logging.getLogger(__name__)


def _notify(message: str) -> None:
    if not SYSTEMD_AVAILABLE:
        return
    try:
        sd_daemon.notify(message)
    except OSError as exc:
        logger.debug("sd_notify(%r) failed: %s", message, exc)


def notify_status(status: str) -> None:
    """Update the STATUS= line shown by ``systemctl status``."""
    logger.debug("Status: %s", status)
    _notify(f"STATUS={status}")


def notify_ready(status: str = "Idle") -> None:
    _notify(f"READY=1\nSTATUS={status}")
    logger.debug("Sent READY=1 to systemd")


def notify_stopping() -> None:
    _notify("STOPPING=1")
