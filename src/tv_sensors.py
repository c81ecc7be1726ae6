"""Read-only probes: is the TV on the network, is its output connected."""

from __future__ import annotations

import logging
import subprocess

import bounded_process
import display_outputs

logger = logging.getLogger(__name__)

PING = "ping"
PING_TIMEOUT_SECONDS = 0.2
# Hard limit on the ping process itself, above its own reply timeout.
PING_PROCESS_TIMEOUT_SECONDS = 2.0

# ping(8): 1 means no reply, 2 and up mean something else went wrong.
_PING_NO_REPLY = 1


def reachable(host: str, timeout: float = PING_TIMEOUT_SECONDS) -> bool:
    """Send exactly one ICMP echo to ``host``.

    Returns False when the host doesn't answer. Any other failure of ping
    (bad host name, permissions, signal) is raised, not reported as False.
    """
    args = [PING, "-c", "1", "-q", "-W", f"{timeout:g}", host]
    returncode = bounded_process.run_status(
        args,
        timeout=PING_PROCESS_TIMEOUT_SECONDS,
        name=PING,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    if returncode == _PING_NO_REPLY:
        logger.debug("%s did not answer ping", host)
        return False
    bounded_process.check_status(returncode, PING)
    logger.debug("%s answered ping", host)
    return True


def is_output_connected(name: str) -> bool:
    """True only when the output reports ``connected``; unknown counts as off."""
    return display_outputs.is_connected(name)
