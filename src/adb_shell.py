"""Send commands to the TV over adb (Android Debug Bridge)."""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import bounded_process
from tv_errors import AdbConnectError, CommandError, CommandTimeoutError, ConfigError

logger = logging.getLogger(__name__)

ADB = "adb"
DEFAULT_ADB_PORT = 5555

# Android KeyEvent codes.
KEYCODE_POWER = 26
KEYCODE_WAKEUP = 224


@dataclass(frozen=True)
class AdbAddress:
    host: str
    port: int = DEFAULT_ADB_PORT

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_address(value: str) -> AdbAddress:
    """Parse ``host``, ``host:port`` or ``[v6-host]:port``."""
    text = value.strip()
    if not text:
        raise ConfigError("Empty TV address")

    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or not host:
            raise ConfigError(f"Invalid TV address {value!r}")
        port_text = rest[1:] if rest.startswith(":") else rest
    elif text.count(":") == 1:
        host, _, port_text = text.partition(":")
    else:
        host, port_text = text, ""

    if not port_text:
        return AdbAddress(host)
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigError(f"Invalid port in TV address {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range in TV address {value!r}")
    return AdbAddress(host, port)


def _remaining(start: float, timeout: Optional[float]) -> Optional[float]:
    if timeout is None:
        return None
    return max(0.0, timeout - (time.monotonic() - start))


def ensure_connected(addr: AdbAddress, timeout: Optional[float] = None) -> None:
    """Make sure adb has a session with the TV."""
    try:
        bounded_process.run(
            [ADB, "connect", str(addr)],
            timeout=timeout,
            name=ADB,
            stdout=subprocess.DEVNULL,
        )
    except CommandTimeoutError as exc:
        logger.error("Connecting to TV timed out")
        raise AdbConnectError(f"Connecting to {addr} over adb timed out") from exc
    except CommandError as exc:
        raise AdbConnectError(f"Connecting to {addr} over adb failed: {exc}") from exc


def shell(
    addr: AdbAddress,
    command: Sequence[str],
    timeout: Optional[float] = None,
) -> None:
    """Run ``adb shell`` on the TV. ``timeout`` covers connect and command."""
    start = time.monotonic()
    ensure_connected(addr, timeout)
    logger.debug("adb shell on %s: %s", addr, " ".join(command))
    bounded_process.run(
        [ADB, "-s", str(addr), "shell", *command],
        timeout=_remaining(start, timeout),
        name="adb shell",
    )


def send_keycode(addr: AdbAddress, keycode: int, timeout: Optional[float] = None) -> None:
    shell(addr, ["input", "keyevent", str(keycode)], timeout)


def send_keycodes(
    addr: AdbAddress,
    keycodes: Iterable[int],
    timeout: Optional[float] = None,
) -> None:
    """Send several key presses in a single shell session."""
    cmd = " && ".join(f"input keyevent {int(n)}" for n in keycodes)
    if not cmd:
        return
    shell(addr, [cmd], timeout)
