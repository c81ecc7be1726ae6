"""Drive the TV's power state and keep it matching the latest request."""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Optional

from wakeonlan import send_magic_packet

import adb_shell
import daemon_status
import tv_sensors
from adb_shell import AdbAddress
from tv_errors import ConfigError, TvPowerError, WakeOnLanError, WorkerDiedError

logger = logging.getLogger(__name__)

# Deadline for each adb round trip made by the service worker.
ADB_TIMEOUT_SECONDS = 5.0
# Pause between two convergence attempts.
RETRY_DELAY_SECONDS = 0.2

_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}([:-]?)(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$")
_STOP = object()


def parse_mac(value: str) -> str:
    """Normalize a hardware address to ``AA:BB:CC:DD:EE:FF``."""
    text = value.strip()
    if not _MAC_RE.match(text):
        raise ConfigError(f"Invalid MAC address {value!r}")
    digits = re.sub(r"[:-]", "", text).upper()
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


@dataclass(frozen=True)
class TvIdentity:
    mac: Optional[str]
    addr: Optional[AdbAddress]


def _onoff(power_on: bool) -> str:
    return "on" if power_on else "off"


def turn_on(
    identity: TvIdentity,
    timeout: Optional[float] = None,
    broadcast: Optional[str] = None,
) -> None:
    """Try to wake the TV. Only dispatches the attempt; it does not confirm it.

    A TV that still answers ping is woken with a key press over adb. If
    that fails, or the TV is not reachable, a Wake-on-LAN magic packet is
    broadcast instead.
    """
    addr = identity.addr
    if addr is not None:
        try:
            is_up = tv_sensors.reachable(addr.host)
        except TvPowerError as exc:
            logger.warning("Reachability probe for %s failed: %s", addr.host, exc)
            is_up = False

        if is_up:
            try:
                adb_shell.send_keycode(addr, adb_shell.KEYCODE_WAKEUP, timeout)
                logger.debug("Sent wakeup key to %s", addr)
                return
            except TvPowerError as exc:
                logger.warning("Waking TV over adb failed, falling back to Wake-on-LAN: %s", exc)

    if identity.mac is None:
        raise ConfigError("No MAC address configured for Wake-on-LAN")

    # The TV is on WiFi, so this is really a wake-on-WLAN packet.
    kwargs = {"ip_address": broadcast} if broadcast else {}
    try:
        send_magic_packet(identity.mac, **kwargs)
    except OSError as exc:
        raise WakeOnLanError(f"Failed to send Wake-on-LAN packet to {identity.mac}: {exc}") from exc
    logger.debug("Sent Wake-on-LAN packet to %s", identity.mac)


def turn_off(identity: TvIdentity, timeout: Optional[float] = None) -> None:
    """Press the power key over adb."""
    if identity.addr is None:
        raise ConfigError("No TV address configured")
    adb_shell.send_keycode(identity.addr, adb_shell.KEYCODE_POWER, timeout)


class PowerManager:
    """Single worker that chases the most recently requested power state.

    Requests are queued without blocking. The worker ignores requests that
    restate the state it last applied, and keeps actuating and checking
    ``output`` until the TV matches, or a newer different request replaces
    the target.
    """

    def __init__(
        self,
        identity: TvIdentity,
        output: str,
        initial_active: bool,
        *,
        adb_timeout: Optional[float] = ADB_TIMEOUT_SECONDS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        wol_broadcast: Optional[str] = None,
    ) -> None:
        self.identity = identity
        self.output = output
        self.adb_timeout = adb_timeout
        self.retry_delay = retry_delay
        self.wol_broadcast = wol_broadcast

        self._queue: "Queue[object]" = Queue()
        self._thread = threading.Thread(
            target=self._run,
            args=(bool(initial_active),),
            name="tv-power-worker",
            daemon=True,
        )
        self._thread.start()

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def request_power(self, power_on: bool) -> None:
        """Queue a desired state and return immediately."""
        if not self._thread.is_alive():
            raise WorkerDiedError("Failed to send message to worker thread. Did it die?")
        self._queue.put(bool(power_on))

    set_power = request_power

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the worker to exit and wait for it."""
        self._queue.put(_STOP)
        self._thread.join(timeout)

    # ---- worker ----
    def _run(self, last_active: bool) -> None:
        logger.debug("Power worker started, TV assumed %s", _onoff(last_active))
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            if item == last_active:
                logger.debug("TV already %s, ignoring request", _onoff(last_active))
                continue

            reached = self._converge(item)
            if reached is None:
                break
            last_active = reached
        logger.debug("Power worker stopped")

    def _latest_intent(self) -> object:
        """Drain the queue without blocking; the newest item wins."""
        latest = None
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                return latest
            if item is _STOP:
                return _STOP
            latest = item

    def _announce(self, power_on: bool) -> None:
        status = f"Turning TV {_onoff(power_on)}"
        logger.info(status)
        daemon_status.notify_status(status)

    def _actuate(self, power_on: bool) -> None:
        try:
            if power_on:
                turn_on(self.identity, self.adb_timeout, self.wol_broadcast)
            else:
                turn_off(self.identity, self.adb_timeout)
        except TvPowerError as exc:
            onoff = _onoff(power_on)
            logger.error("Failed to turn TV %s: %s", onoff, exc)
            if exc.hint:
                logger.error("hint: %s", exc.hint)
            daemon_status.notify_status(f"Retrying TV power-{onoff}")

    def _confirmed(self, power_on: bool) -> bool:
        try:
            return tv_sensors.is_output_connected(self.output) == power_on
        except TvPowerError as exc:
            logger.error("Failed to read state of output %s: %s", self.output, exc)
            return False

    def _converged(self, power_on: bool) -> bool:
        logger.info("Turned TV %s", _onoff(power_on))
        daemon_status.notify_status("Idle")
        return power_on

    def _converge(self, target: bool) -> Optional[bool]:
        """Loop until the sensor agrees with ``target``.

        Returns the state reached, or None when asked to stop.
        """
        self._announce(target)
        check_first = False
        while True:
            pending = self._latest_intent()
            if pending is _STOP:
                return None
            if pending is not None and pending != target:
                logger.info("Newer request replaces turning TV %s", _onoff(target))
                target = pending
                self._announce(target)
                # The TV may never have left the new target state.
                check_first = True

            if check_first and self._confirmed(target):
                return self._converged(target)
            check_first = False

            self._actuate(target)
            if self._confirmed(target):
                return self._converged(target)

            delay_ms = int(self.retry_delay * 1000)
            logger.warning("TV is not yet %s, retrying in %dms", _onoff(target), delay_ms)
            time.sleep(self.retry_delay)
