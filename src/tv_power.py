#!/usr/bin/env python3
"""
tv-power: turn the TV off when the computer goes idle, and back on again.

Commands:
  on            wake the TV (adb key press if it's reachable, else Wake-on-LAN)
  off           press the TV's power key over adb
  service       follow the GNOME session presence status over D-Bus
  list-outputs  show the DRM display outputs and their connection status
  keycodes      send raw Android key codes over adb

Settings come from the command line, then the environment, then
$XDG_CONFIG_HOME/tv-power/tv-power.conf (KEY=value lines).
"""

from __future__ import annotations

import logging
import os
import sys
from argparse import ArgumentParser, Namespace, RawDescriptionHelpFormatter
from typing import List, Optional

import adb_shell
import display_outputs
import logging_utils
from power_manager import TvIdentity, parse_mac, turn_off, turn_on
from tv_config import Settings
from tv_errors import ConfigError, TvPowerError

logger = logging.getLogger("tv_power")

EXIT_FAILURE = 1
EXIT_CONFIG = 2


def build_parser(settings: Settings) -> ArgumentParser:
    parser = ArgumentParser(
        prog="tv-power",
        description=__doc__,
        formatter_class=RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    def add_mac(p: ArgumentParser) -> None:
        p.add_argument(
            "-m", "--mac",
            default=settings.mac,
            help="The TV's MAC address, for Wake-on-LAN [env: MAC]",
        )

    def add_addr(p: ArgumentParser) -> None:
        p.add_argument(
            "-a", "--addr",
            default=settings.addr,
            metavar="HOST[:PORT]",
            help="The TV's IP address and adb port, usually 5555 [env: ADDR]",
        )

    on = sub.add_parser("on", help="Turn the TV on")
    add_mac(on)
    add_addr(on)

    off = sub.add_parser("off", help="Turn the TV off")
    add_addr(off)

    service = sub.add_parser(
        "service",
        help="Run as a service, turning the TV off when the computer is idle",
    )
    add_mac(service)
    add_addr(service)
    service.add_argument(
        "-o", "--output",
        default=settings.output,
        help=(
            "Which graphics output to watch to see if the TV is on. "
            "See list-outputs [env: OUTPUT]"
        ),
    )

    sub.add_parser("list-outputs", help="List video outputs")

    keycodes = sub.add_parser("keycodes", help="Send key codes to the TV")
    add_addr(keycodes)
    keycodes.add_argument("keycodes", type=int, nargs="+", metavar="KEYCODE")

    return parser


def _require(value: Optional[str], what: str, flag: str, env: str) -> str:
    if not value:
        raise ConfigError(f"Missing {what}", f"Pass {flag} or set {env}")
    return value


def identity_from_args(args: Namespace, need_mac: bool, need_addr: bool) -> TvIdentity:
    mac = getattr(args, "mac", None)
    addr = getattr(args, "addr", None)
    if need_mac:
        mac = _require(mac, "the TV's MAC address", "--mac", "MAC")
    if need_addr:
        addr = _require(addr, "the TV's address", "--addr", "ADDR")
    return TvIdentity(
        mac=parse_mac(mac) if mac else None,
        addr=adb_shell.parse_address(addr) if addr else None,
    )


def run_command(args: Namespace, settings: Settings) -> None:
    command = args.command
    if command == "on":
        identity = identity_from_args(args, need_mac=True, need_addr=False)
        turn_on(identity, broadcast=settings.wol_broadcast)
    elif command == "off":
        identity = identity_from_args(args, need_mac=False, need_addr=True)
        turn_off(identity)
    elif command == "service":
        identity = identity_from_args(args, need_mac=True, need_addr=True)
        # dbus and GLib are only needed in service mode.
        import presence_service
        presence_service.run_service(settings, identity, args.output)
    elif command == "list-outputs":
        display_outputs.print_outputs()
    elif command == "keycodes":
        identity = identity_from_args(args, need_mac=False, need_addr=True)
        adb_shell.send_keycodes(identity.addr, args.keycodes)
    else:
        raise ConfigError(f"Unknown command {command}")


def _report(exc: TvPowerError) -> None:
    logger.error("%s", exc.message)
    if exc.hint:
        logger.error("hint: %s", exc.hint)


def main(argv: Optional[List[str]] = None) -> int:
    logging_utils.configure_root_logger(logging_utils.parse_level(os.getenv("LOG_LEVEL")))

    try:
        settings = Settings.load()
    except ConfigError as exc:
        _report(exc)
        return EXIT_CONFIG

    args = build_parser(settings).parse_args(argv)

    level = logging.DEBUG if args.verbose else logging_utils.parse_level(settings.log_level)
    logging.getLogger().setLevel(level)
    if settings.log_file:
        logging_utils.add_file_handler(settings.log_file)

    try:
        run_command(args, settings)
    except ConfigError as exc:
        _report(exc)
        return EXIT_CONFIG
    except TvPowerError as exc:
        _report(exc)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
