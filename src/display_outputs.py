"""Enumerate DRM display outputs and pick the one that tracks the TV."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, TextIO

from tv_errors import ConfigError, TvPowerError

logger = logging.getLogger(__name__)

DRM_ROOT = Path("/sys/class/drm")


class OutputStatus(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Output:
    name: str
    status: OutputStatus
    raw_status: str

    @property
    def is_connected(self) -> bool:
        return self.status is OutputStatus.CONNECTED


def parse_status(name: str, raw: str) -> OutputStatus:
    text = raw.strip()
    if text == "connected":
        return OutputStatus.CONNECTED
    if text == "disconnected":
        return OutputStatus.DISCONNECTED
    logger.warning("Unknown output status %r for %s", text, name)
    return OutputStatus.UNKNOWN


def all_outputs(root: Optional[Path] = None) -> List[Output]:
    """Read every output that exposes a ``status`` file, sorted by name."""
    root = Path(root) if root is not None else DRM_ROOT
    try:
        entries = sorted(root.iterdir())
    except OSError as exc:
        raise TvPowerError(f"Failed to read directory {root}: {exc}") from exc

    outputs = []
    for entry in entries:
        status_file = entry / "status"
        if not status_file.is_file():
            continue
        try:
            raw = status_file.read_text().strip()
        except OSError as exc:
            raise TvPowerError(f"Failed to read {status_file}: {exc}") from exc
        outputs.append(Output(entry.name, parse_status(entry.name, raw), raw))
    return outputs


def connected_outputs(root: Optional[Path] = None) -> List[Output]:
    return [o for o in all_outputs(root) if o.is_connected]


def exists(name: str, root: Optional[Path] = None) -> bool:
    return any(o.name == name for o in all_outputs(root))


def is_connected(name: str, root: Optional[Path] = None) -> bool:
    return any(o.name == name for o in connected_outputs(root))


def resolve_output(name: Optional[str] = None, root: Optional[Path] = None) -> str:
    """Return the output whose connection state says whether the TV is on.

    An explicit ``name`` must exist. Without one, exactly one output may be
    connected; anything else is ambiguous and raises ConfigError.
    """
    if name:
        if not exists(name, root):
            raise ConfigError(
                f"Output {name} doesn't exist",
                "List available outputs with the list-outputs command",
            )
        return name

    connected = connected_outputs(root)
    if not connected:
        raise ConfigError("You haven't specified an output and no outputs are connected")
    if len(connected) > 1:
        names = ", ".join(o.name for o in connected)
        raise ConfigError(
            f"You haven't specified an output but there are multiple connected outputs: {names}",
            "Pick one with --output or the OUTPUT setting",
        )

    logger.info("Using output %s", connected[0].name)
    return connected[0].name


_COLORS = {
    OutputStatus.CONNECTED: "\033[32m",
    OutputStatus.DISCONNECTED: "\033[31m",
    OutputStatus.UNKNOWN: "\033[33m",
}
_RESET = "\033[0m"


def print_outputs(root: Optional[Path] = None, stream: Optional[TextIO] = None) -> None:
    """Print ``NAME STATUS`` lines, colored when writing to a terminal."""
    stream = stream or sys.stdout
    color = stream.isatty()
    for output in all_outputs(root):
        status = output.raw_status or output.status.value
        if color:
            status = f"{_COLORS[output.status]}{status}{_RESET}"
        print(f"{output.name} {status}", file=stream)
