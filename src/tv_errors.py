"""Exception types shared by the tv-power modules."""

from __future__ import annotations

from typing import Optional


class TvPowerError(Exception):
    """Base error with an optional remediation hint."""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(message)


class ConfigError(TvPowerError):
    """Invalid or ambiguous configuration. Fatal at startup."""


class ToolNotFoundError(TvPowerError):
    """An external command could not be spawned."""

    def __init__(self, tool: str, hint: Optional[str] = None) -> None:
        self.tool = tool
        super().__init__(
            f"Failed to invoke {tool}",
            hint or f"Make sure that {tool} is installed",
        )


class CommandError(TvPowerError):
    """An external command finished unsuccessfully."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        self.returncode = returncode
        super().__init__(message)


class CommandFailedError(CommandError):
    """The command exited with a nonzero status."""


class CommandKilledError(CommandError):
    """The command was terminated by a signal."""


class CommandTimeoutError(CommandError):
    """The command ran past its deadline and was killed.

    ``cause`` holds the classification of the exit status collected after
    the kill, when the process did not exit cleanly.
    """

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        cause: Optional[CommandError] = None,
    ) -> None:
        self.cause = cause
        super().__init__(message, returncode)


class AdbConnectError(TvPowerError):
    """``adb connect`` to the TV failed or timed out."""


class WakeOnLanError(TvPowerError):
    """The magic packet could not be sent."""


class UnknownPresenceStatus(TvPowerError):
    """A presence status value outside the known enumeration."""

    def __init__(self, value: int) -> None:
        self.value = value
        super().__init__(f"Unknown presence status: {value}")


class DBusConnectError(TvPowerError):
    """The session bus stayed unreachable."""


class WorkerDiedError(TvPowerError):
    """The power worker thread is gone; nothing can act on new intent."""
