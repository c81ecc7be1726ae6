"""Run external commands with an optional deadline.

``subprocess.run(timeout=...)`` raises without telling the caller how the
killed process actually ended, so the helpers here poll the child
themselves, kill it when the deadline passes and always reap it to get
the real exit status.
"""

from __future__ import annotations

import logging
import signal
import subprocess
import time
from typing import Optional, Sequence

from tv_errors import (
    CommandError,
    CommandFailedError,
    CommandKilledError,
    CommandTimeoutError,
    ToolNotFoundError,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.05


def signal_name(signum: int) -> Optional[str]:
    """Return ``SIGTERM``-style names, or None for unknown numbers."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return None


def classify_status(returncode: int, name: str) -> Optional[CommandError]:
    """Map a Popen return code to an error, or None on success."""
    if returncode == 0:
        return None
    if returncode < 0:
        signum = -returncode
        sig = signal_name(signum)
        if sig is None:
            return CommandKilledError(f"{name} died from unknown signal {signum}", returncode)
        return CommandKilledError(f"{name} died from signal {sig}", returncode)
    return CommandFailedError(f"{name} exited with status {returncode}", returncode)


def check_status(returncode: int, name: str) -> None:
    error = classify_status(returncode, name)
    if error is not None:
        raise error


def _spawn(args: Sequence[str], name: str, stdout, stderr) -> subprocess.Popen:
    try:
        return subprocess.Popen(list(args), stdout=stdout, stderr=stderr)
    except (FileNotFoundError, PermissionError) as exc:
        raise ToolNotFoundError(name) from exc


def _kill(proc: subprocess.Popen, name: str) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        # Exited on its own between the deadline check and the kill.
        logger.debug("%s exited before it could be killed", name)


def run_status(
    args: Sequence[str],
    *,
    timeout: Optional[float] = None,
    name: Optional[str] = None,
    stdout=None,
    stderr=None,
    poll_interval: float = POLL_INTERVAL_SECONDS,
) -> int:
    """Run ``args`` and return its raw return code.

    Raises ToolNotFoundError if the command can't be spawned and
    CommandTimeoutError if it outlives ``timeout`` seconds and doesn't
    turn out to have succeeded after being killed.
    """
    name = name or args[0]
    start = time.monotonic()
    proc = _spawn(args, name, stdout, stderr)
    logger.debug("Spawned %s (pid %s, timeout %s)", " ".join(args), proc.pid, timeout)

    while timeout is None or time.monotonic() - start < timeout:
        returncode = proc.poll()
        if returncode is not None:
            return returncode
        time.sleep(poll_interval)

    logger.error("%s timed out after %ss", name, timeout)
    _kill(proc, name)
    returncode = proc.wait()
    if returncode == 0:
        return returncode

    raise CommandTimeoutError(
        f"{name} timed out after {timeout}s",
        returncode,
        cause=classify_status(returncode, name),
    )


def run(
    args: Sequence[str],
    *,
    timeout: Optional[float] = None,
    name: Optional[str] = None,
    stdout=None,
    stderr=None,
    poll_interval: float = POLL_INTERVAL_SECONDS,
) -> None:
    """Run ``args`` to completion, raising a CommandError unless it exits 0."""
    name = name or args[0]
    returncode = run_status(
        args,
        timeout=timeout,
        name=name,
        stdout=stdout,
        stderr=stderr,
        poll_interval=poll_interval,
    )
    check_status(returncode, name)
