"""Logging setup shared by the tv-power commands."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

try:
    from systemd import journal
    SYSTEMD_AVAILABLE = True
except ImportError:
    journal = None
    SYSTEMD_AVAILABLE = False


_DEFAULT_MAX_LINES = 1000
_SYSLOG_IDENTIFIER = "tv-power"


def connected_to_journal() -> bool:
    """True when stderr is a journald stream and we can talk to journald."""
    return SYSTEMD_AVAILABLE and bool(os.getenv("JOURNAL_STREAM"))


def parse_level(name: str | None, default: int = logging.INFO) -> int:
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


class ConsoleFormatter(logging.Formatter):
    """Bare messages for INFO, ``level: message`` for everything else."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno == logging.INFO:
            return message
        return f"{record.levelname.lower()}: {message}"


class LineCappedFileHandler(logging.FileHandler):
    """File handler that restarts the log after a maximum line count."""

    def __init__(
        self,
        filename: str | Path,
        *,
        max_lines: int = _DEFAULT_MAX_LINES,
        mode: str = "a",
        encoding: str | None = "utf-8",
        delay: bool = False,
    ) -> None:
        log_path = Path(filename).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        self._line_count = 0
        self._max_lines = max_lines if max_lines > 0 else _DEFAULT_MAX_LINES
        super().__init__(log_path, mode=mode, encoding=encoding, delay=delay)
        self._line_count = self._count_existing_lines()

    def _count_existing_lines(self) -> int:
        log_path = Path(self.baseFilename)
        if not log_path.exists():
            return 0
        try:
            with log_path.open("r", encoding=self.encoding or "utf-8", errors="ignore") as fh:
                return sum(1 for _ in fh)
        except OSError:
            return 0

    def _reset_log_file(self) -> None:
        try:
            self.close()
            Path(self.baseFilename).unlink(missing_ok=True)
        except OSError:
            pass
        finally:
            self._line_count = 0
            self.stream = self._open()

    def emit(self, record: logging.LogRecord) -> None:
        if self._line_count >= self._max_lines:
            self._reset_log_file()

        super().emit(record)
        self._line_count += 1


def configure_root_logger(level: int = logging.INFO) -> logging.Logger:
    """Send records to journald under systemd, to stderr otherwise."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return root

    if connected_to_journal():
        handler: logging.Handler = journal.JournalHandler(SYSLOG_IDENTIFIER=_SYSLOG_IDENTIFIER)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ConsoleFormatter("%(message)s"))

    root.addHandler(handler)
    root.setLevel(level)
    return root


def add_file_handler(
    filename: str | Path,
    *,
    max_lines: int = _DEFAULT_MAX_LINES,
    formatter: logging.Formatter | None = None,
) -> logging.Handler:
    """Also write the root logger's records to a capped log file."""
    if formatter is None:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    handler = LineCappedFileHandler(filename, max_lines=max_lines)
    handler.setFormatter(formatter)
    logging.getLogger().addHandler(handler)
    return handler
