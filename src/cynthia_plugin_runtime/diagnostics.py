"""Diagnostic output for the plugin process.

The host reads the plugin's stdout and treats lines by prefix: `parse:`
lines are responses, while `log:`, `error:`, `warn:`, `info:` and `debug:`
lines are shown in its console. Diagnostics have no protocol effect.

`DiagnosticLogHandler` forwards stdlib logging records to a
DiagnosticConsole, so package code keeps using `logging.getLogger(__name__)`
and the host still sees the messages.
"""

from __future__ import annotations

import logging
import sys
import threading
from enum import Enum
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from .config import PluginConfig


class DiagnosticLevel(str, Enum):
    LOG = "log"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class DiagnosticConsole:
    """Writes `<level>: <text>` lines for the host console.

    Pass the same `lock` as the LineDispatchSink on this stream so
    diagnostics and responses never interleave mid-line.
    """

    def __init__(self, stream: TextIO | None = None, lock: threading.Lock | None = None) -> None:
        self._stream = stream or sys.stdout
        self._lock = lock or threading.Lock()

    def write(self, level: DiagnosticLevel | str, text: object) -> None:
        label = DiagnosticLevel(level).value
        # one diagnostic per line, the host splits on newlines
        message = str(text).replace("\r\n", "\n").replace("\n", "\\n")
        with self._lock:
            self._stream.write(f"{label}: {message}\n")
            self._stream.flush()

    def log(self, text: object) -> None:
        self.write(DiagnosticLevel.LOG, text)

    def error(self, text: object) -> None:
        self.write(DiagnosticLevel.ERROR, text)

    def warn(self, text: object) -> None:
        self.write(DiagnosticLevel.WARN, text)

    def info(self, text: object) -> None:
        self.write(DiagnosticLevel.INFO, text)

    def debug(self, text: object) -> None:
        self.write(DiagnosticLevel.DEBUG, text)


def level_for_record(levelno: int) -> DiagnosticLevel:
    """Map a logging level number to a diagnostic label."""
    if levelno >= logging.ERROR:
        return DiagnosticLevel.ERROR
    if levelno >= logging.WARNING:
        return DiagnosticLevel.WARN
    if levelno >= logging.INFO:
        return DiagnosticLevel.INFO
    return DiagnosticLevel.DEBUG


class DiagnosticLogHandler(logging.Handler):
    """logging.Handler that forwards records to a DiagnosticConsole."""

    def __init__(self, console: DiagnosticConsole, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.console.write(level_for_record(record.levelno), self.format(record))
        except Exception:
            self.handleError(record)


def configure_logging(config: PluginConfig, console: DiagnosticConsole) -> DiagnosticLogHandler:
    """Route package logging to the host console at the configured level.

    Replaces any handler a previous call installed, so it can be called
    again with a new config.
    """
    package_logger = logging.getLogger("cynthia_plugin_runtime")
    for existing in list(package_logger.handlers):
        if isinstance(existing, DiagnosticLogHandler):
            package_logger.removeHandler(existing)

    handler = DiagnosticLogHandler(console)
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(config.log_level)
    package_logger.propagate = False
    return handler
