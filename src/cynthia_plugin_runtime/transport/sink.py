"""Dispatch sinks.

A dispatch sink takes one fully built Response and delivers it to the host.
The host reads the plugin's stdout line by line and picks out responses by
their prefix:

    parse: {"id":7,"body":{"as":"OkString","value":"x"}}\\n

Wire format:
- One response per line, UTF-8, LF newlines only
- JSON is compact and never contains a raw newline
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, TextIO, runtime_checkable

from ..protocol.responses import Response

logger = logging.getLogger(__name__)

RESPONSE_PREFIX = "parse: "
NEWLINE = "\n"


@runtime_checkable
class DispatchSink(Protocol):
    """Anything that can deliver a Response to the host."""

    def send(self, response: Response) -> None: ...


class LineDispatchSink:
    """Writes each response as a prefixed JSON line to a text stream."""

    def __init__(
        self,
        stream: TextIO,
        prefix: str = RESPONSE_PREFIX,
        lock: threading.Lock | None = None,
    ) -> None:
        self._stream = stream
        self._prefix = prefix
        self._lock = lock or threading.Lock()

    def format(self, response: Response) -> str:
        return f"{self._prefix}{response.to_json()}{NEWLINE}"

    def send(self, response: Response) -> None:
        line = self.format(response)
        with self._lock:
            self._stream.write(line)
            self._stream.flush()
        logger.debug(f"Sent response id={response.id}")


class CollectingSink:
    """Keeps responses in memory. Used for previews and tests."""

    def __init__(self) -> None:
        self.responses: list[Response] = []

    def send(self, response: Response) -> None:
        self.responses.append(response)

    def by_id(self, request_id: int) -> list[Response]:
        return [r for r in self.responses if r.id == request_id]
