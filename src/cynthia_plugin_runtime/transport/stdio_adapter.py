"""stdio Plugin Adapter.

Connects the plugin protocol to the host over the plugin process's
standard streams.

Wire format (newline-delimited, UTF-8 encoded):
- Input (stdin):   {"id": 7, "body": {"for": "Test", "test": "x"}}
- Output (stdout): parse: {"id": 7, "body": {"as": "OkString", "value": "x"}}
- Diagnostics (stdout): error: <text>, warn: <text>, info: <text>, ...

Cross-platform considerations:
- All JSON is UTF-8 encoded (no BOM)
- Output newlines are always LF (\\n), never CRLF
- Input accepts both LF and CRLF, and a leading BOM is stripped
"""

from __future__ import annotations

import asyncio
import io
import logging
import sys
import threading
from typing import BinaryIO

from ..config import PluginConfig, load_renderer
from ..diagnostics import DiagnosticConsole, configure_logging
from ..protocol.correlator import EnvelopeCorrelator
from ..protocol.errors import CorrelationError, RequestParseError
from ..protocol.handler import ContentRenderer, RequestCallback, RequestHandler
from ..protocol.requests import ClassifiedRequest, classify
from .sink import NEWLINE, LineDispatchSink

logger = logging.getLogger(__name__)

ENCODING = "utf-8"


class StdioPluginAdapter:
    """Reads requests from stdin and writes responses to stdout.

    Each request is handled in its own task, so a slow render does not hold
    up a quick Test request behind it. At most `config.max_concurrency`
    requests are handled at once. When stdin closes, requests still in
    flight are finished before `run()` returns.

    Usage:
        adapter = StdioPluginAdapter(renderer=render_page)
        await adapter.run()  # Blocks until stdin closes

    Example session:
        → {"id":1,"body":{"for":"Test","test":"hi"}}
        ← parse: {"id":1,"body":{"as":"OkString","value":"hi"}}
        → {"id":2,"body":{"for":"SomethingNew"}}
        ← parse: {"id":2,"body":{"as":"Error","message":"Unknown request kind: SomethingNew"}}
        → {"body":{"for":"Test","test":"no id"}}
        ← error: Parse error: Request is missing required field: id
    """

    def __init__(
        self,
        config: PluginConfig | None = None,
        renderer: ContentRenderer | None = None,
        on_unknown: RequestCallback | None = None,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        self._config = config or PluginConfig()

        self._reader = io.TextIOWrapper(
            stdin if stdin is not None else sys.stdin.buffer,
            encoding=ENCODING,
            errors="replace",
            newline="",  # Universal newline mode - accepts LF, CRLF, CR
        )
        self._writer = io.TextIOWrapper(
            stdout if stdout is not None else sys.stdout.buffer,
            encoding=ENCODING,
            errors="replace",
            newline=NEWLINE,
            write_through=True,
        )

        # responses may be sent from executor threads while the loop logs
        write_lock = threading.Lock()
        self.console = DiagnosticConsole(self._writer, lock=write_lock)
        self._sink = LineDispatchSink(
            self._writer, prefix=self._config.response_prefix, lock=write_lock
        )
        self._correlator = EnvelopeCorrelator(self._sink)

        if renderer is None and self._config.renderer:
            renderer = load_renderer(self._config.renderer)
        self._handler = RequestHandler(self._correlator, renderer=renderer, on_unknown=on_unknown)

        self._tasks: set[asyncio.Task[None]] = set()
        self._running = False

    @property
    def correlator(self) -> EnvelopeCorrelator:
        return self._correlator

    async def run(self) -> None:
        """Run the adapter, processing requests until stdin closes."""
        self._running = True
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        try:
            while self._running:
                line = await self._read_line()
                if line is None:
                    break  # EOF

                line = line.strip()
                if not line:
                    continue

                if line.startswith("\ufeff"):
                    line = line[1:]

                request = self._classify(line)
                if request is None:
                    continue

                await semaphore.acquire()
                task = asyncio.create_task(self._handle(request, semaphore))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

        except asyncio.CancelledError:
            logger.info("stdio adapter cancelled")
            raise
        finally:
            self._running = False
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Stop reading after the current line."""
        self._running = False

    async def _read_line(self) -> str | None:
        loop = asyncio.get_running_loop()
        line = await loop.run_in_executor(None, self._reader.readline)
        return line if line else None

    def _classify(self, line: str) -> ClassifiedRequest | None:
        try:
            return classify(line)
        except RequestParseError as e:
            # no id to reply to, so the host only sees a diagnostic
            logger.debug(f"Dropping unparseable request: {e}")
            self.console.error(f"Parse error: {e}")
            return None

    async def _handle(self, request: ClassifiedRequest, semaphore: asyncio.Semaphore) -> None:
        try:
            await self._handler.handle(request)
        except CorrelationError as e:
            self.console.error(f"Protocol error: {e}")
        except Exception as e:
            logger.exception(f"Failed to deliver response for id={request.id}: {e}")
            self.console.error(f"Failed to deliver response for id={request.id}: {e}")
        finally:
            semaphore.release()


async def run_stdio_adapter(
    config: PluginConfig | None = None,
    renderer: ContentRenderer | None = None,
) -> None:
    """Run the stdio adapter on the process's real streams."""
    config = config or PluginConfig.from_env()
    adapter = StdioPluginAdapter(config=config, renderer=renderer)
    configure_logging(config, adapter.console)
    await adapter.run()

