"""Request Handler - dispatches classified requests to plugin code.

Every request handed to `RequestHandler.handle` gets exactly one response
through the correlator, whatever the plugin code does. Application
failures become Error responses; they never escape the handler.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .errors import ResponseEncodingError
from .requests import (
    ClassifiedRequest,
    ContentRenderRequest,
    RequestKind,
    TemplateData,
    TestRequest,
    UnknownRequest,
)
from .responses import ResponseBody, as_response_body, build_error, build_ok_string

if TYPE_CHECKING:
    from .correlator import EnvelopeCorrelator

logger = logging.getLogger(__name__)

# (template_path, template_data) -> rendered HTML, or an awaitable of it
ContentRenderer = Callable[[str, TemplateData], Any]
# request -> response body or plain value, or an awaitable of either
RequestCallback = Callable[[Any], Any]

NO_RENDERER_MESSAGE = "No content renderer is configured"
_KNOWN_KINDS = frozenset(kind.value for kind in RequestKind if kind is not RequestKind.UNKNOWN)


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class RequestHandler:
    """Handles classified requests and replies through the correlator.

    Usage:
        handler = RequestHandler(correlator, renderer=render_page)
        await handler.handle(classify(line))

    Dispatch:
        Test                  -> on_test(request), default OkString(body.test)
        ContentRenderRequest  -> renderer(template_path, template_data),
                                 replied as OkString
        Unknown               -> on_unknown(request), default Error
                                 ("Malformed <kind> request" when a known
                                 kind failed validation)

    Callback return values are folded into response bodies: None becomes
    NoneOk, a string OkString, any other value OkJSON. A value that cannot be
    encoded as JSON is answered with an Error instead.
    """

    def __init__(
        self,
        correlator: EnvelopeCorrelator,
        renderer: ContentRenderer | None = None,
        on_test: RequestCallback | None = None,
        on_unknown: RequestCallback | None = None,
    ) -> None:
        self._correlator = correlator
        self._renderer = renderer
        self._on_test = on_test
        self._on_unknown = on_unknown

    @property
    def correlator(self) -> EnvelopeCorrelator:
        return self._correlator

    async def handle(self, request: ClassifiedRequest) -> None:
        """Observe the request, produce its response body, and reply once."""
        self._correlator.observe(request)
        logger.debug(f"Handling {request.kind.value} request (id={request.id})")

        try:
            body = await self._dispatch(request)
        except Exception as e:
            logger.exception(f"Error handling request id={request.id}: {e}")
            body = build_error(e)

        try:
            self._correlator.reply(request.id, body)
        except ResponseEncodingError as e:
            logger.exception(f"Cannot encode response for id={request.id}: {e}")
            self._correlator.reply(request.id, build_error(e))

    async def _dispatch(self, request: ClassifiedRequest) -> ResponseBody:
        match request.kind:
            case RequestKind.TEST:
                return await self._test(request)
            case RequestKind.CONTENT_RENDER:
                return await self._content_render(request)
            case _:
                return await self._unknown(request)

    async def _test(self, request: TestRequest) -> ResponseBody:
        if self._on_test is not None:
            return as_response_body(await _call(self._on_test, request))
        return build_ok_string(request.body.test)

    async def _content_render(self, request: ContentRenderRequest) -> ResponseBody:
        if self._renderer is None:
            logger.warning(f"Content render requested (id={request.id}) but no renderer set")
            return build_error(NO_RENDERER_MESSAGE)

        body = request.body
        html = await _call(self._renderer, body.template_path, body.template_data)
        if not isinstance(html, str):
            raise TypeError(f"Renderer must return a string, got {type(html).__name__}")
        return build_ok_string(html)

    async def _unknown(self, request: UnknownRequest) -> ResponseBody:
        if self._on_unknown is not None:
            return as_response_body(await _call(self._on_unknown, request))
        kind = request.declared_kind or "<none>"
        if kind in _KNOWN_KINDS:
            logger.info(f"Malformed {kind} request (id={request.id}): {request.reason}")
            return build_error(f"Malformed {kind} request: {request.reason}")
        logger.info(f"Unknown request kind {kind!r} (id={request.id}): {request.reason}")
        return build_error(f"Unknown request kind: {kind}")
