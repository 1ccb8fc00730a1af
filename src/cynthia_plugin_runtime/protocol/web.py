"""Web responder adapter.

Lets plugin code answer an HTTP-shaped request with a plain function that
returns headers and a body. The adapter handles correlation and delivery:

    responder = WebResponder(request_id, correlator)
    responder.answer(lambda: {"headers": {"x-a": "1"}, "body": "hello"})

sends

    {"id": request_id, "body": {"as": "WebResponse",
                                "append_headers": {"x-a": "1"},
                                "response_body": "hello"}}

If the answering function raises, an Error response with the exception's
message is sent instead. Either way exactly one response is sent.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import ResponderAlreadyAnsweredError, ResponseEncodingError
from .responses import ResponseBody, build_error, build_web_response

if TYPE_CHECKING:
    from .correlator import EnvelopeCorrelator

logger = logging.getLogger(__name__)


class WebRequest(BaseModel):
    """Inbound HTTP request as handed to plugin code."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class ResponderResponse(BaseModel):
    """What an answering function returns: headers to append and a body."""

    model_config = ConfigDict(frozen=True)

    headers: dict[str, str] = Field(default_factory=dict)
    body: str

    @classmethod
    def coerce(cls, value: Any) -> ResponderResponse:
        """Accept a ResponderResponse, a mapping, or a `(headers, body)` pair."""
        if isinstance(value, ResponderResponse):
            return value
        if isinstance(value, Mapping):
            return cls.model_validate(value)
        if isinstance(value, tuple) and len(value) == 2:
            headers, body = value
            return cls(headers=headers, body=body)
        raise TypeError(
            f"Responder must return headers and body, got {type(value).__name__}"
        )


Responder = Callable[[], ResponderResponse | Mapping[str, Any] | tuple[Mapping[str, str], str]]
AsyncResponder = Callable[[], Any]


class ResponderState(str, Enum):
    PENDING = "pending"
    ANSWERED = "answered"


class WebResponder:
    """Answers one web request, exactly once.

    Args:
        request_id: Id of the request being answered
        correlator: Correlator the response is sent through
    """

    def __init__(self, request_id: int, correlator: EnvelopeCorrelator) -> None:
        self.id = request_id
        self._correlator = correlator
        self._state = ResponderState.PENDING
        self._lock = threading.Lock()

    @property
    def state(self) -> ResponderState:
        return self._state

    def _claim(self) -> None:
        with self._lock:
            if self._state is ResponderState.ANSWERED:
                raise ResponderAlreadyAnsweredError(f"Request id={self.id} was already answered")
            self._state = ResponderState.ANSWERED

    def _fold(self, result: Any) -> ResponseBody:
        answer = ResponderResponse.coerce(result)
        return build_web_response(answer.headers, answer.body)

    def _failure(self, error: BaseException) -> ResponseBody:
        logger.exception(f"Web responder for id={self.id} failed: {error}")
        return build_error(error)

    def _deliver(self, body: ResponseBody) -> None:
        try:
            self._correlator.reply(self.id, body)
        except ResponseEncodingError as e:
            self._correlator.reply(self.id, self._failure(e))

    def answer(self, answerer: Responder) -> None:
        """Call `answerer()` once and reply with its result.

        Raises:
            ResponderAlreadyAnsweredError: On a second call
            CorrelationError: If the correlator rejects the id
        """
        self._claim()
        try:
            body = self._fold(answerer())
        except Exception as e:
            body = self._failure(e)
        self._deliver(body)

    async def answer_async(self, answerer: AsyncResponder) -> None:
        """Like `answer`, but `answerer()` may return an awaitable.

        The reply is sent only after the awaitable resolves.
        """
        self._claim()
        try:
            result = answerer()
            if inspect.isawaitable(result):
                result = await result
            body = self._fold(result)
        except Exception as e:
            body = self._failure(e)
        self._deliver(body)
