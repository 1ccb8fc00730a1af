"""Host/plugin correlation protocol.

Defines the request/response envelope protocol spoken between the host
and an out-of-process plugin.

Key concepts:
- Requests: Host → plugin, `{id, body}` with the kind in `body.for`
- Responses: Plugin → host, `{id, body}` with the kind in `body.as`
- Correlation: Every response carries the id of the request it answers

Exactly one response is sent per request, including when plugin code
fails (it becomes an Error response).
"""

from .correlator import EnvelopeCorrelator
from .errors import (
    CorrelationError,
    DuplicateRequestError,
    MissingCorrelationIdError,
    ProtocolError,
    RequestParseError,
    ResponderAlreadyAnsweredError,
    ResponseEncodingError,
    UnmatchedResponseError,
)
from .handler import RequestHandler
from .requests import (
    ClassifiedRequest,
    ContentRenderRequest,
    ContentRenderRequestBody,
    RequestKind,
    TemplateData,
    TestRequest,
    TestRequestBody,
    UnknownRequest,
    classify,
)
from .responses import (
    FALLBACK_ERROR_MESSAGE,
    Response,
    ResponseBody,
    ResponseKind,
    build_error,
    build_none_ok,
    build_ok_json,
    build_ok_string,
    build_web_response,
    parse_response,
)
from .web import ResponderResponse, WebRequest, WebResponder

__all__ = [
    # Requests
    "ClassifiedRequest",
    "ContentRenderRequest",
    "ContentRenderRequestBody",
    "RequestKind",
    "TemplateData",
    "TestRequest",
    "TestRequestBody",
    "UnknownRequest",
    "classify",
    # Responses
    "FALLBACK_ERROR_MESSAGE",
    "Response",
    "ResponseBody",
    "ResponseKind",
    "build_error",
    "build_none_ok",
    "build_ok_json",
    "build_ok_string",
    "build_web_response",
    "parse_response",
    # Correlation and dispatch
    "EnvelopeCorrelator",
    "RequestHandler",
    "ResponderResponse",
    "WebRequest",
    "WebResponder",
    # Errors
    "CorrelationError",
    "DuplicateRequestError",
    "MissingCorrelationIdError",
    "ProtocolError",
    "RequestParseError",
    "ResponderAlreadyAnsweredError",
    "ResponseEncodingError",
    "UnmatchedResponseError",
]
