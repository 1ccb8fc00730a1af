"""Cynthia plugin runtime.

Plugin-side implementation of the host/plugin correlation protocol.
"""

from .protocol import (
    EnvelopeCorrelator,
    RequestHandler,
    Response,
    WebResponder,
    build_error,
    build_none_ok,
    build_ok_json,
    build_ok_string,
    build_web_response,
    classify,
)

__version__ = "0.1.0"

# Plugin API level the host checks plugins against
PLUGIN_COMPAT = "2"

__all__ = [
    "EnvelopeCorrelator",
    "PLUGIN_COMPAT",
    "RequestHandler",
    "Response",
    "WebResponder",
    "__version__",
    "build_error",
    "build_none_ok",
    "build_ok_json",
    "build_ok_string",
    "build_web_response",
    "classify",
]
