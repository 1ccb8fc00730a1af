"""Response definitions for the plugin protocol.

Responses are sent from the plugin back to the host. Each response:
- Has the `id` of the request it answers
- Has a `body` whose `as` field selects the response kind

Example:
    {
        "id": 7,
        "body": {"as": "OkString", "value": "x"}
    }

The `as` discriminator fully determines which other fields the body may
carry; body models forbid extra fields. In Python the discriminator is the
`kind` attribute (`as` is a keyword) and is serialized by alias.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ProtocolError

FALLBACK_ERROR_MESSAGE = "An error occurred."


class ResponseKind(str, Enum):
    """All response kinds in the protocol."""

    NONE_OK = "NoneOk"
    OK_STRING = "OkString"
    OK_JSON = "OkJSON"
    ERROR = "Error"
    WEB_RESPONSE = "WebResponse"


class _ResponseBody(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class NoneOkBody(_ResponseBody):
    kind: Literal["NoneOk"] = Field(default="NoneOk", alias="as")


class OkStringBody(_ResponseBody):
    kind: Literal["OkString"] = Field(default="OkString", alias="as")
    value: str


class OkJSONBody(_ResponseBody):
    kind: Literal["OkJSON"] = Field(default="OkJSON", alias="as")
    value: Any = None


class ErrorBody(_ResponseBody):
    """Failure response. `message` is never empty."""

    kind: Literal["Error"] = Field(default="Error", alias="as")
    message: str = FALLBACK_ERROR_MESSAGE

    @field_validator("message", mode="before")
    @classmethod
    def _usable_message(cls, value: Any) -> str:
        return stringify_message(value)


class WebResponseBody(_ResponseBody):
    kind: Literal["WebResponse"] = Field(default="WebResponse", alias="as")
    append_headers: dict[str, str] = Field(default_factory=dict)
    response_body: str


ResponseBody = Annotated[
    NoneOkBody | OkStringBody | OkJSONBody | ErrorBody | WebResponseBody,
    Field(discriminator="kind"),
]

RESPONSE_BODY_TYPES = (NoneOkBody, OkStringBody, OkJSONBody, ErrorBody, WebResponseBody)


class Response(BaseModel):
    """A correlated response envelope: `{id, body}`."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    body: ResponseBody

    @property
    def kind(self) -> ResponseKind:
        return ResponseKind(self.body.kind)

    def is_error(self) -> bool:
        return self.body.kind == ResponseKind.ERROR.value

    def to_wire(self) -> dict[str, Any]:
        """Plain JSON-compatible dict, `as` discriminator included."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        """Single-line JSON text for the line-delimited wire form."""
        return self.model_dump_json(by_alias=True)


def parse_response(raw: Mapping[str, Any] | str | bytes) -> Response:
    """Parse a wire response back into a Response.

    Raises:
        ProtocolError: If the input is not a valid response envelope.
    """
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return Response.model_validate_json(raw)
        return Response.model_validate(raw)
    except (ValidationError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid response: {e}") from e


# =============================================================================
# Builders
# =============================================================================


def stringify_message(message: Any) -> str:
    """Best-effort string for an error message, never empty, never raises."""
    if message is None:
        return FALLBACK_ERROR_MESSAGE
    try:
        text = message if isinstance(message, str) else str(message)
    except Exception:
        return FALLBACK_ERROR_MESSAGE
    if not isinstance(text, str) or not text.strip():
        return FALLBACK_ERROR_MESSAGE
    return text


def build_none_ok() -> NoneOkBody:
    return NoneOkBody()


def build_ok_string(value: str) -> OkStringBody:
    return OkStringBody(value=value)


def build_ok_json(value: Any) -> OkJSONBody:
    return OkJSONBody(value=value)


def build_error(message: Any = None) -> ErrorBody:
    """Build an Error body.

    Strings are used as is, exceptions and other objects through `str()`.
    None, blank text, or an object that cannot be stringified fall back to
    FALLBACK_ERROR_MESSAGE.
    """
    return ErrorBody(message=stringify_message(message))


def build_web_response(headers: Mapping[str, str], body: str) -> WebResponseBody:
    return WebResponseBody(append_headers=dict(headers), response_body=body)


def as_response_body(value: Any) -> ResponseBody:
    """Fold an application return value into a response body.

    Response bodies pass through; None becomes NoneOk, a string OkString,
    and anything else OkJSON.
    """
    if isinstance(value, RESPONSE_BODY_TYPES):
        return value
    if value is None:
        return build_none_ok()
    if isinstance(value, str):
        return build_ok_string(value)
    return build_ok_json(value)
