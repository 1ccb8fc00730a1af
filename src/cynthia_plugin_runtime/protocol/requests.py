"""Request definitions for the plugin protocol.

Requests come from the host. Each request has an integer `id` chosen by the
host and a `body` whose `for` field selects the request kind.

Example:
    {
        "id": 7,
        "body": {"for": "Test", "test": "x"}
    }

The plugin answers with exactly one Response carrying the same `id`.
Request kinds this plugin does not know are classified as UnknownRequest
rather than rejected, so newer hosts can talk to older plugins.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import RequestParseError


class RequestKind(str, Enum):
    """All request kinds understood by this plugin runtime."""

    TEST = "Test"
    CONTENT_RENDER = "ContentRenderRequest"

    # Anything else the host sends
    UNKNOWN = "Unknown"


class _RequestModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


# =============================================================================
# Request bodies
# =============================================================================


class TestRequestBody(_RequestModel):
    """Diagnostic no-op request."""

    __test__ = False

    kind: Literal["Test"] = Field(default="Test", alias="for")
    test: str


class Author(_RequestModel):
    name: str | None = None
    link: str | None = None
    thumbnail: str | None = None


class PublicationDates(_RequestModel):
    """Epoch timestamps, unit owned by the host."""

    altered: int | float
    published: int | float


class PublicationMeta(_RequestModel):
    id: str
    title: str
    desc: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    author: Author | None = None
    dates: PublicationDates
    thumbnail: str | None = None


class TemplateData(_RequestModel):
    meta: PublicationMeta
    content: str


class ContentRenderRequestBody(_RequestModel):
    """Ask the plugin to render a publication through a template."""

    kind: Literal["ContentRenderRequest"] = Field(default="ContentRenderRequest", alias="for")
    template_path: str
    template_data: TemplateData


# =============================================================================
# Classified requests
# =============================================================================


class TestRequest(_RequestModel):
    __test__ = False

    kind: ClassVar[RequestKind] = RequestKind.TEST

    id: int
    body: TestRequestBody


class ContentRenderRequest(_RequestModel):
    kind: ClassVar[RequestKind] = RequestKind.CONTENT_RENDER

    id: int
    body: ContentRenderRequestBody


class UnknownRequest(_RequestModel):
    """A request this plugin cannot interpret.

    `body` is the raw body exactly as received. `reason` says why the
    request was not recognised (unknown `for`, missing body, or a known
    `for` whose fields failed validation).
    """

    kind: ClassVar[RequestKind] = RequestKind.UNKNOWN

    id: int
    body: Any = Field(default_factory=dict)
    reason: str | None = None

    @property
    def declared_kind(self) -> str | None:
        """The `for` value the host sent, if any."""
        if isinstance(self.body, Mapping):
            value = self.body.get("for")
            return value if isinstance(value, str) else None
        return None


ClassifiedRequest = TestRequest | ContentRenderRequest | UnknownRequest

_BODY_MODELS: dict[str, tuple[type[BaseModel], type[BaseModel]]] = {
    RequestKind.TEST.value: (TestRequestBody, TestRequest),
    RequestKind.CONTENT_RENDER.value: (ContentRenderRequestBody, ContentRenderRequest),
}


def _load(raw: Mapping[str, Any] | str | bytes) -> Mapping[str, Any]:
    if isinstance(raw, (str, bytes, bytearray)):
        # deeply nested input exhausts the decoder's recursion limit
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise RequestParseError(f"Invalid JSON: {e}") from e
    if not isinstance(raw, Mapping):
        raise RequestParseError(f"Request must be a JSON object, got {type(raw).__name__}")
    return raw


def _require_id(data: Mapping[str, Any]) -> int:
    if "id" not in data:
        raise RequestParseError("Request is missing required field: id")
    request_id = data["id"]
    # bool is an int subclass, but True is not a correlation id
    if isinstance(request_id, bool) or not isinstance(request_id, int):
        raise RequestParseError(f"Request id must be an integer, got {request_id!r}")
    if request_id < 0:
        raise RequestParseError(f"Request id must be non-negative, got {request_id}")
    return request_id


def classify(raw: Mapping[str, Any] | str | bytes) -> ClassifiedRequest:
    """Classify a parsed (or raw JSON) request by its `body.for` discriminator.

    Args:
        raw: A decoded JSON object, or the JSON text of one

    Returns:
        TestRequest, ContentRenderRequest or UnknownRequest

    Raises:
        RequestParseError: If the input is not an object or has no valid `id`.
            Every other defect yields an UnknownRequest.
    """
    data = _load(raw)
    request_id = _require_id(data)

    if "body" not in data or data["body"] is None:
        return UnknownRequest(id=request_id, body={}, reason="missing body")

    body = data["body"]
    if not isinstance(body, Mapping):
        return UnknownRequest(id=request_id, body=body, reason="body is not an object")

    discriminator = body.get("for")
    match discriminator:
        case str() if discriminator in _BODY_MODELS:
            body_model, request_model = _BODY_MODELS[discriminator]
        case None:
            return UnknownRequest(id=request_id, body=body, reason="missing 'for'")
        case _:
            return UnknownRequest(
                id=request_id, body=body, reason=f"unrecognised kind {discriminator!r}"
            )

    try:
        parsed_body = body_model.model_validate(body)
    except ValidationError as e:
        return UnknownRequest(
            id=request_id,
            body=body,
            reason=f"invalid {discriminator} body: {e.error_count()} validation error(s)",
        )
    return request_model(id=request_id, body=parsed_body)
