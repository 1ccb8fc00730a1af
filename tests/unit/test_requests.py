"""Unit tests for request classification."""

import json

import pytest
from pydantic import ValidationError

from cynthia_plugin_runtime.protocol.errors import RequestParseError
from cynthia_plugin_runtime.protocol.requests import (
    ContentRenderRequest,
    RequestKind,
    TestRequest,
    UnknownRequest,
    classify,
)


def render_request(request_id: int = 3, **overrides) -> dict:
    body = {
        "for": "ContentRenderRequest",
        "template_path": "./templates/post.hbs",
        "template_data": {
            "meta": {
                "id": "hello-world",
                "title": "Hello world",
                "desc": None,
                "category": "news",
                "tags": ["intro"],
                "author": {"name": "Mar", "link": None, "thumbnail": None},
                "dates": {"altered": 1700000500, "published": 1700000000},
                "thumbnail": None,
            },
            "content": "<p>Hi</p>",
        },
    }
    body.update(overrides)
    return {"id": request_id, "body": body}


class TestKnownKinds:
    """Test classification of request kinds this plugin understands."""

    def test_test_request(self):
        """Scenario A: a Test body classifies as TestRequest."""
        request = classify({"id": 7, "body": {"for": "Test", "test": "x"}})

        assert isinstance(request, TestRequest)
        assert request.kind is RequestKind.TEST
        assert request.id == 7
        assert request.body.test == "x"

    def test_content_render_request(self):
        """ContentRenderRequest bodies are fully parsed."""
        request = classify(render_request())

        assert isinstance(request, ContentRenderRequest)
        assert request.id == 3
        assert request.body.template_path == "./templates/post.hbs"
        meta = request.body.template_data.meta
        assert meta.title == "Hello world"
        assert meta.desc is None
        assert meta.author is not None and meta.author.name == "Mar"
        assert meta.dates.published == 1700000000
        assert request.body.template_data.content == "<p>Hi</p>"

    def test_optional_meta_fields_may_be_absent(self):
        """Only id, title and dates are required in meta."""
        raw = render_request()
        raw["body"]["template_data"]["meta"] = {
            "id": "p",
            "title": "T",
            "dates": {"altered": 1.5, "published": 0},
        }

        request = classify(raw)

        assert isinstance(request, ContentRenderRequest)
        assert request.body.template_data.meta.author is None
        assert request.body.template_data.meta.tags == []

    def test_accepts_json_text(self):
        """classify() accepts JSON text as well as decoded objects."""
        line = json.dumps({"id": 1, "body": {"for": "Test", "test": "y"}})

        assert isinstance(classify(line), TestRequest)
        assert isinstance(classify(line.encode("utf-8")), TestRequest)

    def test_unrecognised_fields_are_ignored(self):
        """Newer hosts may add fields to known bodies."""
        request = classify({"id": 2, "body": {"for": "Test", "test": "x", "extra": 1}})

        assert isinstance(request, TestRequest)

    def test_request_is_immutable(self):
        """Parsed requests cannot be modified."""
        request = classify({"id": 7, "body": {"for": "Test", "test": "x"}})

        with pytest.raises(ValidationError):
            request.id = 8


class TestUnknownRequests:
    """Test forward-compatible handling of requests this plugin can't read."""

    def test_unrecognised_kind(self):
        """Scenario D: an unseen `for` is Unknown and does not raise."""
        raw = {"id": 5, "body": {"for": "SomethingUnseen", "payload": [1, 2]}}

        request = classify(raw)

        assert isinstance(request, UnknownRequest)
        assert request.kind is RequestKind.UNKNOWN
        assert request.id == 5
        assert request.body == raw["body"]
        assert request.declared_kind == "SomethingUnseen"

    def test_missing_body(self):
        """A missing body is Unknown with an empty body."""
        request = classify({"id": 4})

        assert isinstance(request, UnknownRequest)
        assert request.body == {}
        assert request.reason == "missing body"

    def test_null_body(self):
        request = classify({"id": 4, "body": None})

        assert isinstance(request, UnknownRequest)
        assert request.body == {}

    def test_missing_discriminator(self):
        request = classify({"id": 4, "body": {"test": "x"}})

        assert isinstance(request, UnknownRequest)
        assert request.declared_kind is None

    def test_non_object_body(self):
        """A non-object body is kept as received."""
        request = classify({"id": 4, "body": ["not", "an", "object"]})

        assert isinstance(request, UnknownRequest)
        assert request.body == ["not", "an", "object"]
        assert request.declared_kind is None

    def test_known_kind_with_invalid_fields(self):
        """A known kind that fails validation is Unknown, not an exception."""
        request = classify({"id": 9, "body": {"for": "Test", "test": 42}})

        assert isinstance(request, UnknownRequest)
        assert request.declared_kind == "Test"
        assert "invalid Test body" in request.reason

    def test_broken_render_request(self):
        raw = render_request()
        del raw["body"]["template_data"]["meta"]["dates"]

        request = classify(raw)

        assert isinstance(request, UnknownRequest)
        assert request.id == 3

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"for": None},
            {"for": 12},
            {"for": ""},
            {"for": "test"},
            "string body",
            0,
            [],
        ],
    )
    def test_never_raises_with_valid_id(self, body):
        """classify() never raises when an id is present."""
        request = classify({"id": 11, "body": body})

        assert request.id == 11


class TestParseErrors:
    """Test inputs that cannot be correlated."""

    def test_missing_id(self):
        """A request without an id is a hard parse failure."""
        with pytest.raises(RequestParseError, match="missing required field: id"):
            classify({"body": {"for": "Test", "test": "x"}})

    @pytest.mark.parametrize("bad_id", ["7", 1.5, None, True, [1]])
    def test_non_integer_id(self, bad_id):
        with pytest.raises(RequestParseError, match="must be an integer"):
            classify({"id": bad_id, "body": {}})

    def test_negative_id(self):
        with pytest.raises(RequestParseError, match="non-negative"):
            classify({"id": -1, "body": {}})

    def test_invalid_json(self):
        with pytest.raises(RequestParseError, match="Invalid JSON"):
            classify("not valid json")

    def test_deeply_nested_json(self):
        """Nesting past the decoder's recursion limit is a parse error."""
        with pytest.raises(RequestParseError, match="Invalid JSON"):
            classify("[" * 100_000 + "]" * 100_000)

    def test_non_object(self):
        with pytest.raises(RequestParseError, match="must be a JSON object"):
            classify("[1, 2, 3]")
