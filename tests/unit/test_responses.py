"""Unit tests for response bodies and builders."""

import json

import pytest
from pydantic import ValidationError

from cynthia_plugin_runtime.protocol.errors import ProtocolError
from cynthia_plugin_runtime.protocol.responses import (
    FALLBACK_ERROR_MESSAGE,
    ErrorBody,
    OkStringBody,
    Response,
    ResponseKind,
    as_response_body,
    build_error,
    build_none_ok,
    build_ok_json,
    build_ok_string,
    build_web_response,
    parse_response,
)


class Unprintable:
    def __str__(self):
        raise RuntimeError("no string for you")


class Blank:
    def __str__(self):
        return ""


class TestBuilders:
    """Test that each builder produces the right wire shape."""

    def test_none_ok(self):
        body = build_none_ok()

        assert body.model_dump(by_alias=True) == {"as": "NoneOk"}

    def test_ok_string(self):
        body = build_ok_string("x")

        assert body.model_dump(by_alias=True) == {"as": "OkString", "value": "x"}

    def test_ok_json(self):
        body = build_ok_json({"posts": [1, 2], "ok": True})

        assert body.model_dump(by_alias=True) == {
            "as": "OkJSON",
            "value": {"posts": [1, 2], "ok": True},
        }

    def test_web_response(self):
        headers = {"x-a": "1"}
        body = build_web_response(headers, "hello")

        assert body.model_dump(by_alias=True) == {
            "as": "WebResponse",
            "append_headers": {"x-a": "1"},
            "response_body": "hello",
        }
        # the builder copies the mapping it was given
        headers["x-b"] = "2"
        assert body.append_headers == {"x-a": "1"}

    def test_bodies_are_immutable(self):
        body = build_ok_string("x")

        with pytest.raises(ValidationError):
            body.value = "y"

    def test_bodies_reject_foreign_fields(self):
        """A body cannot carry fields from another variant."""
        with pytest.raises(ValidationError):
            OkStringBody(value="x", response_body="y")


class TestBuildError:
    """Test that Error bodies always carry a usable message."""

    def test_string_message(self):
        assert build_error("boom").message == "boom"

    def test_undefined_message(self):
        """Scenario E: no message gives the fixed fallback."""
        body = build_error()

        assert body.model_dump(by_alias=True) == {"as": "Error", "message": "An error occurred."}

    def test_none_message(self):
        assert build_error(None).message == FALLBACK_ERROR_MESSAGE

    def test_exception_message(self):
        assert build_error(ValueError("template missing")).message == "template missing"

    def test_exception_without_message(self):
        assert build_error(ValueError()).message == FALLBACK_ERROR_MESSAGE

    def test_object_message(self):
        assert build_error({"code": 3}).message == "{'code': 3}"

    @pytest.mark.parametrize("message", ["", "   ", Blank(), Unprintable()])
    def test_unusable_messages_fall_back(self, message):
        assert build_error(message).message == FALLBACK_ERROR_MESSAGE

    @pytest.mark.parametrize(
        "message", [None, "", 0, False, [], {}, Unprintable(), Blank(), Exception(), "ok", 3.5]
    )
    def test_message_is_never_empty(self, message):
        body = build_error(message)

        assert isinstance(body.message, str)
        assert body.message.strip()

    def test_error_body_validates_wire_input(self):
        """Error bodies parsed from the wire get the fallback too."""
        assert ErrorBody.model_validate({"as": "Error"}).message == FALLBACK_ERROR_MESSAGE
        assert ErrorBody.model_validate({"as": "Error", "message": None}).message == (
            FALLBACK_ERROR_MESSAGE
        )


class TestResponseEnvelope:
    """Test the {id, body} envelope and its wire form."""

    def test_scenario_a_wire_shape(self):
        response = Response(id=7, body=build_ok_string("x"))

        assert response.to_wire() == {"id": 7, "body": {"as": "OkString", "value": "x"}}

    def test_to_json_is_single_line(self):
        response = Response(id=1, body=build_ok_string("line1\nline2"))

        text = response.to_json()

        assert "\n" not in text
        assert json.loads(text)["body"]["value"] == "line1\nline2"

    def test_kind_and_is_error(self):
        assert Response(id=1, body=build_error("x")).kind is ResponseKind.ERROR
        assert Response(id=1, body=build_error("x")).is_error()
        assert not Response(id=1, body=build_none_ok()).is_error()

    def test_negative_id_rejected(self):
        with pytest.raises(ValidationError):
            Response(id=-1, body=build_none_ok())

    @pytest.mark.parametrize(
        "body",
        [
            build_none_ok(),
            build_ok_string("Hello 世界 🌍"),
            build_ok_json({"nested": {"list": [1, "two", None]}}),
            build_ok_json(None),
            build_error("failed"),
            build_web_response({"content-type": "text/html"}, "<h1>hi</h1>"),
        ],
    )
    def test_round_trip(self, body):
        """Serializing then parsing gives back an equal response."""
        response = Response(id=42, body=body)

        restored = parse_response(response.to_json())

        assert restored == response
        assert restored.to_wire() == response.to_wire()

    def test_parse_from_dict(self):
        restored = parse_response({"id": 2, "body": {"as": "NoneOk"}})

        assert restored.kind is ResponseKind.NONE_OK

    def test_parse_rejects_unknown_kind(self):
        with pytest.raises(ProtocolError):
            parse_response({"id": 2, "body": {"as": "Maybe"}})

    def test_parse_rejects_mixed_fields(self):
        with pytest.raises(ProtocolError):
            parse_response({"id": 2, "body": {"as": "NoneOk", "value": "x"}})

    def test_parse_rejects_invalid_json(self):
        with pytest.raises(ProtocolError):
            parse_response("{not json")


class TestAsResponseBody:
    """Test folding of plain values into response bodies."""

    def test_body_passes_through(self):
        body = build_web_response({}, "x")

        assert as_response_body(body) is body

    def test_none(self):
        assert as_response_body(None).kind == "NoneOk"

    def test_string(self):
        assert as_response_body("hi") == build_ok_string("hi")

    def test_structured(self):
        assert as_response_body({"a": 1}) == build_ok_json({"a": 1})
        assert as_response_body([1, 2]) == build_ok_json([1, 2])
