"""Exception types for the plugin protocol layer."""

from __future__ import annotations


class ProtocolError(Exception):
    """Base class for all protocol-level failures."""


class RequestParseError(ProtocolError):
    """Inbound message could not be parsed into a correlatable request.

    Raised when the raw input is not a JSON object or has no usable `id`.
    Without an id no response can be addressed, so this is escalated to the
    caller instead of being turned into an Error response.
    """


class CorrelationError(ProtocolError):
    """A response could not be matched to an in-flight request."""


class MissingCorrelationIdError(CorrelationError):
    """A response was built without knowing the request id."""


class UnmatchedResponseError(CorrelationError):
    """A response id was never observed, or was already answered."""

    def __init__(self, request_id: int, reason: str) -> None:
        super().__init__(f"Response for id={request_id} rejected: {reason}")
        self.request_id = request_id
        self.reason = reason


class DuplicateRequestError(CorrelationError):
    """A request id was observed while another request with it is in flight."""

    def __init__(self, request_id: int) -> None:
        super().__init__(f"Request id={request_id} is already in flight")
        self.request_id = request_id


class ResponderAlreadyAnsweredError(ProtocolError):
    """A web responder was asked to answer twice."""


class ResponseEncodingError(ProtocolError):
    """A response body could not be encoded for the wire.

    Raised by the correlator before the id is released, so the caller can
    still answer the request with an Error response.
    """

    def __init__(self, request_id: int, cause: BaseException) -> None:
        super().__init__(f"Response for id={request_id} could not be encoded: {cause}")
        self.request_id = request_id
