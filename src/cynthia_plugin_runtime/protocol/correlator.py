"""Envelope correlator.

The single choke point for emitting responses. Every response leaves
through `EnvelopeCorrelator.reply`, which tags it with the request id and
hands it to the dispatch sink.

Correlation rules:
- An id must be observed (request received) before it can be replied to
- Each observed id is answered exactly once
- A reply without an id is a programming error and raises immediately
- A body that cannot be encoded is rejected while the id is still in flight
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from .errors import (
    DuplicateRequestError,
    MissingCorrelationIdError,
    ResponseEncodingError,
    UnmatchedResponseError,
)
from .requests import ClassifiedRequest
from .responses import Response, ResponseBody

if TYPE_CHECKING:
    from ..transport.sink import DispatchSink

logger = logging.getLogger(__name__)


class EnvelopeCorrelator:
    """Matches outgoing responses to in-flight requests.

    Usage:
        correlator = EnvelopeCorrelator(sink)

        correlator.observe(request)           # on receipt
        correlator.reply(request.id, body)    # exactly once

    Thread safety:
        In-flight bookkeeping is guarded by a lock, so replies may come from
        concurrent asyncio tasks or executor threads. The id leaves the
        in-flight set before the sink is called, so a racing second reply
        for the same id is rejected rather than sent.
    """

    def __init__(self, sink: DispatchSink) -> None:
        self._sink = sink
        self._in_flight: set[int] = set()
        self._lock = threading.Lock()

    @property
    def sink(self) -> DispatchSink:
        return self._sink

    @property
    def pending_ids(self) -> frozenset[int]:
        """Snapshot of ids that have been observed but not yet answered."""
        with self._lock:
            return frozenset(self._in_flight)

    def is_pending(self, request_id: int) -> bool:
        with self._lock:
            return request_id in self._in_flight

    def observe(self, request: ClassifiedRequest | int) -> int:
        """Record a request id as in flight.

        Returns:
            The observed id

        Raises:
            DuplicateRequestError: If the id is already in flight
        """
        request_id = request if isinstance(request, int) else request.id
        with self._lock:
            if request_id in self._in_flight:
                raise DuplicateRequestError(request_id)
            self._in_flight.add(request_id)
        logger.debug(f"Observed request id={request_id}")
        return request_id

    def reply(self, request_id: int | None, body: ResponseBody) -> None:
        """Tag `body` with `request_id` and forward it to the dispatch sink.

        Raises:
            MissingCorrelationIdError: If `request_id` is None
            UnmatchedResponseError: If the id was never observed or was
                already answered
            ResponseEncodingError: If the body cannot be encoded as JSON.
                The id stays in flight, so the request can still be answered.
        """
        if request_id is None:
            raise MissingCorrelationIdError("Cannot send a response without a request id")

        try:
            response = Response(id=request_id, body=body)
            response.to_json()
        except (ValueError, TypeError) as e:
            raise ResponseEncodingError(request_id, e) from e

        with self._lock:
            if request_id not in self._in_flight:
                error = UnmatchedResponseError(request_id, "no matching request in flight")
            else:
                self._in_flight.discard(request_id)
                error = None

        if error is not None:
            logger.error(f"Protocol violation: {error}")
            raise error

        logger.debug(f"Replying to id={request_id} as {response.body.kind}")
        self._sink.send(response)
