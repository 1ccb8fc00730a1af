"""Pytest configuration and shared fixtures."""

import pytest

from cynthia_plugin_runtime.protocol.correlator import EnvelopeCorrelator
from cynthia_plugin_runtime.transport.sink import CollectingSink


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def sink():
    """In-memory dispatch sink collecting every response sent."""
    return CollectingSink()


@pytest.fixture
def correlator(sink):
    """Correlator wired to the collecting sink."""
    return EnvelopeCorrelator(sink)
