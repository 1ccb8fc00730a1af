"""Transport layer.

Dispatch sinks deliver built responses to the host. The stdio adapter
reads requests from stdin and writes responses to stdout.
"""

from .sink import RESPONSE_PREFIX, CollectingSink, DispatchSink, LineDispatchSink

# Note: stdio_adapter is imported separately to avoid circular imports
# Use: from cynthia_plugin_runtime.transport.stdio_adapter import StdioPluginAdapter

__all__ = [
    "RESPONSE_PREFIX",
    "CollectingSink",
    "DispatchSink",
    "LineDispatchSink",
]
