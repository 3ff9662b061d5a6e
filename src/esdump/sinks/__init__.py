"""
Destinations for the transfer pipeline.

A sink is picked once per run from the output target: a file path (or `-`)
gets a FileSink, an http(s) URL gets a ClusterSink bound to a client for the
target's base URL.
"""

from __future__ import annotations

from typing import Callable

from esdump_client.utils import Target

from ..errors import ConfigurationError
from ..pipeline.types import Sink, StoreClient
from .cluster import ClusterSink
from .file import FileSink

ClientFactory = Callable[[str], StoreClient]


def build_sink(target: Target, *, format: str, client_factory: ClientFactory) -> Sink:
    """Resolve an output target into a sink (not yet opened)."""
    if target.is_file:
        if not target.path:
            raise ConfigurationError("output file path is required")
        return FileSink(target.path, format=format)
    if not target.base_url:
        raise ConfigurationError(f"invalid output URL: {target.raw}")
    return ClusterSink(client_factory(target.base_url), target.index)


__all__ = ["Sink", "FileSink", "ClusterSink", "build_sink", "ClientFactory"]
