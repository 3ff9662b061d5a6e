"""
esdump store client library

Synchronous Elasticsearch wrapper used by the esdump transfer pipeline:
scroll reads, per-document upserts, mapping/settings get/put.

Usage:
    from esdump_client import ESClient, Document, parse_target

    target = parse_target("http://localhost:9200/logs")
    es = ESClient({"url": target.base_url})
    cursor, docs = es.search(target.index, size=1000)
"""

from .client import ESClient, connect, parse_hits
from .errors import (
    ESOperationalError,
    RetryableError,
    CursorExpired,
    IndexNotFound,
    RequestRejected,
    AuthenticationFailed,
    map_es_error,
)
from .models import Document
from .utils import Target, parse_target, is_url

__version__ = "1.0.0"
__all__ = [
    "ESClient",
    "connect",
    "parse_hits",
    "Document",
    "Target",
    "parse_target",
    "is_url",
    "ESOperationalError",
    "RetryableError",
    "CursorExpired",
    "IndexNotFound",
    "RequestRejected",
    "AuthenticationFailed",
    "map_es_error",
]
