from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from elasticsearch import Elasticsearch

from .errors import ESOperationalError, map_es_error
from .models import Document


@dataclass
class _Cfg:
    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    request_timeout: float = 30.0
    verify_certs: bool = True
    scroll_keepalive: str = "5m"
    max_retries: int = 3


def _body(resp: Any) -> Any:
    # ObjectApiResponse exposes the decoded JSON as .body; mocks hand back dicts
    return getattr(resp, "body", resp)


def parse_hits(resp: Any) -> tuple[Optional[str], list[Document]]:
    """Extract (scroll_id, documents) from a search/scroll response."""
    body = _body(resp)
    scroll_id = body.get("_scroll_id")
    hits = (body.get("hits") or {}).get("hits") or []
    return scroll_id, [Document.model_validate(h) for h in hits]


class ESClient:
    """
    Thin synchronous wrapper over `elasticsearch.Elasticsearch`.

    Exposes exactly the calls the transfer pipeline and the metadata copy
    need; every transport/API error is re-raised as an ESOperationalError
    subclass (see errors.map_es_error).

    Usage:
        es = ESClient({"url": "http://localhost:9200", "username": "elastic"})
        cursor, docs = es.search("logs", size=500)
        while docs:
            cursor, docs = es.continue_scroll(cursor)
        es.clear_scroll(cursor)
    """

    def __init__(self, config: dict, es: Optional[Elasticsearch] = None):
        c = _Cfg(**config)
        self._cfg = c
        if es is None:
            kwargs: dict[str, Any] = {
                "request_timeout": c.request_timeout,
                "verify_certs": c.verify_certs,
                "max_retries": c.max_retries,
                "retry_on_timeout": True,
            }
            if c.username and c.password:
                kwargs["basic_auth"] = (c.username, c.password)
            es = Elasticsearch([c.url], **kwargs)
        self._es = es

    @property
    def url(self) -> str:
        return self._cfg.url

    def close(self) -> None:
        self._es.close()

    def __enter__(self) -> "ESClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- reads ----------

    def count(self, index: str) -> int:
        try:
            resp = self._es.count(index=index)
        except Exception as e:
            raise map_es_error(e) from e
        return int(_body(resp)["count"])

    def search(self, index: str, size: int) -> tuple[Optional[str], list[Document]]:
        """Open a scroll over the whole index; returns the first page."""
        try:
            resp = self._es.search(
                index=index,
                size=size,
                scroll=self._cfg.scroll_keepalive,
                sort=["_doc"],
            )
        except Exception as e:
            raise map_es_error(e) from e
        return parse_hits(resp)

    def continue_scroll(self, cursor: str) -> tuple[Optional[str], list[Document]]:
        try:
            resp = self._es.scroll(scroll_id=cursor, scroll=self._cfg.scroll_keepalive)
        except Exception as e:
            raise map_es_error(e) from e
        return parse_hits(resp)

    def clear_scroll(self, cursor: str) -> None:
        try:
            self._es.clear_scroll(scroll_id=cursor)
        except Exception as e:
            raise map_es_error(e) from e

    # ---------- writes ----------

    def upsert(self, index: str, doc_id: Optional[str], source: dict) -> None:
        """Index one document; an existing document with the same id is replaced."""
        try:
            self._es.index(index=index, id=doc_id, document=source, refresh=False)
        except Exception as e:
            raise map_es_error(e) from e

    # ---------- index metadata ----------

    def get_mapping(self, index: str) -> dict:
        try:
            return dict(_body(self._es.indices.get_mapping(index=index)))
        except Exception as e:
            raise map_es_error(e) from e

    def put_mapping(self, index: str, mapping: dict) -> None:
        try:
            self._es.indices.put_mapping(index=index, body=mapping)
        except Exception as e:
            raise map_es_error(e) from e

    def get_settings(self, index: str) -> dict:
        try:
            return dict(_body(self._es.indices.get_settings(index=index)))
        except Exception as e:
            raise map_es_error(e) from e

    def put_settings(self, index: str, settings: dict) -> None:
        try:
            self._es.indices.put_settings(index=index, settings=settings)
        except Exception as e:
            raise map_es_error(e) from e


def connect(
    url: str,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    **options: Any,
) -> ESClient:
    """Build a client for a cluster base URL (no index path)."""
    if not url:
        raise ESOperationalError("cluster URL is required")
    return ESClient({"url": url, "username": username, "password": password, **options})
