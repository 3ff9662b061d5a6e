"""
Single-shot copy of index metadata (mapping or settings).

Unlike documents, metadata is one JSON document per index: it is fetched once,
then either written to a file as returned by the cluster (the
`{index: {"mappings": ...}}` envelope) or put onto a destination index.
"""

from __future__ import annotations

import json
from typing import Callable, Optional

from loguru import logger

from esdump_client.utils import Target, close_text, open_text_in, open_text_out

from .errors import ConfigurationError, MetadataError

METADATA_KINDS = ("mapping", "settings")

# Settings the cluster assigns at creation time and rejects on update
READ_ONLY_SETTINGS = frozenset(
    {"uuid", "creation_date", "provided_name", "version", "number_of_shards"}
)

_ENVELOPE_KEY = {"mapping": "mappings", "settings": "settings"}


def _check_kind(kind: str) -> str:
    if kind not in METADATA_KINDS:
        raise ConfigurationError(f"unsupported metadata type: {kind}")
    return _ENVELOPE_KEY[kind]


def unwrap(kind: str, document: dict, index: Optional[str] = None) -> dict:
    """
    Return the bare mapping/settings body from a get-mapping/get-settings
    response (or a file written from one).

    Accepts `{index: {"mappings": {...}}}`, `{"mappings": {...}}`, or the bare
    body itself.
    """
    key = _check_kind(kind)
    if not isinstance(document, dict):
        raise MetadataError(f"invalid {kind} document: expected a JSON object")

    if isinstance(document.get(key), dict):
        return document[key]
    if index and isinstance(document.get(index), dict) and key in document[index]:
        return document[index][key]
    if len(document) == 1:
        (inner,) = document.values()
        if isinstance(inner, dict) and isinstance(inner.get(key), dict):
            return inner[key]
    if kind == "mapping" and "properties" in document:
        return document
    if kind == "settings" and "index" in document:
        return document
    raise MetadataError(f"no {key} found in {kind} document")


def strip_read_only(settings: dict) -> dict:
    """Drop settings the cluster does not accept on update."""
    out = {}
    for k, v in settings.items():
        name = k[len("index.") :] if k.startswith("index.") else k
        if name in READ_ONLY_SETTINGS:
            continue
        if k == "index" and isinstance(v, dict):
            v = {ik: iv for ik, iv in v.items() if ik not in READ_ONLY_SETTINGS}
        out[k] = v
    return out


def apply_metadata(
    kind: str,
    client,
    index: str,
    document: dict,
    *,
    source_index: Optional[str] = None,
) -> None:
    body = unwrap(kind, document, source_index or index)
    if kind == "mapping":
        client.put_mapping(index, body)
    else:
        client.put_settings(index, strip_read_only(body))
    logger.info(f"Applied {kind} to index '{index}'")


def write_metadata(path: str, document: dict) -> None:
    try:
        fh = open_text_out(path)
    except OSError as exc:
        raise MetadataError(f"failed to create {path}: {exc}") from exc
    try:
        json.dump(document, fh, indent=2, ensure_ascii=False)
        fh.write("\n")
    finally:
        close_text(fh, path)


def read_metadata(path: str) -> dict:
    try:
        fh = open_text_in(path)
        try:
            document = json.load(fh)
        finally:
            close_text(fh, path)
    except OSError as exc:
        raise MetadataError(f"failed to read {path}: {exc}") from exc
    except ValueError as exc:
        raise MetadataError(f"failed to parse {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise MetadataError(f"invalid metadata file {path}: expected a JSON object")
    return document


def transfer_metadata(
    kind: str,
    source_client,
    source_index: str,
    destination: Target,
    *,
    client_factory: Optional[Callable[[str], object]] = None,
) -> dict:
    """
    Copy the mapping or settings of `source_index` to a file or another index.

    The destination index defaults to the source index name. Returns the
    document as fetched from the source.
    """
    _check_kind(kind)
    if not source_index:
        raise ConfigurationError("could not extract index from input URL")

    if kind == "mapping":
        document = source_client.get_mapping(source_index)
    else:
        document = source_client.get_settings(source_index)
    logger.debug(f"Fetched {kind} of index '{source_index}'")

    if destination.is_file:
        write_metadata(destination.path, document)
        logger.info(f"Wrote {kind} of '{source_index}' to {destination.path}")
        return document

    if client_factory is None:
        raise ConfigurationError("a client factory is required for cluster destinations")
    dest_index = destination.index or source_index
    apply_metadata(
        kind,
        client_factory(destination.base_url),
        dest_index,
        document,
        source_index=source_index,
    )
    return document


def restore_metadata(kind: str, path: str, client, index: Optional[str]) -> dict:
    """Put a mapping/settings file written by `transfer_metadata` onto `index`."""
    _check_kind(kind)
    if not index:
        raise ConfigurationError("could not extract index from output URL")
    document = read_metadata(path)
    apply_metadata(kind, client, index, document)
    return document
