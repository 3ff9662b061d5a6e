"""
Utility functions for the esdump store client.

Includes target parsing (cluster URL vs. file path) and NDJSON file helpers.
"""

from __future__ import annotations

import gzip
import io
import json
import sys
from dataclasses import dataclass
from typing import IO, Any, Callable, Iterator, Optional
from urllib.parse import urlsplit, urlunsplit

from loguru import logger


@dataclass(frozen=True)
class Target:
    """A resolved `--input` / `--output` value."""

    raw: str
    base_url: Optional[str] = None  # set for cluster targets
    index: Optional[str] = None
    path: Optional[str] = None  # set for file targets

    @property
    def is_file(self) -> bool:
        return self.path is not None


def is_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def parse_target(value: str) -> Target:
    """
    Split a target string into cluster base URL + index, or a file path.

    Examples:
        http://localhost:9200/logs  -> base_url=http://localhost:9200, index=logs
        https://es:9200/            -> base_url=https://es:9200, index=None
        ./backup.ndjson             -> path=./backup.ndjson
    """
    if not is_url(value):
        return Target(raw=value, path=value)

    parts = urlsplit(value)
    segments = [s for s in parts.path.split("/") if s]
    index = segments[-1] if segments else None
    prefix = "/" + "/".join(segments[:-1]) if len(segments) > 1 else ""
    base_url = urlunsplit((parts.scheme, parts.netloc, prefix, "", ""))
    return Target(raw=value, base_url=base_url, index=index)


def open_text_in(path: str) -> IO[str]:
    """Open a text file for reading; '-' is stdin, '.gz' is decompressed."""
    if path == "-":
        return io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8")
    if path.endswith(".gz"):
        return gzip.open(path, "rt", encoding="utf-8")
    return open(path, "r", encoding="utf-8")


def open_binary_in(path: str) -> IO[bytes]:
    """Open a file for line-by-line byte reads; '-' is stdin, '.gz' is decompressed."""
    if path == "-":
        return sys.stdin.buffer
    if path.endswith(".gz"):
        return gzip.open(path, "rb")
    return open(path, "rb")


def close_binary_in(fh: IO[bytes], path: str) -> None:
    """Close a handle from open_binary_in; stdin is left open."""
    if path != "-":
        fh.close()


def open_text_out(path: str) -> IO[str]:
    """Open a text file for writing; '-' is stdout, '.gz' is compressed."""
    if path == "-":
        return io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", write_through=True)
    if path.endswith(".gz"):
        return gzip.open(path, "wt", encoding="utf-8")
    return open(path, "w", encoding="utf-8")


def close_text(fh: IO[str], path: str) -> None:
    """Close a handle from open_text_in/out; stdin/stdout are detached, not closed."""
    if path == "-":
        if fh.writable():
            fh.flush()
        fh.detach()
        return
    fh.close()


def dumps_compact(obj: Any) -> str:
    """One-line JSON, no padding (NDJSON framing)."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str)


def iter_ndjson(
    fh: IO,
    on_skip: Optional[Callable[[int, Exception], None]] = None,
) -> Iterator[dict]:
    """
    Yield one JSON object per non-blank line of a text or binary handle.

    Binary lines are decoded one at a time, so invalid UTF-8 only costs the
    line it is on. Lines that do not decode or parse as a JSON object are
    logged and skipped; `on_skip` is called with the 1-based line number and
    the error. The bracket lines and trailing commas of a one-record-per-line
    JSON array are tolerated, so array backups read back like NDJSON.
    """
    for lineno, raw in enumerate(fh, start=1):
        try:
            line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            line = line.strip()
            if line in ("", "[", "]", "[]"):
                continue
            if line.endswith(","):
                line = line[:-1]
            obj = json.loads(line)
            if not isinstance(obj, dict):
                raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
        except ValueError as exc:
            logger.warning(f"Skipping unparsable line {lineno}: {exc}")
            if on_skip:
                on_skip(lineno, exc)
            continue
        yield obj
