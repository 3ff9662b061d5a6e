from __future__ import annotations

import sys
import threading
from typing import Optional

import typer
from loguru import logger
from tqdm import tqdm

from esdump_client import ESOperationalError, connect, parse_target
from esdump_client.utils import Target

from . import __version__
from .config import get_settings
from .errors import ConfigurationError, TransferError
from .metadata import METADATA_KINDS, restore_metadata, transfer_metadata
from .pipeline import (
    CursorExtractor,
    FileExtractor,
    PipelineCoordinator,
    ProgressCounter,
    RunState,
    TransferJob,
)
from .sinks import build_sink

app = typer.Typer(help="Bulk transfer, backup and restore for Elasticsearch indices")

TRANSFER_TYPES = ("data",) + METADATA_KINDS
EXIT_CANCELLED = 130


# ---------------------------
# Common options
# ---------------------------


def input_opt(help: str = "Source cluster URL with index, or a file path") -> str:
    return typer.Option(..., "--input", "-i", help=help)


def output_opt(help: str = "Destination cluster URL (with optional index), or a file path") -> str:
    return typer.Option(..., "--output", "-o", help=help)


def type_opt() -> str:
    return typer.Option("data", "--type", "-t", help="What to copy: data, mapping or settings")


def limit_opt() -> int:
    return typer.Option(0, "--limit", "-l", help="Maximum number of documents (0 = no limit)")


def concurrency_opt() -> Optional[int]:
    return typer.Option(None, "--concurrency", "-c", help="Number of concurrent writers")


def format_opt(default: str = "ndjson") -> str:
    return typer.Option(default, "--format", "-f", help="File output format (ndjson, json)")


def scroll_size_opt() -> Optional[int]:
    return typer.Option(
        None, "--scroll-size", "--scrollSize", "-s", help="Documents requested per page"
    )


def username_opt() -> Optional[str]:
    return typer.Option(None, "--username", "-u", help="Cluster username (optional)")


def password_opt() -> Optional[str]:
    return typer.Option(None, "--password", "-p", help="Cluster password (optional)")


def verbose_opt() -> bool:
    return typer.Option(False, "--verbose", "-v", help="Verbose logs instead of a progress bar")


# ---------------------------
# Logging / progress
# ---------------------------


def configure_logging(verbose: bool = False) -> None:
    """Route loguru to stderr through tqdm so log lines do not break the bar."""
    level = "DEBUG" if verbose else get_settings().LOG_LEVEL.upper()
    logger.remove()
    logger.add(
        lambda msg: tqdm.write(msg, end="", file=sys.stderr),
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        colorize=sys.stderr.isatty(),
    )


class ProgressBar:
    """tqdm bar fed by a ProgressCounter; total is filled in once counted."""

    def __init__(self, progress: ProgressCounter, desc: str, disable: bool = False):
        self._progress = progress
        self._lock = threading.Lock()
        self._bar = tqdm(total=None, desc=desc, unit="docs", disable=disable, file=sys.stderr)
        progress.subscribe(self.update)

    def update(self, n: int) -> None:
        with self._lock:
            if self._bar.total is None and self._progress.total:
                self._bar.total = self._progress.total
                self._bar.refresh()
            self._bar.update(n)

    def close(self) -> None:
        with self._lock:
            self._bar.close()


# ---------------------------
# Runners
# ---------------------------


class _Clients:
    """Creates one client per base URL for the run and closes them all at the end."""

    def __init__(self, username: Optional[str], password: Optional[str]):
        settings = get_settings()
        self._username = username or settings.USERNAME
        self._password = password or settings.PASSWORD
        self._options = settings.client_options()
        self._clients: dict = {}

    def __call__(self, url: str):
        if url not in self._clients:
            logger.debug(f"Connecting to {url}")
            self._clients[url] = connect(
                url, username=self._username, password=self._password, **self._options
            )
        return self._clients[url]

    def close(self) -> None:
        for client in self._clients.values():
            try:
                client.close()
            except Exception as exc:
                logger.debug(f"Error closing client: {exc}")
        self._clients.clear()


def _check_type(data_type: str) -> None:
    if data_type not in TRANSFER_TYPES:
        raise ConfigurationError(
            f"unsupported transfer type: {data_type} (expected one of {', '.join(TRANSFER_TYPES)})"
        )


def _run_data(
    source: Target,
    destination: Target,
    clients: _Clients,
    *,
    limit: int,
    concurrency: Optional[int],
    format: str,
    scroll_size: Optional[int],
    verbose: bool,
    desc: str,
) -> None:
    settings = get_settings()

    if source.is_file:
        extractor = FileExtractor(source.path)
        source_name = source.path
    else:
        if not source.index:
            raise ConfigurationError("could not extract index from input URL")
        extractor = CursorExtractor(clients(source.base_url), source.index)
        source_name = source.index

    sink = build_sink(destination, format=format, client_factory=clients)
    job = TransferJob(
        source_index=source_name,
        destination=sink,
        page_size=scroll_size if scroll_size is not None else settings.PAGE_SIZE,
        concurrency=concurrency if concurrency is not None else settings.CONCURRENCY,
        limit=limit,
        format=format,
    )
    logger.info(
        f"Starting {desc.lower()} from {source.raw} to {destination.raw} "
        f"(concurrency={job.concurrency}, page_size={job.page_size}, limit={job.limit})"
    )

    progress = ProgressCounter()
    bar = ProgressBar(progress, desc, disable=verbose)
    try:
        result = PipelineCoordinator(extractor, job, progress=progress).run()
    finally:
        bar.close()

    if isinstance(extractor, FileExtractor) and extractor.skipped:
        logger.warning(f"Skipped {extractor.skipped} unreadable lines in {source.path}")
    if result.failed:
        logger.warning(f"{result.failed} of {result.attempted} documents failed to write")

    if result.state == RunState.CANCELLED:
        typer.echo("Error: transfer cancelled", err=True)
        raise typer.Exit(code=EXIT_CANCELLED)
    result.raise_for_state()


def _execute(
    *,
    input: str,
    output: str,
    data_type: str,
    limit: int,
    concurrency: Optional[int],
    format: str,
    scroll_size: Optional[int],
    username: Optional[str],
    password: Optional[str],
    verbose: bool,
    desc: str,
    require_file_output: bool = False,
    require_file_input: bool = False,
) -> None:
    configure_logging(verbose)
    clients = _Clients(username, password)
    try:
        _check_type(data_type)
        source = parse_target(input)
        destination = parse_target(output)

        if require_file_output and not destination.is_file:
            raise ConfigurationError("backup output must be a file path")
        if require_file_input:
            if not source.is_file:
                raise ConfigurationError("restore input must be a file path")
            if destination.is_file:
                raise ConfigurationError("restore output must be a cluster URL")

        if data_type == "data":
            _run_data(
                source,
                destination,
                clients,
                limit=limit,
                concurrency=concurrency,
                format=format,
                scroll_size=scroll_size,
                verbose=verbose,
                desc=desc,
            )
        elif source.is_file:
            if destination.is_file:
                raise ConfigurationError(f"{data_type} restore needs a cluster output")
            restore_metadata(
                data_type, source.path, clients(destination.base_url), destination.index
            )
        else:
            transfer_metadata(
                data_type,
                clients(source.base_url),
                source.index,
                destination,
                client_factory=clients,
            )
    except (TransferError, ESOperationalError) as e:
        logger.debug(f"{type(e).__name__}: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        clients.close()

    logger.success(f"{desc} completed: {input} -> {output}")


# ---------------------------
# Commands
# ---------------------------


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"esdump {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Move documents, mappings and settings between clusters and files."""


@app.command("transfer")
def transfer(
    input: str = input_opt(),
    output: str = output_opt(),
    data_type: str = type_opt(),
    limit: int = limit_opt(),
    concurrency: Optional[int] = concurrency_opt(),
    format: str = format_opt(),
    scroll_size: Optional[int] = scroll_size_opt(),
    username: Optional[str] = username_opt(),
    password: Optional[str] = password_opt(),
    verbose: bool = verbose_opt(),
):
    """Copy data, mapping or settings between clusters (or to/from a file)."""
    _execute(
        input=input,
        output=output,
        data_type=data_type,
        limit=limit,
        concurrency=concurrency,
        format=format,
        scroll_size=scroll_size,
        username=username,
        password=password,
        verbose=verbose,
        desc="Transfer",
    )


@app.command("backup")
def backup(
    input: str = input_opt("Source cluster URL with index"),
    output: str = output_opt("Output file path ('-' for stdout, '.gz' to compress)"),
    data_type: str = type_opt(),
    limit: int = limit_opt(),
    concurrency: Optional[int] = concurrency_opt(),
    format: str = format_opt(),
    scroll_size: Optional[int] = scroll_size_opt(),
    username: Optional[str] = username_opt(),
    password: Optional[str] = password_opt(),
    verbose: bool = verbose_opt(),
):
    """Back up data, mapping or settings of an index to a file."""
    _execute(
        input=input,
        output=output,
        data_type=data_type,
        limit=limit,
        concurrency=concurrency,
        format=format,
        scroll_size=scroll_size,
        username=username,
        password=password,
        verbose=verbose,
        desc="Backup",
        require_file_output=True,
    )


@app.command("restore")
def restore(
    input: str = input_opt("Backup file path ('-' for stdin, '.gz' is decompressed)"),
    output: str = output_opt("Destination cluster URL with index"),
    data_type: str = type_opt(),
    limit: int = limit_opt(),
    concurrency: Optional[int] = concurrency_opt(),
    scroll_size: Optional[int] = scroll_size_opt(),
    username: Optional[str] = username_opt(),
    password: Optional[str] = password_opt(),
    verbose: bool = verbose_opt(),
):
    """Restore data, mapping or settings from a backup file into a cluster."""
    _execute(
        input=input,
        output=output,
        data_type=data_type,
        limit=limit,
        concurrency=concurrency,
        format="ndjson",
        scroll_size=scroll_size,
        username=username,
        password=password,
        verbose=verbose,
        desc="Restore",
        require_file_input=True,
    )


if __name__ == "__main__":
    app()
