"""
Demo script for the esdump pipeline used as a library.

Backs up an index to a gzip NDJSON file with a progress log every 1,000
documents, then prints the run summary.

    python examples/run_backup_demo.py http://localhost:9200/logs logs.ndjson.gz
"""

import json
import sys

from loguru import logger

from esdump import CursorExtractor, FileSink, PipelineCoordinator, ProgressCounter, TransferJob
from esdump_client import connect, parse_target


def main(source_url: str, out_path: str) -> int:
    source = parse_target(source_url)
    progress = ProgressCounter()

    def on_progress(_: int) -> None:
        if progress.value % 1000 == 0:
            logger.info(f"Progress: {progress.value}/{progress.total or '?'}")

    progress.subscribe(on_progress)

    with connect(source.base_url) as es:
        job = TransferJob(
            source_index=source.index,
            destination=FileSink(out_path),
            page_size=500,
            concurrency=4,
        )
        logger.info(f"🚀 Backing up {source.index} to {out_path}")
        result = PipelineCoordinator(CursorExtractor(es, source.index), job, progress=progress).run()

    logger.info(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(main(sys.argv[1], sys.argv[2]))
