"""Console and per-run log file output, using loguru.

Two sinks are installed: the console (written through tqdm so progress bars
stay intact) and a `takeout-exif-<timestamp>.log` file in the scanned root.
Records bound with `file_only=True` skip the console, records bound with
`console_only=True` skip the file.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger
from tqdm import tqdm

from takeout_exif.config import (
    LOG_FILE_PREFIX,
    LOG_FILE_TIME_FORMAT,
    MAX_DISPLAYED_SKIPPED_FILES,
    RunOptions,
)
from takeout_exif.scan import RunResult

SEPARATOR = "=" * 80

file_log = logger.bind(file_only=True)
console_log = logger.bind(console_only=True)


def _console_sink(message) -> None:
    stream = sys.stderr if message.record["level"].no >= 40 else sys.stdout
    tqdm.write(str(message), file=stream, end="")


def log_file_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{LOG_FILE_PREFIX}-{now.strftime(LOG_FILE_TIME_FORMAT)}.log"


def setup_logging(root: Path) -> Optional[Path]:
    """Install the console and file sinks; return the log file path.

    The log goes into `root`, or the current directory if `root` is not
    writable. Returns None when neither works.
    """
    logger.remove()
    logger.add(
        _console_sink,
        format="{message}",
        level="INFO",
        filter=lambda r: not r["extra"].get("file_only", False),
    )

    name = log_file_name()
    error: Optional[OSError] = None
    for directory in (Path(root), Path.cwd()):
        path = directory / name
        try:
            logger.add(
                str(path),
                format="{message}",
                level="INFO",
                mode="w",
                encoding="utf-8",
                filter=lambda r: not r["extra"].get("console_only", False),
            )
            return path
        except OSError as e:
            error = e

    logger.warning(f"Warning: Could not create log file: {error}")
    return None


def close_logging() -> None:
    """Flush and close every sink."""
    logger.remove()


def log_header(root: Path, options: RunOptions) -> None:
    file_log.info(SEPARATOR)
    file_log.info("takeout-exif - Google Takeout sidecar to EXIF merge")
    file_log.info(f"Started: {datetime.now().isoformat(timespec='seconds')}")
    file_log.info(f"Mode: {'DRY-RUN' if options.dry_run else 'WRITE'}")
    file_log.info(f"Root: {root}")
    file_log.info(f"Recursive: {options.recursive}")
    file_log.info(f"Set file times: {options.set_filetimes}")
    file_log.info(f"Backup: {options.backup}")
    file_log.info(f"Time reference: {'UTC' if options.use_utc else 'local'}")
    file_log.info(f"Workers: {options.workers}")
    file_log.info(SEPARATOR)
    file_log.info("")


def log_summary(result: RunResult, options: RunOptions, log_path: Optional[Path] = None) -> None:
    """Write the end-of-run summary to the console and the log file."""
    logger.info("")
    logger.info(SEPARATOR)
    logger.info("SUMMARY")
    logger.info(SEPARATOR)
    logger.info(f"Total files processed: {result.processed}")
    logger.info(f"Successfully updated:  {result.succeeded}{' (dry-run)' if options.dry_run else ''}")
    logger.info(f"Skipped (no sidecar): {result.skipped_no_sidecar}")
    logger.info(f"Skipped (no data):    {result.skipped_no_data}")
    logger.info(f"Errors:               {result.errored}")
    logger.info(SEPARATOR)

    if result.skipped:
        logger.info("")
        logger.info(f"SKIPPED FILES ({len(result.skipped)}):")
        for entry in result.skipped[:MAX_DISPLAYED_SKIPPED_FILES]:
            logger.info(f"  {entry}")
        hidden = result.skipped[MAX_DISPLAYED_SKIPPED_FILES:]
        if hidden:
            console_log.info(f"  ... and {len(hidden)} more (see log file for full list)")
            for entry in hidden:
                file_log.info(f"  {entry}")

    if result.errors:
        logger.info("")
        logger.info(f"ERROR FILES ({len(result.errors)}):")
        for entry in result.errors:
            logger.info(f"  {entry}")

    if log_path is not None:
        console_log.info("")
        console_log.info(f"Full log written to: {log_path}")

    file_log.info("")
    file_log.info(f"Finished: {datetime.now().isoformat(timespec='seconds')}")
    file_log.info(SEPARATOR)
