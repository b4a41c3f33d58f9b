"""Run configuration shared by the CLI and the scanner."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_WORKERS = min(8, os.cpu_count() or 1)

# console shows this many skipped files; the log file gets all of them
MAX_DISPLAYED_SKIPPED_FILES = 50

LOG_FILE_PREFIX = "takeout-exif"
LOG_FILE_TIME_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True)
class RunOptions:
    recursive: bool = True
    dry_run: bool = True
    set_filetimes: bool = True
    backup: bool = False
    use_utc: bool = True
    workers: int = DEFAULT_WORKERS
