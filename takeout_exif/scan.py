"""Walk a Takeout export and merge each media file's sidecar into it.

Each media file is an independent unit of work (the file itself plus its
.tmp/.bak siblings), so files are handed to a thread pool without any
filesystem locking. Only the RunResult tallies are shared.
"""

from __future__ import annotations

import enum
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger
from tqdm import tqdm

from takeout_exif.config import RunOptions
from takeout_exif.errors import FatalScanError, MetadataWriteError
from takeout_exif.matching import find_sidecar
from takeout_exif.sidecar import SidecarRecord, parse_sidecar
from takeout_exif.writers import supported_extensions, writer_for


class Status(enum.Enum):
    OK = "ok"
    DRY_RUN = "dry-run"
    NO_SIDECAR = "no-sidecar"
    NO_DATA = "no-data"
    ERROR = "error"

    @property
    def is_skip(self) -> bool:
        return self in (Status.NO_SIDECAR, Status.NO_DATA)

    @property
    def label(self) -> str:
        return "SKIP" if self.is_skip else self.name.replace("_", "-")


@dataclass(frozen=True)
class FileOutcome:
    path: Path
    status: Status
    detail: str = ""

    def line(self) -> str:
        detail = f"({self.detail})" if self.status.is_skip else self.detail
        return f"{self.status.label}\t{self.path}\t{detail}".rstrip("\t")


@dataclass
class RunResult:
    """Counters and file lists for one run; safe to feed from several threads."""

    processed: int = 0
    succeeded: int = 0
    skipped_no_sidecar: int = 0
    skipped_no_data: int = 0
    errored: int = 0
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, outcome: FileOutcome) -> None:
        with self._lock:
            self.processed += 1
            if outcome.status in (Status.OK, Status.DRY_RUN):
                self.succeeded += 1
            elif outcome.status is Status.NO_SIDECAR:
                self.skipped_no_sidecar += 1
                self.skipped.append(f"{outcome.path} ({outcome.detail})")
            elif outcome.status is Status.NO_DATA:
                self.skipped_no_data += 1
                self.skipped.append(f"{outcome.path} ({outcome.detail})")
            else:
                self.errored += 1
                self.errors.append(f"{outcome.path} ({outcome.detail})")


def set_file_times(path: Path, ts: int) -> None:
    """Set filesystem atime/mtime to the provided unix timestamp."""
    os.utime(path, (ts, ts))


def describe(record: SidecarRecord) -> str:
    """Short `time=... gps=(...)` summary of what will be written."""
    parts = []
    if record.photo_taken_time is not None:
        taken = datetime.fromtimestamp(record.photo_taken_time, tz=timezone.utc)
        parts.append(f"time={taken.strftime('%Y-%m-%dT%H:%M:%SZ')}")
    if record.has_coordinates:
        parts.append(f"gps=({record.latitude},{record.longitude})")
    return " ".join(parts)


def iter_media_files(root: Path, recursive: bool = True) -> list[Path]:
    """Return the sorted media files under root that some writer can handle.

    Raises FatalScanError if root itself cannot be listed. Unreadable
    subdirectories are skipped.
    """
    root = Path(root)
    try:
        top = list(root.iterdir())
    except OSError as e:
        raise FatalScanError(f"cannot list {root}: {e.strerror or e}") from e

    exts = supported_extensions()
    candidates = root.rglob("*") if recursive else top
    return sorted(p for p in candidates if p.suffix.lower() in exts and p.is_file())


def process_media(media: Path, options: RunOptions) -> FileOutcome:
    """Run find -> parse -> write for one file. Never raises."""
    sidecar = find_sidecar(media)
    if sidecar is None:
        return FileOutcome(media, Status.NO_SIDECAR, "no sidecar")

    try:
        record = parse_sidecar(sidecar)
        if not record.has_relevant_data:
            return FileOutcome(media, Status.NO_DATA, "no relevant data")

        info = describe(record)
        if options.dry_run:
            return FileOutcome(media, Status.DRY_RUN, info)

        writer = writer_for(media, use_utc=options.use_utc)
        if writer is None:
            raise MetadataWriteError(f"unsupported media type: {media.suffix}")
        writer.apply(media, record, backup=options.backup)

        if options.set_filetimes and record.photo_taken_time is not None:
            set_file_times(media, record.photo_taken_time)
        return FileOutcome(media, Status.OK, info)
    except Exception as e:
        return FileOutcome(media, Status.ERROR, str(e) or type(e).__name__)


def run(root: Path, options: RunOptions, progress: bool = True) -> RunResult:
    """Process every media file under root and return the tallies."""
    media_files = iter_media_files(root, recursive=options.recursive)
    result = RunResult()

    with ThreadPoolExecutor(max_workers=max(1, options.workers)) as pool:
        futures = [pool.submit(process_media, m, options) for m in media_files]
        with tqdm(total=len(futures), desc="Merging sidecars", unit="file", disable=not progress) as bar:
            for fut in as_completed(futures):
                outcome = fut.result()
                result.add(outcome)
                if outcome.status is Status.ERROR:
                    logger.error(outcome.line())
                else:
                    logger.info(outcome.line())
                bar.update(1)

    return result
