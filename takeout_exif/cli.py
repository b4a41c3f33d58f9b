#!/usr/bin/env python3
"""
Merge Google Takeout JSON sidecars into JPEG EXIF metadata.

For every JPEG under ROOT, the matching sidecar (`IMG_1.jpg.json`, or a
truncated variant like `IMG_1.jp.json`) is read and its capture time,
modification time and GPS position are written into the file's EXIF without
re-encoding the image. File times can be set to the capture time as well.

Runs as a dry run unless --write is given.
"""
from pathlib import Path

import click

from takeout_exif.config import DEFAULT_WORKERS, RunOptions
from takeout_exif.errors import FatalScanError
from takeout_exif.run_log import close_logging, file_log, log_header, log_summary, setup_logging
from takeout_exif.scan import run


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "root",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
    metavar="ROOT",
)
@click.option("--recursive/--no-recursive", default=True, show_default=True, help="Descend into subdirectories.")
@click.option(
    "--dry-run/--write",
    default=True,
    show_default=True,
    help="Only report what would be written; --write modifies files.",
)
@click.option(
    "--set-filetimes/--no-set-filetimes",
    default=True,
    show_default=True,
    help="Set file access/modification time to the photo taken time after writing.",
)
@click.option("--backup/--no-backup", default=False, show_default=True, help="Keep a FILE.bak copy of each original.")
@click.option(
    "--utc/--local-time",
    "use_utc",
    default=True,
    show_default=True,
    help="Time reference used for the EXIF date strings.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=DEFAULT_WORKERS,
    show_default=True,
    help="Files processed in parallel.",
)
@click.option("--progress/--no-progress", default=True, show_default=True, help="Progress bar")
def main(
    root: Path,
    recursive: bool,
    dry_run: bool,
    set_filetimes: bool,
    backup: bool,
    use_utc: bool,
    workers: int,
    progress: bool,
) -> None:
    """
    Write Google Takeout sidecar metadata into the JPEGs under ROOT.
    """
    root = root.expanduser().resolve()
    options = RunOptions(
        recursive=recursive,
        dry_run=dry_run,
        set_filetimes=set_filetimes,
        backup=backup,
        use_utc=use_utc,
        workers=workers,
    )

    log_path = setup_logging(root)
    if log_path is not None:
        click.echo(f"Log file: {log_path}")
    try:
        log_header(root, options)
        try:
            result = run(root, options, progress=progress)
        except FatalScanError as e:
            file_log.error(f"FATAL ERROR: {e}")
            click.echo(f"Error scanning directory: {e}", err=True)
            raise SystemExit(2)
        log_summary(result, options, log_path)
    finally:
        close_logging()


if __name__ == "__main__":
    main()
