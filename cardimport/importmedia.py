import os
import sys
import argparse
import datetime as dt
import logging

from cardimport import (
    __version__,
    configure_logging,
    add_target_args,
    resolve_target,
    RunSummary,
    DEFAULT_PATTERNS,
)
from cardimport.errors import ConfigurationError
from cardimport.models import CommandKind, Outcome, RunConfiguration
from cardimport.pipeline import process_batch
from cardimport.scan import discover

# ------------------------------------------------------------
# helpers
# ------------------------------------------------------------

_OUTCOME_LEVELS = {
    Outcome.DONE: logging.INFO,
    Outcome.DELETED: logging.INFO,
    Outcome.ALREADY_EXISTS: logging.WARNING,
    Outcome.FAILED: logging.ERROR,
}


def parse_date_bound(value: str | None, *, end_of_day: bool = False) -> dt.datetime | None:
    """
    Parse an ISO date or datetime. A date-only upper bound covers the whole day.
    Values with a UTC offset are converted to naive local time, like file times.
    Raises ConfigurationError for anything else.
    """
    if not value:
        return None
    value = value.strip()
    try:
        day = dt.date.fromisoformat(value)
    except ValueError:
        day = None
    if day is not None:
        return dt.datetime.combine(day, dt.time.max if end_of_day else dt.time.min)

    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError:
        raise ConfigurationError(f"Invalid date: {value!r} (expected YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS)") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _command_from_args(args) -> CommandKind:
    if args.copy:
        return CommandKind.COPY
    if args.move:
        return CommandKind.MOVE
    if args.offset_rename:
        return CommandKind.OFFSET_RENAME
    raise ConfigurationError("No command given (use --copy, --move or --offset-rename)")


def build_configuration(args) -> RunConfiguration:
    command = _command_from_args(args)
    target = args.target
    if target:
        target = os.path.abspath(os.path.expanduser(target))
    config = RunConfiguration(
        command=command,
        target_root=target,
        dry_run=bool(args.dry_run),
        force=bool(args.force),
        subfolder=args.subfolder or "",
        suffix=args.suffix or "",
        exclusions=tuple(args.exclude or ()),
        offset_hours=int(args.offset or 0),
        min_date=parse_date_bound(args.min_date),
        max_date=parse_date_bound(args.max_date, end_of_day=True),
        patterns=tuple(args.pattern or DEFAULT_PATTERNS),
        recursive=bool(args.recursive),
        include_hidden=bool(args.include_hidden),
        use_exif=bool(args.exif),
    )
    return config.validate()


def _report(record, progress, total: int) -> None:
    level = _OUTCOME_LEVELS.get(record.outcome, logging.INFO)
    logging.log(
        level,
        "[%d/%d] %s",
        progress.position,
        total,
        record.message,
        extra={"target": record.name},
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="importmedia",
        description=(
            "Import media from a memory card into a dated archive "
            "(<target>/<yyyy>/[subfolder/]<yyyyMM>/<yyyyMMdd>/). "
            "Files are renamed to yyyyMMdd_HHmmss_<name> using the date in their name "
            "or their creation time. Existing day folders (e.g. '20240101 Birthday') are reused."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    add_target_args(
        parser,
        folder_help="Batch mode: import the media in this folder (recursive by default, see --no-recursive).",
        single_help="Single mode: import exactly this file.",
        required=True,
    )
    parser.set_defaults(recursive=True)
    parser.add_argument("--no-recursive", dest="recursive", action="store_false", help="Only scan the top level of the folder")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("-c", "--copy", action="store_true", help="Copy files into the archive")
    group.add_argument("-m", "--move", action="store_true", help="Move files into the archive; sources already archived are deleted")
    group.add_argument("-o", "--offset-rename", action="store_true", help="Rename files in place with the offset applied (no move)")

    parser.add_argument("-t", "--target", type=str, help="Archive root folder (required for --copy and --move)")
    parser.add_argument("--subfolder", type=str, default="", help="Extra folder between year and month, e.g. 'Phone'")
    parser.add_argument("--suffix", type=str, default="", help="Text appended to every file name before the extension")
    parser.add_argument("--exclude", action="append", default=[], metavar="FRAGMENT",
                        help="Never reuse day folders whose path contains this folder name (repeatable)")
    parser.add_argument("--offset", type=int, default=0, metavar="HOURS", help="Shift timestamps by this many hours (may be negative)")
    parser.add_argument("--min-date", type=str, help="Only files created on/after this date (YYYY-MM-DD[THH:MM:SS])")
    parser.add_argument("--max-date", type=str, help="Only files created on/before this date (YYYY-MM-DD[THH:MM:SS])")
    parser.add_argument("--pattern", action="append", default=[], metavar="GLOB",
                        help="File name filter, e.g. '*.jpg' (repeatable; default: all known media types)")
    parser.add_argument("--exif", action="store_true", help="Use the EXIF capture time of images instead of the file creation time")
    parser.add_argument("--force", action="store_true", help="Overwrite files that already exist in the destination")
    parser.add_argument("--dry-run", action="store_true", help="Show what would happen without changing files")
    return parser


# ------------------------------------------------------------
# CLI
# ------------------------------------------------------------

def run(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(getattr(args, "verbose", False))

    try:
        mode_sel, source = resolve_target(args, single_expect="file", folder_expect="folder")
        config = build_configuration(args)
        records = discover(source, config)
    except ConfigurationError as e:
        logging.error("%s", e, extra={"target": "CONFIG"})
        return 2

    s = RunSummary()
    s.set("command", config.command.value)
    s.set("dry_run", config.dry_run)
    s.set("force", config.force)
    s.set("offset_h", config.offset_hours)
    s.set("target_mode", mode_sel)

    logging.debug(
        "%s %d files from %s to %s (dry_run=%s, force=%s, offset=%+dh)",
        config.command.value,
        len(records),
        source,
        config.target_root or "(in place)",
        config.dry_run,
        config.force,
        config.offset_hours,
        extra={"target": os.path.basename(source)},
    )

    total = len(records)
    for record, progress in process_batch(records, config):
        _report(record, progress, total)
        s.inc("found")
        s.inc(record.outcome.value)
        s.add_bytes("bytes", record.size)
        if record.failed:
            s.note(f"{record.name}: {record.error}")

    done = s.get("done", 0)
    existing = s.get("already-exists", 0)
    deleted = s.get("deleted", 0)
    failed = s.get("failed", 0)
    verb = "Would process" if config.dry_run else "Processed"

    line1 = (
        f"{verb} {s.get('found', 0)} files ({s.hbytes('bytes')}) with {config.command.value}: "
        f"{done} done, {existing} already present, {deleted} duplicate sources deleted, {failed} failed."
    )
    line2 = f"Offset: {config.offset_hours:+d}h. Dry-run: {config.dry_run}. Force: {config.force}. Took {s.duration_hms}."

    s.emit_lines(
        [line1, line2],
        level=logging.ERROR if failed else logging.INFO,
        json_extra={
            "found": s.get("found", 0),
            "done": done,
            "already_exists": existing,
            "deleted": deleted,
            "failed": failed,
            "bytes": s.get("bytes", 0),
            "source": source,
            "target": config.target_root,
        },
    )
    return 1 if failed else 0


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
