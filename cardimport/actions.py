import os
import shutil
import logging

from cardimport.models import CommandKind, FileRecord, Outcome, RunConfiguration


def _verb(dry_run: bool) -> str:
    return "would be" if dry_run else "is"


def _same_file(a: str, b: str) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def _finish(record: FileRecord, outcome: Outcome, message: str) -> FileRecord:
    record.outcome = outcome
    record.message = message
    return record


def fail(record: FileRecord, action: str, error: Exception) -> FileRecord:
    record.error = str(error) or error.__class__.__name__
    logging.debug("Failed to %s: %s", action, record.error, exc_info=True, extra={"target": record.name})
    return _finish(record, Outcome.FAILED, f"failed to {action}: {record.error}")


# ------------------------------------------------------------
# commands
# ------------------------------------------------------------

def _copy(record: FileRecord, *, force: bool, dry_run: bool) -> FileRecord:
    src, dst = record.source_path, record.destination_path
    exists = os.path.exists(dst)

    if exists and (not force or _same_file(src, dst)):
        return _finish(record, Outcome.ALREADY_EXISTS, f"already exists at {dst}")

    replaced = " (replacing existing file)" if exists else ""
    try:
        logging.debug("%s %s -> %s", "Would copy" if dry_run else "Copying", src, dst, extra={"target": record.name})
        if not dry_run:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.copy2(src, dst)
    except Exception as e:
        return fail(record, f"copy to {dst}", e)
    return _finish(record, Outcome.DONE, f"{_verb(dry_run)} copied to {dst}{replaced}")


def _move(record: FileRecord, *, force: bool, dry_run: bool) -> FileRecord:
    src, dst = record.source_path, record.destination_path
    exists = os.path.exists(dst)

    if exists and _same_file(src, dst):
        return _finish(record, Outcome.ALREADY_EXISTS, f"already in place at {dst}")

    if exists and not force:
        # destination already holds this file: drop the source copy
        try:
            logging.debug("%s duplicate source %s", "Would delete" if dry_run else "Deleting", src, extra={"target": record.name})
            if not dry_run:
                os.remove(src)
        except Exception as e:
            return fail(record, "delete duplicate source", e)
        return _finish(record, Outcome.DELETED, f"{_verb(dry_run)} deleted, already exists at {dst}")

    replaced = " (replacing existing file)" if exists else ""
    try:
        logging.debug("%s %s -> %s", "Would move" if dry_run else "Moving", src, dst, extra={"target": record.name})
        if not dry_run:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.move(src, dst)
    except Exception as e:
        return fail(record, f"move to {dst}", e)
    return _finish(record, Outcome.DONE, f"{_verb(dry_run)} moved to {dst}{replaced}")


def _offset_rename(record: FileRecord, *, force: bool, dry_run: bool) -> FileRecord:
    src, dst = record.source_path, record.destination_path
    new_name = os.path.basename(dst)

    if os.path.normcase(os.path.abspath(src)) == os.path.normcase(os.path.abspath(dst)):
        return _finish(record, Outcome.ALREADY_EXISTS, f"already named {new_name}")

    exists = os.path.exists(dst)
    # on case-insensitive filesystems a case-only rename finds the source itself here
    if exists and not force and not _same_file(src, dst):
        return _finish(record, Outcome.ALREADY_EXISTS, f"already exists: {new_name}")

    try:
        logging.debug("%s %s -> %s", "Would rename" if dry_run else "Renaming", src, new_name, extra={"target": record.name})
        if not dry_run:
            os.replace(src, dst)
    except Exception as e:
        return fail(record, f"rename to {new_name}", e)
    return _finish(record, Outcome.DONE, f"{_verb(dry_run)} renamed to {new_name}")


_COMMANDS = {
    CommandKind.COPY: _copy,
    CommandKind.MOVE: _move,
    CommandKind.OFFSET_RENAME: _offset_rename,
}


# ------------------------------------------------------------
# stage
# ------------------------------------------------------------

def execute(record: FileRecord, config: RunConfiguration) -> FileRecord:
    """
    Perform (or simulate) the configured command for one resolved record.
    Filesystem errors never escape: they end up as Outcome.FAILED on the record.
    """
    handler = _COMMANDS[config.command]
    return handler(record, force=config.force, dry_run=config.dry_run)
