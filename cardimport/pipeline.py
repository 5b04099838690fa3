import os
from typing import Iterable, Iterator

from cardimport.actions import execute, fail
from cardimport.destination import resolve
from cardimport.models import CommandKind, FileRecord, Progress, RunConfiguration
from cardimport.timestamps import extract


def process_file(record: FileRecord, config: RunConfiguration) -> FileRecord:
    """Run one record through extract -> resolve -> execute."""
    try:
        extract(record, offset_hours=config.offset_hours, suffix=config.suffix)
    except OverflowError as e:
        return fail(record, f"shift timestamp by {config.offset_hours:+d}h", e)

    if config.command is CommandKind.OFFSET_RENAME:
        # renamed in place, no archive lookup
        folder = os.path.dirname(record.source_path)
        record.destination_path = os.path.abspath(os.path.join(folder, record.canonical_name))
    else:
        resolve(
            record,
            target_root=config.target_root,
            subfolder=config.subfolder,
            exclusions=config.exclusions,
        )

    return execute(record, config)


def process_batch(records: Iterable[FileRecord], config: RunConfiguration,
                  progress: Progress | None = None) -> Iterator[tuple[FileRecord, Progress]]:
    """
    Process records one after another, yielding each finished record with the
    running Progress (1-based position, cumulative bytes).
    """
    config.validate()
    progress = progress or Progress()
    for record in records:
        process_file(record, config)
        progress = progress.advance(record.size)
        yield record, progress
