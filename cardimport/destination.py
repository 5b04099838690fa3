import os
import logging
import datetime as dt

from cardimport.models import FileRecord


def _segments(path: str) -> list[str]:
    norm = os.path.normcase(os.path.normpath(path))
    return [p for p in norm.replace("\\", "/").split("/") if p]


def is_excluded(path: str, exclusions) -> bool:
    """
    True if any exclusion fragment matches whole path segments of path.
    'Reviewed' excludes '/a/Reviewed/b' but not '/a/Reviewed2/b'; a fragment may
    span several segments ('2024/Done').
    """
    parts = _segments(path)
    for fragment in exclusions or ():
        if not fragment or not fragment.strip("/\\"):
            continue
        frag = _segments(fragment)
        if not frag:
            continue
        n = len(frag)
        for i in range(len(parts) - n + 1):
            if parts[i:i + n] == frag:
                return True
    return False


def find_day_folder(year_folder: str, day_token: str, exclusions=()) -> str | None:
    """
    Return the first folder below year_folder whose name starts with day_token
    and which is not excluded, or None.

    Candidates are ordered lexicographically by normalized absolute path so the
    pick is the same on every run.
    """
    if not os.path.isdir(year_folder):
        return None

    candidates = []
    for curr, dirs, _files in os.walk(year_folder):
        for d in dirs:
            if d.startswith(day_token):
                path = os.path.normpath(os.path.join(curr, d))
                if is_excluded(path, exclusions):
                    logging.debug("Ignoring excluded folder: %s", path, extra={"target": d})
                    continue
                candidates.append(path)

    if not candidates:
        return None
    return sorted(candidates)[0]


def year_folder_for(timestamp: dt.datetime, target_root: str, subfolder: str = "") -> str:
    parts = [os.path.abspath(target_root), timestamp.strftime("%Y")]
    if subfolder:
        parts.append(subfolder)
    return os.path.normpath(os.path.join(*parts))


def new_day_folder(year_folder: str, timestamp: dt.datetime) -> str:
    return os.path.join(year_folder, timestamp.strftime("%Y%m"), timestamp.strftime("%Y%m%d"))


def resolve_day_folder(timestamp: dt.datetime, target_root: str, *, subfolder: str = "", exclusions=()) -> str:
    year_folder = year_folder_for(timestamp, target_root, subfolder)
    existing = find_day_folder(year_folder, timestamp.strftime("%Y%m%d"), exclusions)
    if existing:
        return existing
    return new_day_folder(year_folder, timestamp)


# ------------------------------------------------------------
# stage
# ------------------------------------------------------------

def resolve(record: FileRecord, *, target_root: str, subfolder: str = "", exclusions=()) -> FileRecord:
    """Set destination_path = <day folder>/<canonical name>."""
    day_folder = resolve_day_folder(
        record.effective_timestamp,
        target_root,
        subfolder=subfolder,
        exclusions=exclusions,
    )
    record.destination_path = os.path.abspath(os.path.normpath(os.path.join(day_folder, record.canonical_name)))
    logging.debug("Destination: %s", record.destination_path, extra={"target": record.name})
    return record
