import os
import re
import logging
import datetime as dt

from cardimport.models import FileRecord

# yyyyMMdd + separator + HHmm[ss], not glued to further digits
DATETIME_PATTERN = re.compile(r"(?<!\d)(\d{8})[_\-. T](\d{6}|\d{4})(?!\d)")
# bare yyyyMMdd
DATE_PATTERN = re.compile(r"(?<!\d)(\d{8})(?!\d)")

CANONICAL_FORMAT = "%Y%m%d_%H%M%S"
DAY_FORMAT = "%Y%m%d"
MIN_YEAR = 1900

SOURCE_FILENAME_DATETIME = "filename"
SOURCE_FILENAME_DATE = "filename-date"
SOURCE_CREATION_TIME = "created"


# ------------------------------------------------------------
# parsing
# ------------------------------------------------------------

def _parse_stamp(date_part: str, time_part: str = "") -> dt.datetime | None:
    fmt = DAY_FORMAT
    if len(time_part) == 6:
        fmt += "%H%M%S"
    elif len(time_part) == 4:
        fmt += "%H%M"
    try:
        parsed = dt.datetime.strptime(date_part + time_part, fmt)
    except ValueError:
        return None
    if parsed.year < MIN_YEAR:
        return None
    return parsed


def _shiftable(timestamp: dt.datetime, offset_hours: int) -> bool:
    try:
        apply_offset(timestamp, offset_hours)
    except OverflowError:
        return False
    return True


def _first_valid(pattern: re.Pattern, stem: str, offset_hours: int = 0) -> tuple[dt.datetime, re.Match] | None:
    for match in pattern.finditer(stem):
        parsed = _parse_stamp(*match.groups())
        if parsed is not None and _shiftable(parsed, offset_hours):
            return parsed, match
    return None


def extract_timestamp(filename: str, creation_time: dt.datetime, offset_hours: int = 0) -> tuple[dt.datetime, str, str, str]:
    """
    Find the base timestamp for a file name.

    Tries an embedded date+time first, then a bare date (midnight), then falls
    back to the creation time. Returns (timestamp, remaining stem, extension,
    source label); the matched token is removed from the stem. A date token
    that would leave the datetime range once offset_hours is added is skipped.
    """
    stem, ext = os.path.splitext(filename)

    for pattern, label in ((DATETIME_PATTERN, SOURCE_FILENAME_DATETIME), (DATE_PATTERN, SOURCE_FILENAME_DATE)):
        found = _first_valid(pattern, stem, offset_hours)
        if found:
            parsed, match = found
            return parsed, stem[:match.start()] + stem[match.end():], ext, label

    return creation_time, stem, ext, SOURCE_CREATION_TIME


def build_canonical_name(timestamp: dt.datetime, stem: str, ext: str, suffix: str = "") -> str:
    """yyyyMMdd_HHmmss + '_' + stem [+ suffix] + ext, without doubling separators."""
    if suffix and not stem.endswith(suffix):
        stem = stem + suffix
    sep = "" if not stem or stem.startswith("_") else "_"
    return f"{timestamp.strftime(CANONICAL_FORMAT)}{sep}{stem}{ext}"


def apply_offset(timestamp: dt.datetime, offset_hours: int) -> dt.datetime:
    if not offset_hours:
        return timestamp
    return timestamp + dt.timedelta(hours=offset_hours)


# ------------------------------------------------------------
# stage
# ------------------------------------------------------------

def extract(record: FileRecord, *, offset_hours: int = 0, suffix: str = "") -> FileRecord:
    """
    Set effective_timestamp and canonical_name on the record.
    Raises OverflowError when even the creation time cannot be shifted.
    """
    base, stem, ext, label = extract_timestamp(record.name, record.original_creation_time, offset_hours)
    effective = apply_offset(base, offset_hours)

    record.effective_timestamp = effective
    record.canonical_name = build_canonical_name(effective, stem, ext, suffix)

    logging.debug(
        "Date from %s: %s (offset %+dh) -> %s",
        label,
        base.strftime("%Y-%m-%d %H:%M:%S"),
        offset_hours,
        record.canonical_name,
        extra={"target": record.name},
    )
    return record
