import os
import fnmatch
import logging
import datetime as dt

from PIL import Image, ExifTags

from cardimport import iter_files, IMAGE_EXTENSIONS
from cardimport.errors import ConfigurationError
from cardimport.models import FileRecord, RunConfiguration

EXIF_DATE_TAGS = ("DateTimeOriginal", "DateTimeDigitized", "DateTime")
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"


# ========================================
# dates
# ========================================
def read_creation_time(file_path: str) -> dt.datetime:
    """
    Filesystem creation time: st_birthtime where the platform records it,
    otherwise the older of ctime and mtime.
    """
    stat = os.stat(file_path)
    birth = getattr(stat, "st_birthtime", None)
    if birth:
        return dt.datetime.fromtimestamp(birth)
    return dt.datetime.fromtimestamp(min(stat.st_ctime, stat.st_mtime))


def read_capture_time(file_path: str) -> dt.datetime | None:
    """Earliest EXIF date of an image, or None when there is none."""
    if os.path.splitext(file_path)[1].lower() not in IMAGE_EXTENSIONS:
        return None
    dates = []
    try:
        with Image.open(file_path) as img:
            exif_data = img._getexif()
            if exif_data:
                for tag, value in exif_data.items():
                    decoded = ExifTags.TAGS.get(tag, tag)
                    if decoded in EXIF_DATE_TAGS:
                        try:
                            dates.append(dt.datetime.strptime(str(value).strip("\x00 "), EXIF_DATE_FORMAT))
                        except ValueError:
                            continue
    except Exception as e:
        logging.debug("No EXIF dates: %s", e, extra={"target": os.path.basename(file_path)})
        return None
    return min(dates) if dates else None





# ========================================
# filters
# ========================================
def matches_patterns(name: str, patterns) -> bool:
    """Case-insensitive glob match of a file name against any pattern. No patterns matches all."""
    if not patterns:
        return True
    lowered = name.lower()
    return any(fnmatch.fnmatchcase(lowered, p.lower()) for p in patterns)


def within_bounds(when: dt.datetime, min_date: dt.datetime | None, max_date: dt.datetime | None) -> bool:
    if min_date and when < min_date:
        return False
    if max_date and when > max_date:
        return False
    return True





# ========================================
# discovery
# ========================================
def make_record(file_path: str, *, use_exif: bool = False) -> FileRecord:
    file_path = os.path.abspath(file_path)
    created = None
    if use_exif:
        created = read_capture_time(file_path)
    if created is None:
        created = read_creation_time(file_path)
    return FileRecord(
        source_path=file_path,
        size=os.path.getsize(file_path),
        original_creation_time=created,
    )


def discover(source: str, config: RunConfiguration) -> list[FileRecord]:
    """
    Collect the candidate files below source (or source itself when it is a
    file), filtered by name pattern and creation-time bounds, sorted by path.
    """
    source = os.path.abspath(source)
    if os.path.isfile(source):
        paths = [source]
    elif os.path.isdir(source):
        paths = iter_files(source, recursive=config.recursive, include_hidden=config.include_hidden)
    else:
        raise ConfigurationError(f"Source does not exist: {source}")

    records = []
    for path in paths:
        name = os.path.basename(path)
        if not matches_patterns(name, config.patterns):
            continue
        try:
            record = make_record(path, use_exif=config.use_exif)
        except OSError as e:
            logging.warning("Could not read file: %s", e, extra={"target": name})
            continue
        if not within_bounds(record.original_creation_time, config.min_date, config.max_date):
            logging.debug("Outside date range: %s", record.original_creation_time, extra={"target": name})
            continue
        records.append(record)

    records.sort(key=lambda r: r.source_path)
    return records
