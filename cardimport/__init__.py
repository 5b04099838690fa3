from .__version__ import __version__

import os
import datetime
import logging
from collections import defaultdict
from datetime import timedelta

from colorama import Fore, Style, init

from .errors import ConfigurationError





# ========================================
# logs with color
# ========================================
class ColoredFormatter(logging.Formatter):
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA
    }

    def format(self, record):
        if not hasattr(record, 'target'):
            record.target = '-'  # Default value if 'target' is not provided
        log_color = self.COLORS.get(record.levelname, '')
        log_format = (
            f"{log_color}[%(levelname)s]\t%(target)s:\t%(message)s{Style.RESET_ALL}"
        )
        formatter = logging.Formatter(log_format)
        return formatter.format(record)


def configure_logging(verbose: bool = False) -> None:
    """Install the colored handler on the root logger. DEBUG when verbose."""
    init(autoreset=True)
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter())
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=[handler], force=True)




# ========================================
# definitions
# ========================================
IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.tiff', '.tif', '.psd', '.heic', '.nef', '.gif', '.bmp', '.dng', '.raw', '.webp', '.cr2', '.cr3', '.arw', '.orf', '.rw2', '.raf']
VIDEO_EXTENSIONS = ['.mp4', '.mov', '.avi', '.mkv', '.wmv', '.webm', '.3gp', '.mpeg', '.mpg', '.m4v', '.mts', '.m2ts', '.mxf', '.insv', '.lrv']
OTHER_EXTENSIONS = ['.gpx', '.kmz', '.kml']
MEDIA_EXTENSIONS = sorted(set(IMAGE_EXTENSIONS + VIDEO_EXTENSIONS + OTHER_EXTENSIONS))
DEFAULT_PATTERNS = [f"*{ext}" for ext in MEDIA_EXTENSIONS]





# ========================================
# command line helpers shared by the tools
# ========================================
def add_target_args(parser, *, folder_help: str, single_help: str, required: bool = True) -> None:
    """Add the -f/--folder | -s/--single source selection plus walk and verbosity flags."""
    group = parser.add_mutually_exclusive_group(required=required)
    group.add_argument("-f", "--folder", type=str, help=folder_help)
    group.add_argument("-s", "--single", type=str, help=single_help)
    parser.add_argument("-r", "--recursive", action="store_true", help="Include subfolders in batch mode")
    parser.add_argument("--include-hidden", action="store_true", help="Also process hidden files and folders")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def resolve_target(args, *, single_expect: str = "file", folder_expect: str = "folder") -> tuple[str, str]:
    """
    Return ('single' | 'batch', absolute path) for the parsed target arguments.
    Raises ConfigurationError when the path does not exist or has the wrong kind.
    """
    if getattr(args, "single", None):
        mode, path, expect = "single", args.single, single_expect
    else:
        mode, path, expect = "batch", args.folder, folder_expect

    path = os.path.abspath(os.path.expanduser(path))
    if expect == "file" and not os.path.isfile(path):
        raise ConfigurationError(f"Not a file: {path}")
    if expect == "folder" and not os.path.isdir(path):
        raise ConfigurationError(f"Not a folder: {path}")
    return mode, path


def is_hidden(path: str) -> bool:
    return os.path.basename(os.path.normpath(path)).startswith(".")


def iter_files(root: str, *, recursive: bool = False, include_hidden: bool = False, ext_filter=None):
    """
    Yield absolute file paths under root, sorted per directory.
    Hidden files and folders are skipped unless include_hidden is set.
    """
    root = os.path.abspath(root)
    for curr, dirs, files in os.walk(root):
        if not include_hidden:
            dirs[:] = [d for d in dirs if not d.startswith(".")]
        dirs.sort()
        for name in sorted(files):
            if not include_hidden and name.startswith("."):
                continue
            if ext_filter is not None and os.path.splitext(name)[1].lower() not in ext_filter:
                continue
            yield os.path.join(curr, name)
        if not recursive:
            break





# ========================================
# summary helpers (end-of-run reporting)
# ========================================
def human_bytes(num_bytes: int) -> str:
    """Return human friendly size (e.g., '31.7 GB')."""
    try:
        num = float(num_bytes)
    except (TypeError, ValueError):
        return str(num_bytes)
    units = ['B', 'KB', 'MB', 'GB', 'TB', 'PB']
    for unit in units:
        if num < 1024.0 or unit == units[-1]:
            return f"{num:.1f} {unit}" if unit != 'B' else f"{int(num)} {unit}"
        num /= 1024.0


def format_duration(seconds: float) -> str:
    """Return HH:MM:SS for a duration in seconds."""
    if seconds is None:
        return "00:00:00"
    td = timedelta(seconds=int(round(seconds)))
    total_seconds = int(td.total_seconds())
    h = total_seconds // 3600
    m = (total_seconds % 3600) // 60
    s = total_seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


class RunSummary:
    """
    Lightweight tracker for end-of-run summaries.

    Usage:
        s = RunSummary()
        s.inc('copied')
        s.add_bytes('bytes', 12_345_678)
        # ... do your work ...
        s.emit_lines([
            f"Copied {s['copied']} files in {s.duration_hms}.",
            f"Total {s.hbytes('bytes')}. Failures: {s['failed']}.",
        ], json_extra={'copied': s['copied'], 'failed': s['failed']})
    """
    def __init__(self):
        self._t0 = datetime.datetime.now()
        self._t1 = None
        self.counters = defaultdict(int)   # any numeric counters
        self.metrics = {}                  # arbitrary other values
        self.notes = []                    # misc strings (e.g., sample failures)

    # timing
    @property
    def duration_s(self) -> float:
        end = self._t1 or datetime.datetime.now()
        return (end - self._t0).total_seconds()

    @property
    def duration_hms(self) -> str:
        return format_duration(self.duration_s)

    def stop(self):
        self._t1 = datetime.datetime.now()

    # counters & metrics
    def inc(self, key: str, n: int = 1):
        self.counters[key] += n

    def add_bytes(self, key: str, n: int):
        self.counters[key] += int(n)

    def set(self, key: str, value):
        self.metrics[key] = value

    def note(self, text: str):
        self.notes.append(text)

    def get(self, key: str, default=None):
        if key in self.counters:
            return self.counters[key]
        return self.metrics.get(key, default)

    def __getitem__(self, key: str):
        # convenience for counters/metrics
        return self.get(key)

    def hbytes(self, key: str) -> str:
        """human-readable bytes for a counter/metric name."""
        val = self[key]
        return human_bytes(int(val or 0))

    # emission
    def emit_lines(self, lines, level=logging.INFO, json_extra=None):
        """Log one or more human lines, then a compact JSON-like line at DEBUG."""
        self.stop()
        for line in lines:
            logging.log(level, line, extra={'target': 'SUMMARY'})
        payload = {
            'duration_s': int(round(self.duration_s)),
            'counters': dict(self.counters),
            'metrics': self.metrics,
        }
        if self.notes:
            payload['notes'] = self.notes
        if json_extra:
            payload.update(json_extra)
        logging.debug("%s", payload, extra={'target': 'SUMMARY'})
