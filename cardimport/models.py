import os
import datetime as dt
from dataclasses import dataclass, field
from enum import Enum

from cardimport import DEFAULT_PATTERNS
from cardimport.errors import ConfigurationError, RecordStateError


class CommandKind(Enum):
    COPY = "copy"
    MOVE = "move"
    OFFSET_RENAME = "offset-rename"


class Outcome(Enum):
    PENDING = "pending"
    DONE = "done"
    ALREADY_EXISTS = "already-exists"
    DELETED = "deleted"
    FAILED = "failed"


# set by the scan, never reassigned
_IMMUTABLE_FIELDS = ("source_path", "size", "original_creation_time")
# set once by the stage owning them
_WRITE_ONCE_FIELDS = ("effective_timestamp", "canonical_name", "destination_path", "message", "error")
# a century either way
MAX_OFFSET_HOURS = 24 * 366 * 100


@dataclass
class FileRecord:
    """
    One candidate file travelling through extract -> resolve -> execute.

    Every field is write-once: the scan fills the first three, the extractor the
    timestamp and canonical name, the resolver the destination and the executor
    the outcome and message. A second assignment raises RecordStateError.
    """
    source_path: str
    size: int
    original_creation_time: dt.datetime
    effective_timestamp: dt.datetime | None = None
    canonical_name: str | None = None
    destination_path: str | None = None
    outcome: Outcome = Outcome.PENDING
    message: str | None = None
    error: str | None = None

    def __setattr__(self, name, value):
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise RecordStateError(f"{name} is immutable")
        if name in _WRITE_ONCE_FIELDS and self.__dict__.get(name) is not None:
            raise RecordStateError(f"{name} already set for {self.__dict__.get('source_path')}")
        if name == "outcome" and self.__dict__.get("outcome", Outcome.PENDING) is not Outcome.PENDING:
            raise RecordStateError(f"outcome already {self.outcome.value} for {self.source_path}")
        super().__setattr__(name, value)

    @property
    def name(self) -> str:
        return os.path.basename(self.source_path)

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED


@dataclass(frozen=True)
class Progress:
    """Running position and byte total, folded over the stream of records."""
    position: int = 0
    total_size: int = 0

    def advance(self, size: int) -> "Progress":
        return Progress(self.position + 1, self.total_size + int(size or 0))


@dataclass(frozen=True)
class RunConfiguration:
    command: CommandKind
    target_root: str | None = None
    dry_run: bool = False
    force: bool = False
    subfolder: str = ""
    suffix: str = ""
    exclusions: tuple[str, ...] = ()
    offset_hours: int = 0
    min_date: dt.datetime | None = None
    max_date: dt.datetime | None = None
    patterns: tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_PATTERNS))
    recursive: bool = True
    include_hidden: bool = False
    use_exif: bool = False

    @property
    def needs_target(self) -> bool:
        return self.command in (CommandKind.COPY, CommandKind.MOVE)

    def validate(self) -> "RunConfiguration":
        """Raise ConfigurationError for anything that must stop the run before it starts."""
        if not isinstance(self.command, CommandKind):
            raise ConfigurationError(f"Invalid command: {self.command!r}")

        if self.needs_target:
            if not self.target_root:
                raise ConfigurationError(f"A target root is required for {self.command.value}")
            if not os.path.isdir(self.target_root):
                raise ConfigurationError(f"Target root is not a folder: {self.target_root}")
            if not os.access(self.target_root, os.R_OK | os.X_OK):
                raise ConfigurationError(f"Target root is not readable: {self.target_root}")

        if self.subfolder:
            if os.path.isabs(self.subfolder) or ".." in self.subfolder.replace("\\", "/").split("/"):
                raise ConfigurationError(f"Subfolder must be a relative path inside the year folder: {self.subfolder}")

        if any(sep in (self.suffix or "") for sep in ("/", "\\")):
            raise ConfigurationError(f"Suffix must not contain path separators: {self.suffix}")

        if not isinstance(self.offset_hours, int) or abs(self.offset_hours) > MAX_OFFSET_HOURS:
            raise ConfigurationError(f"Offset must be a whole number of hours within +/-{MAX_OFFSET_HOURS}: {self.offset_hours!r}")

        for bound in (self.min_date, self.max_date):
            if bound is not None and bound.tzinfo is not None:
                raise ConfigurationError(f"Date bounds must be local times without a UTC offset: {bound.isoformat()}")

        if self.min_date and self.max_date and self.min_date > self.max_date:
            raise ConfigurationError(f"min date {self.min_date} is after max date {self.max_date}")

        return self
