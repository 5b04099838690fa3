class CardImportError(Exception):
    """Base error for the project."""

class ConfigurationError(CardImportError):
    """Invalid run configuration; raised before any file is touched."""

class RecordStateError(CardImportError):
    """A write-once FileRecord field was assigned twice."""
