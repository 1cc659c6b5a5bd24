class CampusError(Exception):
    """Base error for all user-facing campusdesk exceptions."""


class ConfigurationError(CampusError):
    """Raised when configuration is invalid or incomplete."""


class ProjectNotInitializedError(CampusError):
    """Raised when the campusdesk data directory or database is missing."""


class ValidationError(CampusError):
    """Raised when a single record fails validation."""


class NotFoundError(CampusError):
    """Raised when a tenant-scoped record that must exist cannot be found."""


class SpreadsheetDecodeError(CampusError):
    """Raised when an uploaded file cannot be decoded into rows at all."""


class HeaderMappingError(CampusError):
    """Raised when a structurally required column is missing from the header row."""


class IngestionCancelledError(CampusError):
    """Raised when a bulk ingestion is cancelled between rows."""


class PersistenceError(CampusError):
    """Raised when the storage layer fails while reading or writing."""


class DuplicateRecordError(PersistenceError):
    """Raised when an insert violates a uniqueness constraint."""
