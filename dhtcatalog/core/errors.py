"""Error taxonomy for the catalog spider."""

from typing import Optional


class CatalogError(Exception):
    """Base class for every error raised by dhtcatalog."""


class ValidationError(CatalogError):
    """Announcement metadata is malformed or has the wrong shape.

    Only the offending event is dropped; the ingest loop keeps running.
    """


class StoreError(CatalogError):
    """Persisting a record failed."""


class TransientStoreError(StoreError):
    """Connection, timeout or transaction failure that may succeed on retry."""


class ExhaustedRetryError(CatalogError):
    """Every retry attempt failed; ``last_error`` holds the final failure."""

    def __init__(self, last_error: Exception, attempts: int):
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts


class FatalSetupError(CatalogError):
    """Startup could not complete (log file, configuration, database, feed)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
