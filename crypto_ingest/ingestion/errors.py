"""
Error taxonomy for the ingestion engine.

Scope of each error decides how far it propagates:
- FetchError / FormatError: one source fails, the run continues
- ValidationError: one item is dropped and counted
- PersistenceError: one item fails, or the whole cycle when the store is down
"""


class IngestError(Exception):
    """Base exception for ingestion errors."""


class FetchError(IngestError):
    """Raised when a source cannot be fetched (timeout, transport, HTTP status)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class FormatError(IngestError):
    """Raised when a payload matches none of the known formats or cannot be parsed."""


class ValidationError(IngestError):
    """Raised when a canonical item is missing a required field."""


class PersistenceError(IngestError):
    """Raised when the persistent store rejects or cannot serve a request."""
