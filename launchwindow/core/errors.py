"""Error types for upstream sources and refresh operations.

Transient errors are retried with backoff. Client errors are not.
Quota exhaustion is a scheduling signal, surfaced as its own type so
callers can defer instead of failing.
"""


class SourceError(Exception):
    """Base class for failures talking to an upstream source."""

    def __init__(self, message: str, *, source: str | None = None):
        super().__init__(message)
        self.source = source


class TransientSourceError(SourceError):
    """Timeout, connection failure, 5xx or 429. Safe to retry."""

    def __init__(self, message: str, *, source: str | None = None, status_code: int | None = None):
        super().__init__(message, source=source)
        self.status_code = status_code


class ClientSourceError(SourceError):
    """4xx response. Never retried."""

    def __init__(self, message: str, *, source: str | None = None, status_code: int = 400):
        super().__init__(message, source=source)
        self.status_code = status_code


class NotFoundError(ClientSourceError):
    """404 from the source."""

    def __init__(self, message: str, *, source: str | None = None):
        super().__init__(message, source=source, status_code=404)


class QuotaExceededError(ClientSourceError):
    """Video platform quota used up for the day."""

    def __init__(self, message: str, *, source: str | None = None):
        super().__init__(message, source=source, status_code=403)


class MalformedRecordError(SourceError):
    """A record could not be normalized into the internal model."""


class RefreshError(Exception):
    """An administrative refresh failed.

    partial_progress tells the caller whether anything was persisted
    before the failure.
    """

    def __init__(self, message: str, *, partial_progress: bool = False):
        super().__init__(message)
        self.partial_progress = partial_progress
