from __future__ import annotations


class MoodFeedError(Exception):
    """Base class for errors raised by moodfeed services."""


class ProviderError(MoodFeedError):
    """A weather or news provider answered with a non-success status or could not be reached."""

    def __init__(self, message: str, *, provider: str, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class MalformedResponseError(MoodFeedError):
    """A provider response is missing fields we rely on."""

    def __init__(self, message: str, *, provider: str):
        super().__init__(message)
        self.provider = provider


class PermissionDeniedError(MoodFeedError):
    pass


class PartialFetchError(MoodFeedError):
    """One sub-fetch of a batch failed. Logged and skipped, never raised to callers."""

    def __init__(self, item: str, cause: Exception):
        super().__init__(f"Failed to fetch news for {item!r}: {cause}")
        self.item = item
        self.cause = cause
