"""
Exception hierarchy for review search and ingestion.

ValidationError is an expected, recoverable outcome the caller should branch
on. ProviderError and StorageError are infrastructure failures; the unit of
work that triggered them has already been rolled back when they surface.

A missing movie is not an exception: see MovieNotFound in
implementation.classes.review.
"""


class ReviewSearchError(Exception):
    """Base class for every error raised by the review search service."""


class ValidationError(ReviewSearchError, ValueError):
    """Raised when caller input is rejected before any storage work starts."""


class ProviderError(ReviewSearchError):
    """Raised when the embedding provider fails, times out, or returns a bad vector."""


class StorageError(ReviewSearchError):
    """Raised when Postgres or the connection pool fails mid-operation."""
