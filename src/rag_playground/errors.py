"""Error taxonomy shared by the pipelines and the HTTP layer.

Every per-request failure is a :class:`RagError` subclass carrying the
HTTP status the serving layer should answer with.  Configuration errors
are raised at startup and abort the process instead.
"""

from __future__ import annotations


class RagError(Exception):
    """Base class for every error raised by the RAG core."""

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(RagError):
    """Required input (text, query, file) is missing or empty."""

    http_status = 400


class ProviderError(RagError):
    """An embedding or generation API returned a non-success response."""

    http_status = 502

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (status {self.status})"


class ExtractionError(RagError):
    """PDF extraction failed, timed out, or produced no text."""

    http_status = 422

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr

    def __str__(self) -> str:
        if not self.stderr:
            return self.message
        return f"{self.message} {self.stderr.strip()}"


class StorageError(RagError):
    """A datastore read or write failed (the batch was rolled back)."""


class ConfigurationError(RagError):
    """Startup configuration is missing or inconsistent."""
