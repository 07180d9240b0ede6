"""Typed failures raised by provider clients.

Every failure a provider can produce is a :class:`FetchError`. The fallback
resolver is the only place these are caught; it turns them into "try the next
tier" or a failed source outcome.
"""

from typing import Optional


class FetchError(Exception):
    """Base class for all provider failures.

    Attributes:
        provider: Provenance label of the provider that failed.
        reason: Stable reason code used in log lines and summaries.
    """
    reason = "FETCH_ERROR"

    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"{self.provider}: {self.message}"
        return self.message


class TransportError(FetchError):
    """Network failure, timeout or non-successful HTTP status."""
    reason = "TRANSPORT_ERROR"


class ProviderError(FetchError):
    """Well-formed response carrying an explicit error payload."""
    reason = "PROVIDER_ERROR"


class DataShapeError(FetchError):
    """Response is missing expected fields or holds unusable values."""
    reason = "DATA_SHAPE_ERROR"


class NotConfigured(FetchError):
    """A credential the provider needs was not supplied. Not a real failure."""
    reason = "NOT_CONFIGURED"


class PublishError(FetchError):
    """A finished record set could not be written to the output directory."""
    reason = "PUBLISH_ERROR"
