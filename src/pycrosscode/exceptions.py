"""Custom exception hierarchy for pycrosscode."""

from __future__ import annotations


class CrossCodeError(Exception):
    """Base exception for all pycrosscode errors."""


class CrossCodeConfigError(CrossCodeError):
    """Invalid or missing configuration."""


class SourceUnavailableError(CrossCodeError):
    """A page fetch failed (network, timeout, non-200, invalid body).

    Records ingested before the failure stay indexed and the dataset is
    not marked as fully loaded, so retrying the resolution is safe.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ResolutionCancelledError(CrossCodeError):
    """A newer resolution superseded this one.

    Only raised when a ``Cancelled`` outcome is unwrapped; the resolver
    itself never raises it.
    """
