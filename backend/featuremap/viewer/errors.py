"""Errors raised by the feature viewer.

Every error is recoverable: the session leaves its state unchanged and
shows ``str(error)`` to the user as a notice.
"""

from __future__ import annotations


class ViewerError(Exception):
    """Base class for recoverable viewer errors."""


class ParseError(ViewerError):
    """Raised when an import is not a valid GeoJSON FeatureCollection."""


class NetworkError(ViewerError):
    """Raised when fetching a collection fails.

    Attributes:
        status: HTTP status of the response, None for transport failures.
        body: Response body text, or the transport error message.
    """

    def __init__(self, status: int | None, body: str) -> None:
        self.status = status
        self.body = body
        if status is None:
            message = f"Network request failed: {body}"
        else:
            message = f"HTTP {status}: {body}"
        super().__init__(message)


class EmptySelectionError(ViewerError):
    """Raised when exporting with no features selected."""

    def __init__(self, message: str = "No features selected") -> None:
        super().__init__(message)
