"""Error types raised by the refresh pipeline."""

from __future__ import annotations


class WPPError(RuntimeError):
    """Base error for WPP feed operations."""


class NetworkError(WPPError):
    """Raised when a backend endpoint answers with a non-success status."""

    def __init__(self, endpoint: str, status_code: int | None, message: str = "") -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message or f"WPP {endpoint} failed: {status_code}")


class TransportError(NetworkError):
    """Raised when an endpoint cannot be reached at all, so there is no status."""

    def __init__(self, endpoint: str, detail: str) -> None:
        self.detail = detail
        super().__init__(endpoint, None, f"WPP {endpoint} failed with transport error: {detail}")


class ParseError(WPPError):
    """Raised when a backend body is not the JSON shape we expect."""


class ValidationError(WPPError, ValueError):
    """Raised on invalid user-facing parameters (metric, sort key, tier)."""
