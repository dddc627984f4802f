"""Custom exceptions for the auth client."""

from __future__ import annotations


class AuthClientError(Exception):
    """Base exception for auth client errors."""

    pass


class ConfigurationError(AuthClientError):
    """Required configuration is missing."""

    pass


class BackendError(AuthClientError):
    """Auth backend returned an error response."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        """Initialize with HTTP status code, message and backend error code."""
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")
