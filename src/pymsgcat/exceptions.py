"""Custom exception hierarchy for pymsgcat."""

from __future__ import annotations


class MsgCatError(Exception):
    """Base exception for all pymsgcat errors."""


class MsgCatConfigError(MsgCatError):
    """Invalid or missing configuration."""


class MsgCatTransportError(MsgCatError):
    """The request never completed (connection error, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class MsgCatResponseError(MsgCatError):
    """Response body is missing, unreadable or not JSON."""


class MsgCatCacheStoreError(MsgCatError):
    """Cache store read or write failed."""
