"""Cache entry and load result records."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from pymsgcat._constants import CACHE_VERSION
from pymsgcat.models._base import Message, MsgCatBaseModel, coerce_messages


class CacheEntry(MsgCatBaseModel):
    """Last known good snapshot of a remote provider.

    Persisted with camelCase keys; overwritten wholesale on every
    successful fetch.
    """

    version: str = CACHE_VERSION
    url: str
    messages: list[Message] = Field(default_factory=list)
    etag: str | None = None
    last_updated: int = Field(..., description="Epoch ms at which the entry was last confirmed fresh.")

    @field_validator("messages", mode="before")
    @classmethod
    def _coerce_messages(cls, value: Any) -> Any:
        return coerce_messages(value)

    @field_validator("version", mode="before")
    @classmethod
    def _stringify_version(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class LoadResult(MsgCatBaseModel):
    """Normalized messages of one provider load.

    ``last_updated`` is ``None`` for local providers and for remote
    providers without a url.
    """

    messages: list[Message] = Field(default_factory=list)
    last_updated: int | None = None
