"""Pydantic models for providers, cache entries and load results."""

from pymsgcat.models._base import Message, MsgCatBaseModel
from pymsgcat.models.cache import CacheEntry, LoadResult
from pymsgcat.models.provider import (
    LocalProvider,
    Provider,
    ProviderKind,
    RemoteProvider,
    parse_provider,
)

__all__ = [
    "CacheEntry",
    "LoadResult",
    "LocalProvider",
    "Message",
    "MsgCatBaseModel",
    "Provider",
    "ProviderKind",
    "RemoteProvider",
    "parse_provider",
]
