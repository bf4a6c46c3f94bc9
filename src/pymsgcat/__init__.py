"""pymsgcat - Async message-catalog loader with ETag cache revalidation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymsgcat")
except PackageNotFoundError:
    __version__ = "0+local"
from pymsgcat._transport import AiohttpFetcher, Fetcher, FetchResponse
from pymsgcat.client import MessageLoader
from pymsgcat.config import LoaderConfig
from pymsgcat.exceptions import (
    MsgCatCacheStoreError,
    MsgCatConfigError,
    MsgCatError,
    MsgCatResponseError,
    MsgCatTransportError,
)
from pymsgcat.loader import FetchOutcome, load_messages_for_provider
from pymsgcat.models import (
    CacheEntry,
    LoadResult,
    LocalProvider,
    Provider,
    ProviderKind,
    RemoteProvider,
    parse_provider,
)
from pymsgcat.state.policy import should_provider_update, should_update
from pymsgcat.state.store import CacheStore, InMemoryCacheStore, JsonFileCacheStore

__all__ = [
    "__version__",
    "AiohttpFetcher",
    "CacheEntry",
    "CacheStore",
    "FetchOutcome",
    "FetchResponse",
    "Fetcher",
    "InMemoryCacheStore",
    "JsonFileCacheStore",
    "LoadResult",
    "LoaderConfig",
    "LocalProvider",
    "MessageLoader",
    "MsgCatCacheStoreError",
    "MsgCatConfigError",
    "MsgCatError",
    "MsgCatResponseError",
    "MsgCatTransportError",
    "Provider",
    "ProviderKind",
    "RemoteProvider",
    "load_messages_for_provider",
    "parse_provider",
    "should_provider_update",
    "should_update",
]
