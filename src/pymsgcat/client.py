"""High-level async loader for many providers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

import aiohttp

from pymsgcat._transport import AiohttpFetcher, Fetcher
from pymsgcat.config import LoaderConfig
from pymsgcat.exceptions import MsgCatError
from pymsgcat.loader import load_messages_for_provider
from pymsgcat.models.cache import LoadResult
from pymsgcat.models.provider import LocalProvider, RemoteProvider
from pymsgcat.state.policy import now_ms, should_provider_update
from pymsgcat.state.store import CacheStore, InMemoryCacheStore, JsonFileCacheStore

_logger = logging.getLogger(__name__)


def _default_store(config: LoaderConfig) -> CacheStore:
    if config.cache_path is not None:
        return JsonFileCacheStore(config.cache_path)
    return InMemoryCacheStore()


class MessageLoader:
    """Async loader owning the HTTP session, cache store and clock.

    Usage::

        async with MessageLoader(LoaderConfig.from_env()) as loader:
            results = await loader.load_all(providers)

    Overlapping loads of the same provider share one in-flight load.
    Cache writes from different providers are serialized so none of them
    loses another's entry.
    """

    def __init__(
        self,
        config: LoaderConfig | None = None,
        *,
        cache_store: CacheStore | None = None,
        fetcher: Fetcher | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config or LoaderConfig()
        self._cache_store = cache_store if cache_store is not None else _default_store(self._config)
        self._external_fetcher = fetcher is not None
        self._fetcher = fetcher
        self._external_session = session is not None
        self._http_session = session
        self._clock = clock
        self._cache_lock = asyncio.Lock()
        self._inflight: dict[tuple[str, str], asyncio.Task[LoadResult]] = {}

    @property
    def cache_store(self) -> CacheStore:
        return self._cache_store

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MessageLoader:
        if not self._external_fetcher:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._fetcher = AiohttpFetcher(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        pending = [task for task in self._inflight.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if not self._external_fetcher:
            self._fetcher = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _require_fetcher(self) -> Fetcher:
        if self._fetcher is None:
            raise MsgCatError("Loader not initialized. Use 'async with MessageLoader(...) as loader:'")
        return self._fetcher

    def should_update(self, provider: LocalProvider | RemoteProvider) -> bool:
        """Whether *provider* is due for a refresh by the loader's clock."""
        return should_provider_update(provider, clock=self._clock)

    async def _load(self, provider: LocalProvider | RemoteProvider, fetcher: Fetcher) -> LoadResult:
        return await load_messages_for_provider(
            provider,
            self._cache_store,
            fetcher,
            clock=self._clock,
            cache_version=self._config.cache_version,
            cache_lock=self._cache_lock,
        )

    def _forget(self, key: tuple[str, str], task: asyncio.Task[LoadResult]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def load(self, provider: LocalProvider | RemoteProvider) -> LoadResult:
        """Load one provider, joining a load already in flight for it.

        Loads are shared per provider id and url; a provider whose url
        changed starts its own load.
        """
        fetcher = self._require_fetcher()
        key = (provider.id, getattr(provider, "url", ""))
        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._load(provider, fetcher))
            self._inflight[key] = task
            task.add_done_callback(lambda t, key=key: self._forget(key, t))
        else:
            _logger.debug("Joining in-flight load for provider %s", provider.id)
        # Cancelling one caller leaves the shared load running.
        return await asyncio.shield(task)

    async def load_all(self, providers: Iterable[LocalProvider | RemoteProvider]) -> dict[str, LoadResult]:
        """Load every provider concurrently, keyed by provider id.

        A provider whose load raises yields an empty result; the others
        are unaffected.
        """
        provider_list = list(providers)
        results = await asyncio.gather(
            *(self.load(provider) for provider in provider_list),
            return_exceptions=True,
        )
        loaded: dict[str, LoadResult] = {}
        for provider, result in zip(provider_list, results, strict=True):
            if isinstance(result, LoadResult):
                loaded[provider.id] = result
            elif isinstance(result, Exception):
                _logger.warning("Loading provider %s failed: %r", provider.id, result)
                loaded[provider.id] = LoadResult()
            else:
                raise result
        return loaded
