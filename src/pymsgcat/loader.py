"""Per-provider message loading with cache revalidation.

``load_messages_for_provider`` is the only entry point.  For a remote
provider it walks, strictly in order:

1. read the cached snapshot,
2. return it untouched if it is still fresh,
3. otherwise issue a conditional GET carrying the cached ETag,
4. classify the response (:class:`FetchOutcome`),
5. write the cache when the response carried new messages.

Every failure (transport, body, cache store) degrades to "no messages for
this provider"; nothing here raises for network or storage trouble.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import StrEnum
from typing import Any, assert_never

from pymsgcat._constants import CACHE_VERSION, STATUS_NOT_MODIFIED
from pymsgcat._transport import Fetcher, FetchResponse
from pymsgcat.exceptions import MsgCatCacheStoreError, MsgCatResponseError, MsgCatTransportError
from pymsgcat.models._base import Message
from pymsgcat.models.cache import CacheEntry, LoadResult
from pymsgcat.models.provider import LocalProvider, RemoteProvider
from pymsgcat.state.policy import now_ms, should_provider_update, should_update
from pymsgcat.state.store import CacheStore, validate_entries

_logger = logging.getLogger(__name__)

__all__ = ["FetchOutcome", "load_messages_for_provider", "should_provider_update"]


class FetchOutcome(StrEnum):
    """Classification of one remote response."""

    FRESH = "fresh"  # body carried messages; cached
    NOT_MODIFIED = "not_modified"  # 304; cached messages reused
    EMPTY = "empty"  # 2xx without usable body
    HTTP_ERROR = "http_error"  # non-2xx without usable body
    TRANSPORT_ERROR = "transport_error"


def _with_provenance(messages: Sequence[Mapping[str, Any]], provider_id: str, url: str | None = None) -> list[Message]:
    tagged: list[Message] = []
    for message in messages:
        copied = dict(message)
        copied["provider"] = provider_id
        if url is not None:
            copied["provider_url"] = url
        tagged.append(copied)
    return tagged


def _extract_messages(body: Any) -> list[Message] | None:
    """Return the body's message list, or ``None`` if the body has none."""
    if not isinstance(body, Mapping):
        return None
    messages = body.get("messages")
    if not isinstance(messages, list):
        return None
    extracted: list[Message] = []
    for message in messages:
        if isinstance(message, Mapping):
            extracted.append(dict(message))
        else:
            _logger.debug("Skipping non-object message %r", message)
    return extracted


async def _interpret_response(response: FetchResponse) -> tuple[FetchOutcome, list[Message]]:
    """Classify *response*; body-bearing outcomes are known only after the body read."""
    status = response.status
    if status == STATUS_NOT_MODIFIED:
        return FetchOutcome.NOT_MODIFIED, []

    try:
        body = await response.json()
    except (MsgCatResponseError, ValueError) as exc:
        _logger.debug("Unusable body (HTTP %s): %s", status, exc)
        body = None

    # A parseable body wins over the status: some servers attach the
    # payload to redirect or soft-error responses.
    messages = _extract_messages(body)
    if messages is not None:
        return FetchOutcome.FRESH, messages
    if 200 <= status < 300:
        return FetchOutcome.EMPTY, []
    return FetchOutcome.HTTP_ERROR, []


async def _get_entries(cache_store: CacheStore) -> dict[str, CacheEntry]:
    """Read and validate the store; raises :class:`MsgCatCacheStoreError`."""
    raw = await cache_store.get()
    if not raw:
        return {}
    return validate_entries(raw)


async def _read_cache(cache_store: CacheStore) -> dict[str, CacheEntry]:
    try:
        return await _get_entries(cache_store)
    except MsgCatCacheStoreError as exc:
        _logger.warning("Cache read failed, treating as empty: %s", exc)
        return {}


async def _write_cache(
    cache_store: CacheStore,
    provider_id: str,
    entry: CacheEntry,
    cache_lock: asyncio.Lock | None,
) -> None:
    # Re-read under the lock so concurrent loads of other providers keep
    # their entries.
    async with cache_lock if cache_lock is not None else contextlib.nullcontext():
        try:
            entries = await _get_entries(cache_store)
        except MsgCatCacheStoreError as exc:
            # Writing on top of an unknown mapping would drop other providers.
            _logger.warning("Skipping cache write for provider %s, re-read failed: %s", provider_id, exc)
            return
        entries[provider_id] = entry
        try:
            await cache_store.set(entries)
        except MsgCatCacheStoreError as exc:
            _logger.warning("Cache write for provider %s failed: %s", provider_id, exc)


def _usable_entry(entry: CacheEntry | None, provider: RemoteProvider, cache_version: str) -> CacheEntry | None:
    if entry is None:
        return None
    if entry.url != provider.url or entry.version != cache_version:
        _logger.debug(
            "Ignoring cache entry for %s (url=%s version=%s)",
            provider.id,
            entry.url,
            entry.version,
        )
        return None
    return entry


async def _load_remote(
    provider: RemoteProvider,
    cache_store: CacheStore,
    fetcher: Fetcher,
    *,
    clock: Callable[[], int],
    cache_version: str,
    cache_lock: asyncio.Lock | None,
) -> LoadResult:
    if not provider.url:
        return LoadResult()

    cached = _usable_entry((await _read_cache(cache_store)).get(provider.id), provider, cache_version)

    if cached is not None and not should_update(
        last_updated=cached.last_updated,
        update_cycle_ms=provider.update_cycle_in_ms,
        now_ms=clock(),
    ):
        _logger.debug("Cache hit for provider %s", provider.id)
        return LoadResult(
            messages=_with_provenance(cached.messages, provider.id, provider.url),
            last_updated=cached.last_updated,
        )

    etag = cached.etag if cached is not None else None
    try:
        response = await fetcher.request(provider.url, etag=etag)
    except (MsgCatTransportError, OSError) as exc:
        _logger.warning("Request for provider %s failed: %s", provider.id, exc)
        return LoadResult(last_updated=clock())

    try:
        outcome, messages = await _interpret_response(response)
        validator = response.get_validator()
    finally:
        response.release()
    received_at = clock()
    _logger.debug("Provider %s: HTTP %s -> %s", provider.id, response.status, outcome)

    if outcome is FetchOutcome.FRESH:
        entry = CacheEntry(
            version=cache_version,
            url=provider.url,
            messages=messages,
            etag=validator,
            last_updated=received_at,
        )
        await _write_cache(cache_store, provider.id, entry, cache_lock)
        return LoadResult(
            messages=_with_provenance(messages, provider.id, provider.url),
            last_updated=received_at,
        )

    if outcome is FetchOutcome.NOT_MODIFIED:
        if cached is None:
            return LoadResult(last_updated=received_at)
        refreshed = cached.model_copy(update={"last_updated": received_at, "etag": validator or cached.etag})
        await _write_cache(cache_store, provider.id, refreshed, cache_lock)
        return LoadResult(
            messages=_with_provenance(cached.messages, provider.id, provider.url),
            last_updated=received_at,
        )

    if outcome is FetchOutcome.HTTP_ERROR:
        _logger.warning("Provider %s returned HTTP %s without messages", provider.id, response.status)
    return LoadResult(last_updated=received_at)


async def load_messages_for_provider(
    provider: LocalProvider | RemoteProvider,
    cache_store: CacheStore,
    fetcher: Fetcher,
    *,
    clock: Callable[[], int] = now_ms,
    cache_version: str = CACHE_VERSION,
    cache_lock: asyncio.Lock | None = None,
) -> LoadResult:
    """Load one provider's messages, tagged with their provenance.

    Parameters
    ----------
    provider : LocalProvider or RemoteProvider
        Provider to load.  Local providers never touch *cache_store* or
        *fetcher*.
    cache_store : CacheStore
        Store holding the last known good snapshot per provider id.
    fetcher : Fetcher
        Transport used for the conditional request.
    clock : callable
        Returns the current epoch time in milliseconds.
    cache_version : str
        Version tag written to new entries; entries with another tag are
        not served.
    cache_lock : asyncio.Lock or None
        Serializes cache writes when several providers share *cache_store*.

    Returns
    -------
    LoadResult
        Messages (never ``None``) and the freshness timestamp.
    """
    if isinstance(provider, LocalProvider):
        return LoadResult(messages=_with_provenance(provider.messages, provider.id))
    if isinstance(provider, RemoteProvider):
        return await _load_remote(
            provider,
            cache_store,
            fetcher,
            clock=clock,
            cache_version=cache_version,
            cache_lock=cache_lock,
        )
    assert_never(provider)
