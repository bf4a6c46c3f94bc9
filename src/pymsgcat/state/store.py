"""Cache stores for remote provider snapshots.

A store holds one :class:`CacheEntry` per provider id.  The loader reads
the whole mapping and writes it back with its own entry replaced; stores
only need to make each ``get``/``set`` self-consistent.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from pymsgcat.exceptions import MsgCatCacheStoreError
from pymsgcat.models.cache import CacheEntry

_logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Structural cache interface consumed by the loader.

    Implementations raise :class:`MsgCatCacheStoreError` on failure.
    """

    async def get(self) -> Mapping[str, CacheEntry] | None: ...

    async def set(self, entries: Mapping[str, CacheEntry]) -> None: ...


def validate_entries(raw: Mapping[str, Any]) -> dict[str, CacheEntry]:
    """Coerce a raw provider-id mapping into cache entries.

    Entries that fail validation are dropped so one corrupt provider never
    hides the others.
    """
    entries: dict[str, CacheEntry] = {}
    for provider_id, value in raw.items():
        if isinstance(value, CacheEntry):
            entries[str(provider_id)] = value
            continue
        try:
            entries[str(provider_id)] = CacheEntry.model_validate(value)
        except ValidationError as exc:
            _logger.warning("Dropping invalid cache entry for provider %s: %s", provider_id, exc)
    return entries


class InMemoryCacheStore:
    """Process-lifetime cache store."""

    def __init__(self, entries: Mapping[str, CacheEntry] | None = None) -> None:
        self._entries: dict[str, CacheEntry] = dict(entries or {})

    async def get(self) -> dict[str, CacheEntry]:
        return copy.deepcopy(self._entries)

    async def set(self, entries: Mapping[str, CacheEntry]) -> None:
        self._entries = copy.deepcopy(dict(entries))


class JsonFileCacheStore:
    """Cache store persisted as a single JSON document.

    The document maps provider ids to entries serialized with camelCase
    keys.  Writes go to a temporary file in the same directory which then
    replaces the target, so readers never observe a partial document.
    File I/O runs in a worker thread.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, CacheEntry]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise MsgCatCacheStoreError(f"Cannot read cache file {self._path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise MsgCatCacheStoreError(f"Cache file {self._path} is not UTF-8: {exc}") from exc

        if not text.strip():
            return {}
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MsgCatCacheStoreError(f"Cache file {self._path} is not JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise MsgCatCacheStoreError(f"Cache file {self._path} does not hold a JSON object")
        return validate_entries(raw)

    def _write(self, entries: Mapping[str, CacheEntry]) -> None:
        document = {
            provider_id: entry.model_dump(mode="json", by_alias=True) for provider_id, entry in entries.items()
        }
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, separators=(",", ":"))
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise MsgCatCacheStoreError(f"Cannot write cache file {self._path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    _logger.debug("Could not remove temporary cache file %s", tmp_name)

    async def get(self) -> dict[str, CacheEntry]:
        async with self._lock:
            return await asyncio.to_thread(self._read)

    async def set(self, entries: Mapping[str, CacheEntry]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, dict(entries))
