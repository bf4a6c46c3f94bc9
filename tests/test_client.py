from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import aiohttp
import pytest

from pymsgcat._transport import AiohttpFetcher
from pymsgcat.client import MessageLoader
from pymsgcat.config import LoaderConfig
from pymsgcat.exceptions import MsgCatError
from pymsgcat.models import LocalProvider, RemoteProvider, parse_provider
from pymsgcat.state.store import InMemoryCacheStore, JsonFileCacheStore


class _GatedFetcher:
    """Holds every request until ``gate`` is set."""

    def __init__(self, response_factory: Any) -> None:
        self.gate = asyncio.Event()
        self.calls: list[tuple[str, str | None]] = []
        self._response_factory = response_factory

    async def request(self, url: str, *, etag: str | None = None) -> Any:
        self.calls.append((url, etag))
        await self.gate.wait()
        return self._response_factory(url)


@pytest.mark.asyncio
async def test_scenario_fetch_then_cached(make_fetcher, fake_response, clock) -> None:
    provider = parse_provider({"id": "p1", "type": "remote", "url": "https://x", "updateCycleInMs": 300})
    fetcher = make_fetcher(fake_response(200, {"messages": [{"id": "foo"}]}))
    clock.tick(1)
    store = InMemoryCacheStore()

    async with MessageLoader(cache_store=store, fetcher=fetcher, clock=clock) as loader:
        first = await loader.load(provider)
        clock.tick(299)
        assert loader.should_update(provider.model_copy(update={"last_updated": first.last_updated})) is False
        second = await loader.load(provider)

    assert first.messages == [{"id": "foo", "provider": "p1", "provider_url": "https://x"}]
    assert first.last_updated == 1
    assert second == first
    assert len(fetcher.calls) == 1
    assert (await store.get())["p1"].messages == [{"id": "foo"}]


@pytest.mark.asyncio
async def test_overlapping_loads_share_one_request(fake_response) -> None:
    fetcher = _GatedFetcher(lambda _url: fake_response(200, {"messages": [{"id": "foo"}]}))
    provider = RemoteProvider(id="p1", url="https://x")

    async with MessageLoader(fetcher=fetcher) as loader:
        first = asyncio.create_task(loader.load(provider))
        second = asyncio.create_task(loader.load(provider))
        await asyncio.sleep(0)
        fetcher.gate.set()
        results = await asyncio.gather(first, second)

    assert len(fetcher.calls) == 1
    assert results[0] == results[1]


@pytest.mark.asyncio
async def test_load_all_keeps_every_cache_entry(fake_response) -> None:
    def _respond(url: str) -> Any:
        return fake_response(200, {"messages": [{"id": url.rsplit("/", 1)[-1]}]})

    fetcher = _GatedFetcher(_respond)
    fetcher.gate.set()
    store = InMemoryCacheStore()
    providers = [
        RemoteProvider(id=f"p{i}", url=f"https://x/m{i}", update_cycle_in_ms=1000) for i in range(5)
    ] + [LocalProvider(id="local", messages=[{"id": "hard"}])]

    async with MessageLoader(cache_store=store, fetcher=fetcher, clock=lambda: 0) as loader:
        results = await loader.load_all(providers)

    assert set(results) == {"p0", "p1", "p2", "p3", "p4", "local"}
    assert results["p3"].messages[0]["id"] == "m3"
    assert results["local"].messages == [{"id": "hard", "provider": "local"}]
    assert set(await store.get()) == {"p0", "p1", "p2", "p3", "p4"}


@pytest.mark.asyncio
async def test_failing_provider_does_not_abort_cycle(make_fetcher, fake_response) -> None:
    fetcher = make_fetcher(fake_response(500, None))
    providers = [
        RemoteProvider(id="broken", url="https://x"),
        LocalProvider(id="local", messages=[{"id": "a"}]),
    ]

    async with MessageLoader(fetcher=fetcher) as loader:
        results = await loader.load_all(providers)

    assert results["broken"].messages == []
    assert len(results["local"].messages) == 1


@pytest.mark.asyncio
async def test_unexpected_fetcher_error_yields_empty_result() -> None:
    class _ExplodingFetcher:
        async def request(self, url: str, *, etag: str | None = None) -> Any:
            raise RuntimeError(f"boom for {url}")

    providers = [
        RemoteProvider(id="broken", url="https://x"),
        LocalProvider(id="local", messages=[{"id": "a"}]),
    ]

    async with MessageLoader(fetcher=_ExplodingFetcher()) as loader:
        results = await loader.load_all(providers)

    assert results["broken"].messages == []
    assert results["broken"].last_updated is None
    assert results["local"].messages == [{"id": "a", "provider": "local"}]


@pytest.mark.asyncio
async def test_changed_url_does_not_join_in_flight_load(fake_response) -> None:
    fetcher = _GatedFetcher(lambda url: fake_response(200, {"messages": [{"id": url.rsplit("/", 1)[-1]}]}))

    async with MessageLoader(fetcher=fetcher) as loader:
        old = asyncio.create_task(loader.load(RemoteProvider(id="p1", url="https://x/old")))
        new = asyncio.create_task(loader.load(RemoteProvider(id="p1", url="https://x/new")))
        await asyncio.sleep(0)
        fetcher.gate.set()
        old_result, new_result = await asyncio.gather(old, new)

    assert sorted(url for url, _etag in fetcher.calls) == ["https://x/new", "https://x/old"]
    assert old_result.messages[0]["provider_url"] == "https://x/old"
    assert new_result.messages[0]["id"] == "new"


@pytest.mark.asyncio
async def test_load_requires_context_manager() -> None:
    loader = MessageLoader()
    with pytest.raises(MsgCatError):
        await loader.load(LocalProvider(id="p"))


def test_default_store_follows_config(tmp_path: Path) -> None:
    assert isinstance(MessageLoader().cache_store, InMemoryCacheStore)
    file_loader = MessageLoader(LoaderConfig(cache_path=tmp_path / "c.json"))
    assert isinstance(file_loader.cache_store, JsonFileCacheStore)


@pytest.mark.asyncio
async def test_external_session_is_not_closed() -> None:
    async with aiohttp.ClientSession() as session:
        async with MessageLoader(session=session) as loader:
            assert isinstance(loader._require_fetcher(), AiohttpFetcher)  # noqa: SLF001
        assert not session.closed


@pytest.mark.asyncio
async def test_owned_session_is_closed() -> None:
    loader = MessageLoader()
    async with loader:
        session = loader._http_session  # noqa: SLF001
        assert session is not None
    assert session.closed
