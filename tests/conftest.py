from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pymsgcat.exceptions import MsgCatResponseError


@dataclass
class FakeClock:
    now: int = 0

    def __call__(self) -> int:
        return self.now

    def tick(self, ms: int) -> None:
        self.now += ms


@dataclass
class FakeResponse:
    status: int
    body: Any = None
    etag: str | None = None
    on_read: Callable[[], None] | None = None
    released: bool = False

    def get_validator(self) -> str | None:
        return self.etag

    async def json(self) -> Any:
        if self.on_read is not None:
            self.on_read()
        if isinstance(self.body, Exception):
            raise self.body
        if self.body is None:
            raise MsgCatResponseError("empty body")
        return self.body

    def release(self) -> None:
        self.released = True


@dataclass
class FakeFetcher:
    """Replays scripted responses; an exception in the script is raised instead."""

    script: list[Any] = field(default_factory=list)
    calls: list[tuple[str, str | None]] = field(default_factory=list)

    async def request(self, url: str, *, etag: str | None = None) -> FakeResponse:
        self.calls.append((url, etag))
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    def _make(*script: Any) -> FakeFetcher:
        return FakeFetcher(script=list(script))

    return _make
