"""HTTP transport for remote providers."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp

from pymsgcat._constants import HEADER_ETAG, HEADER_IF_NONE_MATCH
from pymsgcat.config import LoaderConfig
from pymsgcat.exceptions import MsgCatResponseError, MsgCatTransportError

_logger = logging.getLogger(__name__)


class FetchResponse(Protocol):
    """Response capability consumed by the loader.

    Only the status, the validator token and a lazily read JSON body are
    exposed; the loader never sees the transport's header bag.
    """

    @property
    def status(self) -> int: ...

    def get_validator(self) -> str | None: ...

    async def json(self) -> Any:
        """Read and decode the body.

        Raises :class:`MsgCatResponseError` if the body is empty,
        unreadable or not JSON.
        """
        ...

    def release(self) -> None: ...


class Fetcher(Protocol):
    """Structural transport interface used by the loader.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`AiohttpFetcher`) concrete.
    """

    async def request(self, url: str, *, etag: str | None = None) -> FetchResponse:
        """Issue a GET, conditional on *etag* when given.

        Raises :class:`MsgCatTransportError` when the request never
        completes.
        """
        ...


class AiohttpResponse:
    """:class:`FetchResponse` over an unread ``aiohttp.ClientResponse``."""

    def __init__(self, response: aiohttp.ClientResponse) -> None:
        self._resp = response

    @property
    def status(self) -> int:
        return self._resp.status

    def get_validator(self) -> str | None:
        return self._resp.headers.get(HEADER_ETAG) or None

    async def json(self) -> Any:
        try:
            raw = await self._resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise MsgCatResponseError(f"Could not read body from {self._resp.url}: {exc}") from exc
        finally:
            self._resp.release()

        if not raw.strip():
            raise MsgCatResponseError(f"Empty body from {self._resp.url} (HTTP {self._resp.status})")
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise MsgCatResponseError(f"Invalid JSON from {self._resp.url}: {raw[:200]!r}") from exc

    def release(self) -> None:
        self._resp.release()


class AiohttpFetcher:
    """Conditional GET over a shared ``aiohttp.ClientSession``.

    Redirects are not followed: a redirect status is handed to the loader
    as-is, together with whatever body came with it.
    """

    def __init__(self, config: LoaderConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout or None)

    async def request(self, url: str, *, etag: str | None = None) -> AiohttpResponse:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": self._config.user_agent,
        }
        if etag:
            headers[HEADER_IF_NONE_MATCH] = etag

        _logger.debug("GET %s (etag=%s)", url, etag)

        try:
            resp = await self._http.get(
                url,
                headers=headers,
                allow_redirects=False,
                timeout=self._timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise MsgCatTransportError(f"Request to {url} failed: {exc!r}", url=url) from exc
        except ValueError as exc:
            # Malformed URLs are rejected by yarl before any I/O.
            raise MsgCatTransportError(f"Invalid url {url!r}: {exc}", url=url) from exc

        _logger.debug("GET %s -> HTTP %s", url, resp.status)
        return AiohttpResponse(resp)
