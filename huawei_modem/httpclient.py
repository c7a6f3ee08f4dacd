"""Module for HttpClient class."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, NamedTuple

import aiohttp
from yarl import URL

from .exceptions import (
    TimeoutError,
    TransportError,
    _ConnectionError,
)

if TYPE_CHECKING:
    from multidict import CIMultiDictProxy

    from .modemconfig import ModemConfig

_LOGGER = logging.getLogger(__name__)


def get_cookie_jar() -> aiohttp.CookieJar:
    """Return a new cookie jar with the correct options for device communication."""
    return aiohttp.CookieJar(unsafe=True, quote_cookie=False)


class HttpResponse(NamedTuple):
    """Status, decoded body and headers of a response."""

    status: int
    text: str
    headers: CIMultiDictProxy[str]


class HttpClient:
    """HttpClient Class."""

    def __init__(self, config: ModemConfig) -> None:
        self._config = config
        self._client_session: aiohttp.ClientSession | None = None

    @property
    def client(self) -> aiohttp.ClientSession:
        """Return the underlying http client."""
        if self._config.http_client and issubclass(
            self._config.http_client.__class__, aiohttp.ClientSession
        ):
            return self._config.http_client

        if not self._client_session:
            self._client_session = aiohttp.ClientSession(cookie_jar=get_cookie_jar())
        return self._client_session

    async def get(
        self, url: URL, *, headers: dict[str, str] | None = None
    ) -> HttpResponse:
        """Send an http get request to the device."""
        return await self._request("GET", url, headers=headers)

    async def post(
        self,
        url: URL,
        *,
        data: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Send an http post request to the device."""
        return await self._request("POST", url, data=data, headers=headers)

    async def _request(
        self,
        method: str,
        url: URL,
        *,
        data: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        _LOGGER.debug("%s %s", method, url)
        # The session cookie is sent explicitly in the Cookie header, anything
        # the jar picked up from previous responses must not be added to it.
        self.client.cookie_jar.clear()
        if self._config.timeout is None:
            _LOGGER.warning("Request timeout is set to None.")
        client_timeout = aiohttp.ClientTimeout(total=self._config.timeout)

        if isinstance(data, str):
            data = data.encode()
        try:
            if method == "GET":
                resp = await self.client.get(
                    url, headers=headers, timeout=client_timeout
                )
            else:
                resp = await self.client.post(
                    url, data=data, headers=headers, timeout=client_timeout
                )
            async with resp:
                response_data = await resp.read()
        except (aiohttp.ServerDisconnectedError, aiohttp.ClientOSError) as ex:
            raise _ConnectionError(
                f"Device connection error: {self._config.host}: {ex}", ex
            ) from ex
        except (aiohttp.ServerTimeoutError, asyncio.TimeoutError) as ex:
            raise TimeoutError(
                "Unable to query the device, "
                + f"timed out: {self._config.host}: {ex}",
                ex,
            ) from ex
        except Exception as ex:
            raise TransportError(
                f"Unable to query the device: {self._config.host}: {ex}", ex
            ) from ex

        if resp.status != 200:
            _LOGGER.debug(
                "Device %s received status code %s with response %s",
                self._config.host,
                resp.status,
                str(response_data),
            )

        text = response_data.decode("utf-8", errors="replace") if response_data else ""
        return HttpResponse(resp.status, text, resp.headers)

    async def close(self) -> None:
        """Close the ClientSession."""
        client = self._client_session
        self._client_session = None
        if client:
            await client.close()
