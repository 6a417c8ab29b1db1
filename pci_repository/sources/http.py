"""Registry source served over HTTP(S)."""

from __future__ import annotations

import logging

import httpx

from pci_repository.errors import FetchError

logger = logging.getLogger(__name__)


class HttpTextSource:
    """Fetch the registry text with an ``httpx.AsyncClient``.

    Any transport failure or non-2xx response becomes a ``FetchError``.
    A custom *transport* can be injected (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def location(self) -> str:
        return self._url

    async def fetch(self) -> str:
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout,
                follow_redirects=True,
            ) as client:
                resp = await client.get(self._url)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(self._url, e, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise FetchError(self._url, e) from e

        text = resp.text
        logger.info("Fetched %d bytes from %s", len(resp.content), self._url)
        return text
