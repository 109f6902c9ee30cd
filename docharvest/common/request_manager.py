"""Request manager for fetching documentation pages.

This module provides AsyncRequestManager, the page source used by the crawl
driver. It is responsible for:

- Maintaining the HTTP client (httpx.AsyncClient)
- Converting HTTP responses to Response objects
- Turning every way a fetch can fail into a PageUnavailableException

This separation lets the driver focus on frontier management while
delegating HTTP concerns to the request manager. Failed fetches are never
retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from docharvest.common.exceptions import (
    HTMLResponseAssumptionException,
    RequestTimeoutException,
    RequestTransportException,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "docharvest/0.1"


@dataclass
class Response:
    """HTTP response from fetching a page.

    Attributes:
        status_code: HTTP status code (200, 404, etc.).
        headers: Response headers.
        content: Raw response bytes.
        url: The URL that was requested.
    """

    status_code: int
    headers: dict[str, str]
    content: bytes
    url: str


class RequestManager(Protocol):
    """What the crawl driver needs from a page source."""

    async def resolve_request(self, url: str) -> Response: ...

    async def close(self) -> None: ...


class AsyncRequestManager:
    """Manages HTTP requests for the crawl driver.

    This class encapsulates:

    - httpx.AsyncClient lifecycle
    - Request resolution (URL fetching, redirects followed)
    - Response transformation

    Example::

        async with AsyncRequestManager(timeout=30.0) as manager:
            response = await manager.resolve_request(url)
    """

    def __init__(
        self,
        timeout: float | None = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            timeout: Request timeout in seconds. None means no timeout.
            headers: Extra headers sent with every request. A User-Agent
                is added unless one is given.
        """
        self.timeout = timeout
        client_headers = {"User-Agent": DEFAULT_USER_AGENT}
        if headers:
            client_headers.update(headers)

        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=client_headers,
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit - closes the client."""
        await self.close()

    async def resolve_request(self, url: str) -> Response:
        """Fetch a URL and return the Response.

        Args:
            url: Absolute URL to fetch.

        Returns:
            Response containing the HTTP response data.

        Raises:
            HTMLResponseAssumptionException: If the status code is not 2xx.
            RequestTimeoutException: If the request times out.
            RequestTransportException: If the connection fails.
        """
        try:
            http_response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutException(
                url=url, timeout_seconds=self.timeout
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RequestTransportException(
                url=url, reason=f"{type(e).__name__}: {e}"
            ) from e

        if not http_response.is_success:
            raise HTMLResponseAssumptionException(
                status_code=http_response.status_code,
                url=url,
            )

        logger.debug(
            f"Fetched {url} ({http_response.status_code}, "
            f"{len(http_response.content)} bytes)"
        )

        return Response(
            status_code=http_response.status_code,
            headers=dict(http_response.headers),
            content=http_response.content,
            url=url,
        )
