"""Plain HTTP fetching for server-rendered pages."""

from typing import Any

import httpx

from taurobot.core.exceptions import FetchError, HTTPStatusError, RequestTimeoutError
from taurobot.core.scraper_config import HeadersConfig
from taurobot.logging import get_logger

logger = get_logger(__name__)


class HtmlFetcher:
    """GETs a page and returns its HTML.

    Raises ``FetchError`` on network failure, timeout or non-2xx status.
    Never retries; retry policy belongs to the orchestrator.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: HeadersConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.headers = headers or HeadersConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def get_http_client(self) -> httpx.AsyncClient:
        """Get or create the underlying client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self.headers.get_headers(),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        source: str | None = None,
    ) -> str:
        """Fetch ``url`` and return the response body as text."""
        client = await self.get_http_client()
        kwargs: dict[str, Any] = {}
        if headers:
            kwargs["headers"] = headers
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.info("fetch_html", url=url[:80], source=source)
        try:
            response = await client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(url, timeout or self.timeout, source=source) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Network error: {e}", url=url, source=source) from e

        if not response.is_success:
            raise HTTPStatusError(response.status_code, url, source=source)

        return response.text

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HtmlFetcher":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
