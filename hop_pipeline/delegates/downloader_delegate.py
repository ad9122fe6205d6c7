# hop_pipeline/delegates/downloader_delegate.py
import asyncio
import logging
import httpx
import lxml.html
from lxml import etree
from typing import Optional, Dict

from ..errors import FetchError

logger = logging.getLogger(__name__)

class DownloaderDelegate:
    """Fetches catalog pages and hands them back as parsed lxml documents."""
    def __init__(
        self,
        user_agent: str,
        timeout: float = 30,
        max_concurrency: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        # Every request goes through this semaphore, so at most max_concurrency are in flight.
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None # Will be initialized in __aenter__

    async def __aenter__(self):
        self.client = httpx.AsyncClient(
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        logger.debug("DownloaderDelegate httpx.AsyncClient initialized.")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.debug("DownloaderDelegate httpx.AsyncClient closed.")

    async def _get(self, url: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        if not self.client:
            raise RuntimeError("HTTP client not initialized. Use 'async with DownloaderDelegate(...)'.")

        async with self._semaphore:
            try:
                logger.debug("Requesting %s", url)
                response = await self.client.get(url, headers=headers)
                response.raise_for_status() # Raise an exception for 4xx/5xx responses
            except httpx.HTTPStatusError as e:
                logger.error("HTTP error fetching %s: %s", url, e.response.status_code)
                raise FetchError(url, "status", status_code=e.response.status_code) from e
            except httpx.RequestError as e:
                logger.error("Network error fetching %s: %s", url, e)
                raise FetchError(url, "network", detail=str(e)) from e

        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response

    async def fetch_html(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """Downloads a page and returns its text. Raises FetchError on network or status failure."""
        response = await self._get(url, headers)
        return response.text

    async def fetch_document(self, url: str) -> lxml.html.HtmlElement:
        """
        Downloads a page and parses it into an lxml element tree.
        The raw bytes go to lxml so pages carrying an XML encoding declaration still parse.
        """
        response = await self._get(url)
        html_content = response.content
        if not html_content.strip():
            raise FetchError(url, "content", detail="empty response body")
        try:
            return lxml.html.document_fromstring(html_content, base_url=url)
        except (etree.ParserError, ValueError) as e:
            raise FetchError(url, "content", detail=f"unparseable HTML: {e}") from e
