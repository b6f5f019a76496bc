"""PDF source: retrieves PDF bytes over HTTP and decodes them with PyMuPDF."""
import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from urllib.parse import quote

import fitz  # PyMuPDF
import httpx

from config import FETCH_TIMEOUT, PROXY_BASE_URL, USER_AGENT
from models.document import DocumentHandle, PageDescriptor, PixelBuffer
from services.errors import AuthError, DecodeError, FetchError, PageIndexError, RenderError

logger = logging.getLogger(__name__)


class PdfSource(ABC):
    """Turns a URL into a decoded document whose pages can be rasterized."""

    @abstractmethod
    async def open(self, url: str) -> DocumentHandle:
        """
        Retrieve and decode the PDF at ``url``.

        Raises:
            FetchError: If the resource cannot be retrieved
            DecodeError: If the bytes are not a readable PDF
            AuthError: If the document is password protected
        """

    @abstractmethod
    def get_page(self, handle: DocumentHandle, index: int) -> PageDescriptor:
        """
        Look up the page with 1-based ``index``.

        Raises:
            PageIndexError: If ``index`` is outside ``[1, handle.page_count]``
        """

    @abstractmethod
    async def render_page(self, page: PageDescriptor, scale: float) -> PixelBuffer:
        """Rasterize ``page`` at ``scale`` into raw pixels."""

    def close(self, handle: DocumentHandle) -> None:
        """Release the resources held by ``handle``. Safe to call twice."""
        handle.closed = True


class PyMuPdfSource(PdfSource):
    """
    PdfSource backed by httpx for transport and PyMuPDF for decoding.

    PyMuPDF documents are not thread-safe: every render runs on the source's
    single worker thread, and page loads and closes hold the same lock.
    """

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT,
        proxy_base_url: Optional[str] = PROXY_BASE_URL,
        user_agent: str = USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the source.

        Args:
            timeout: Total seconds allowed for one fetch
            proxy_base_url: Base URL of a proxy relay used when the direct fetch fails
            user_agent: User-Agent header sent upstream
            transport: Optional httpx transport (used to stub the network)
        """
        self.timeout = timeout
        self.proxy_base_url = proxy_base_url
        self.user_agent = user_agent
        self.transport = transport
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pymupdf")
        self._lock = threading.Lock()

    async def open(self, url: str) -> DocumentHandle:
        data = await self.fetch(url)
        handle = self.decode(data, url)
        logger.info(f"Opened PDF {url}: {handle.page_count} pages")
        return handle

    async def fetch(self, url: str) -> bytes:
        """
        Fetch the PDF bytes, falling back to the proxy relay if one is configured.

        A 404 is final: the proxy would only fetch the same missing resource.
        A timeout is final too, so one load never waits more than ``timeout``.
        """
        try:
            return await self._get(url, source_url=url)
        except FetchError as e:
            if not self.proxy_base_url or e.status_code == 404 or e.reason == FetchError.TIMEOUT:
                raise
            logger.warning(f"Direct fetch of {url} failed ({e.message}), retrying through proxy")
            return await self._get(self.proxy_url_for(url), source_url=url)

    def proxy_url_for(self, url: str) -> str:
        return f"{self.proxy_base_url.rstrip('/')}/proxy/pdf?url={quote(url, safe='')}"

    async def _get(self, request_url: str, source_url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                transport=self.transport
            ) as client:
                response = await asyncio.wait_for(client.get(request_url), self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchError(
                f"Timed out after {self.timeout}s fetching {request_url}",
                reason=FetchError.TIMEOUT,
                url=source_url
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(
                f"Network error fetching {request_url}: {e}",
                reason=FetchError.NETWORK,
                url=source_url
            ) from e

        if response.status_code in (401, 403):
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                reason=FetchError.BLOCKED,
                status_code=response.status_code,
                url=source_url
            )
        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                reason=FetchError.STATUS,
                status_code=response.status_code,
                url=source_url
            )

        logger.debug(f"Fetched {len(response.content)} bytes from {request_url}")
        return response.content

    def decode(self, data: bytes, url: str) -> DocumentHandle:
        """
        Decode PDF bytes into a DocumentHandle.

        Raises:
            DecodeError: If the bytes are empty or not a PDF
            AuthError: If the document requires a password
        """
        if not data:
            raise DecodeError("Empty response body", {"url": url})

        try:
            document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise DecodeError(f"Invalid PDF: {e}", {"url": url}) from e

        if document.needs_pass:
            document.close()
            raise AuthError("This PDF is password protected", {"url": url})
        if document.page_count == 0:
            document.close()
            raise DecodeError("PDF contains no pages", {"url": url})

        return DocumentHandle(page_count=document.page_count, source_url=url, native=document)

    def get_page(self, handle: DocumentHandle, index: int) -> PageDescriptor:
        if handle.closed:
            raise ValueError("Document handle is closed")
        if not 1 <= index <= handle.page_count:
            raise PageIndexError(index, handle.page_count)

        try:
            with self._lock:
                page = handle.native.load_page(index - 1)
        except Exception as e:
            raise RenderError(index, f"Failed to load page {index}: {e}") from e

        return PageDescriptor(index=index, width=page.rect.width, height=page.rect.height, native=page)

    async def render_page(self, page: PageDescriptor, scale: float) -> PixelBuffer:
        if scale <= 0:
            raise ValueError("scale must be > 0")

        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, self._render_locked, page, scale)
        except Exception as e:
            raise RenderError(page.index, f"Failed to render page {page.index}: {e}") from e

    def _render_locked(self, page: PageDescriptor, scale: float) -> PixelBuffer:
        with self._lock:
            return self._render(page, scale)

    @staticmethod
    def _render(page: PageDescriptor, scale: float) -> PixelBuffer:
        pixmap = page.native.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return PixelBuffer(
            samples=bytes(pixmap.samples),
            width=pixmap.width,
            height=pixmap.height,
            channels=pixmap.n,
            page_index=page.index
        )

    def close(self, handle: DocumentHandle) -> None:
        if handle.closed:
            return
        with self._lock:
            if handle.native is not None:
                handle.native.close()
            handle.closed = True
        logger.debug(f"Closed document {handle.source_url}")
