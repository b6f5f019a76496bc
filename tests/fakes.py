"""Test doubles and fixtures data shared by the test suite."""
import asyncio
from typing import Callable, Dict, List, Optional

import fitz  # PyMuPDF

from models.document import DocumentHandle, PageDescriptor, PixelBuffer
from services.errors import PageIndexError
from services.pdf_source import PdfSource


def make_pdf(pages: int = 3, width: int = 100, height: int = 200, password: Optional[str] = None) -> bytes:
    """Build a small PDF in memory."""
    document = fitz.open()
    for number in range(pages):
        page = document.new_page(width=width, height=height)
        page.insert_text((10, 20), f"Page {number + 1}")
    if password:
        data = document.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw=password)
    else:
        data = document.tobytes()
    document.close()
    return data


class FakePdfSource(PdfSource):
    """
    In-memory PdfSource.

    ``documents`` maps URLs to page counts. ``failures`` maps URLs to the
    exception ``open`` raises, ``render_failures`` maps page indices to the
    exception ``render_page`` raises. ``open_gates``/``render_gates`` hold
    asyncio.Events the corresponding call waits on before continuing.
    """

    def __init__(
        self,
        documents: Optional[Dict[str, int]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        render_failures: Optional[Dict[int, Exception]] = None,
        open_gates: Optional[Dict[str, asyncio.Event]] = None,
        render_gates: Optional[Dict[str, asyncio.Event]] = None,
        render_delay: Optional[Callable[[int], float]] = None
    ):
        self.documents = documents or {}
        self.failures = failures or {}
        self.render_failures = render_failures or {}
        self.open_gates = open_gates or {}
        self.render_gates = render_gates or {}
        self.render_delay = render_delay
        self.opened: List[str] = []
        self.rendered: List[int] = []
        self.closed: List[str] = []

    async def open(self, url: str) -> DocumentHandle:
        self.opened.append(url)
        if url in self.open_gates:
            await self.open_gates[url].wait()
        if url in self.failures:
            raise self.failures[url]
        return DocumentHandle(page_count=self.documents[url], source_url=url, native=url)

    def get_page(self, handle: DocumentHandle, index: int) -> PageDescriptor:
        if not 1 <= index <= handle.page_count:
            raise PageIndexError(index, handle.page_count)
        return PageDescriptor(index=index, width=100, height=100, native=handle.source_url)

    async def render_page(self, page: PageDescriptor, scale: float) -> PixelBuffer:
        if page.native in self.render_gates:
            await self.render_gates[page.native].wait()
        if self.render_delay is not None:
            await asyncio.sleep(self.render_delay(page.index))
        self.rendered.append(page.index)
        if page.index in self.render_failures:
            raise self.render_failures[page.index]
        return PixelBuffer(
            samples=bytes([page.index % 256]) * (2 * 2 * 3),
            width=2,
            height=2,
            channels=3,
            page_index=page.index
        )

    def close(self, handle: DocumentHandle) -> None:
        if not handle.closed:
            self.closed.append(handle.source_url)
        handle.closed = True
