"""Page rasterizer: turns a decoded document into an ordered image sequence."""
import asyncio
import logging
from typing import Callable, List, Optional

import fitz  # PyMuPDF

from config import RENDER_CONCURRENCY, RENDER_SCALE
from models.document import DocumentHandle, PixelBuffer
from models.page_image import ImageSequence, PageImage
from services.errors import RenderError
from services.pdf_source import PdfSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class RasterizationCancelled(Exception):
    """Raised when the caller no longer wants the result of a rasterization."""


def encode_png(buffer: PixelBuffer) -> bytes:
    """Encode raw pixels as PNG bytes."""
    colorspace = fitz.csGRAY if buffer.channels in (1, 2) else fitz.csRGB
    pixmap = fitz.Pixmap(colorspace, buffer.width, buffer.height, buffer.samples, buffer.has_alpha)
    return pixmap.tobytes("png")


class PageRasterizer:
    """
    Renders every page of a document, in page order, into PageImages.

    With ``max_concurrency`` of 1 (the default) pages are rendered one after
    another, which bounds peak memory. Higher values render several pages at
    once; the resulting sequence is still in page order.
    """

    def __init__(
        self,
        source: PdfSource,
        scale: float = RENDER_SCALE,
        max_concurrency: int = RENDER_CONCURRENCY
    ):
        if scale <= 0:
            raise ValueError("scale must be > 0")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

        self.source = source
        self.scale = scale
        self.max_concurrency = max_concurrency

    async def rasterize_all(
        self,
        handle: DocumentHandle,
        scale: Optional[float] = None,
        progress: Optional[ProgressCallback] = None,
        should_continue: Optional[Callable[[], bool]] = None
    ) -> ImageSequence:
        """
        Rasterize pages 1..page_count of ``handle``.

        Args:
            handle: Decoded document
            scale: Render scale (defaults to the rasterizer's scale)
            progress: Called with (pages rendered, total pages) after each page
            should_continue: Polled before each page; returning False aborts

        Returns:
            ImageSequence with one PageImage per page

        Raises:
            RenderError: If any page fails; no partial sequence is returned
            RasterizationCancelled: If ``should_continue`` returned False
        """
        scale = scale if scale is not None else self.scale
        if scale <= 0:
            raise ValueError("scale must be > 0")

        total = handle.page_count
        logger.info(f"Rasterizing {total} pages at scale {scale}")

        if self.max_concurrency == 1:
            images = await self._rasterize_sequential(handle, scale, total, progress, should_continue)
        else:
            images = await self._rasterize_concurrent(handle, scale, total, progress, should_continue)

        return ImageSequence(images)

    async def _rasterize_sequential(self, handle, scale, total, progress, should_continue) -> List[PageImage]:
        images = []
        for index in range(1, total + 1):
            self._check_continue(should_continue)
            images.append(await self.rasterize_page(handle, index, scale))
            if progress:
                progress(index, total)
        return images

    async def _rasterize_concurrent(self, handle, scale, total, progress, should_continue) -> List[PageImage]:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        completed = 0
        failures: List[Exception] = []

        async def bounded(index: int) -> Optional[PageImage]:
            nonlocal completed
            async with semaphore:
                if failures:
                    return None
                try:
                    self._check_continue(should_continue)
                    image = await self.rasterize_page(handle, index, scale)
                except Exception as e:
                    failures.append(e)
                    return None
            completed += 1
            if progress:
                progress(completed, total)
            return image

        # Every task runs to completion before returning or raising, so the
        # caller never closes the document while a page is still rendering.
        images = await asyncio.gather(*(bounded(index) for index in range(1, total + 1)))
        if failures:
            raise failures[0]
        return list(images)

    async def rasterize_page(self, handle: DocumentHandle, index: int, scale: float) -> PageImage:
        """Render and encode a single page."""
        try:
            descriptor = self.source.get_page(handle, index)
            buffer = await self.source.render_page(descriptor, scale)
            pixel_data = encode_png(buffer)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(index, f"Failed to render page {index}: {e}") from e

        logger.debug(f"Rendered page {index}: {buffer.width}x{buffer.height}")
        return PageImage(index=index, pixel_data=pixel_data, width=buffer.width, height=buffer.height)

    @staticmethod
    def _check_continue(should_continue: Optional[Callable[[], bool]]) -> None:
        if should_continue is not None and not should_continue():
            raise RasterizationCancelled()
