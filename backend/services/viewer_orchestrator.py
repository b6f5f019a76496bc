"""Viewer orchestrator: loads a PDF end to end and owns the viewing session."""
import asyncio
import dataclasses
import logging
from functools import partial
from typing import Any, Callable, Dict, Optional

from config import FLIP_DURATION_MS, FLIP_RENDERER
from models.document import DocumentHandle
from models.page_image import ImageSequence, PageImage
from models.viewer_state import LoadProgress, ViewerState
from services.errors import (
    AuthError,
    DecodeError,
    FetchError,
    InitError,
    PageIndexError,
    RenderError,
)
from services.flip_renderer import FlipConfig, FlipContainer, FlipRenderer, create_flip_renderer
from services.page_rasterizer import PageRasterizer, RasterizationCancelled
from services.pagination_controller import PaginationController
from services.pdf_source import PdfSource
from services.ui_bindings import handle_key, render_controls

logger = logging.getLogger(__name__)


class ViewerOrchestrator:
    """
    Drives PdfSource -> PageRasterizer -> FlipRenderer for one viewer.

    Only one load is honoured at a time: starting a new load supersedes the
    one in flight, whose result is discarded whenever it arrives. Failures
    leave the viewer empty with ``state.last_error`` set; this class is the
    only place where error kinds become user-facing messages.
    """

    def __init__(
        self,
        source: PdfSource,
        rasterizer: Optional[PageRasterizer] = None,
        renderer_factory: Optional[Callable[[], FlipRenderer]] = None,
        flip_config: Optional[FlipConfig] = None,
        container_id: str = "flipbook"
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Where documents come from
            rasterizer: Page rasterizer (defaults to one over ``source``)
            renderer_factory: Builds a fresh FlipRenderer for each document
            flip_config: Presentation options (defaults to the renderer's own)
            container_id: Element id of the flipbook container
        """
        self.source = source
        self.rasterizer = rasterizer or PageRasterizer(source)
        self.renderer_factory = renderer_factory or partial(create_flip_renderer, FLIP_RENDERER)
        self.flip_config = flip_config
        self.container_id = container_id

        self.state = ViewerState()
        self.controller = PaginationController(self.state)
        self.container = FlipContainer(container_id)

        self._handle: Optional[DocumentHandle] = None
        self._images: Optional[ImageSequence] = None
        self._renderer: Optional[FlipRenderer] = None
        self._generation = 0

    @property
    def renderer(self) -> Optional[FlipRenderer]:
        return self._renderer

    @property
    def images(self) -> Optional[ImageSequence]:
        return self._images

    @property
    def generation(self) -> int:
        """Bumped by every load and close; identifies the displayed document."""
        return self._generation

    @property
    def download_url(self) -> Optional[str]:
        return self._handle.source_url if self._handle else None

    async def load(self, url: str) -> bool:
        """
        Replace whatever is displayed with the PDF at ``url``.

        Returns:
            True if the document is now displayed; False if the load failed
            (see ``state.last_error``) or was superseded by a newer load
        """
        self._generation += 1
        generation = self._generation

        def is_current() -> bool:
            return generation == self._generation

        logger.info(f"Loading PDF from: {url}")
        self._teardown()
        self.state.is_loading = True
        self.state.last_error = None
        self.state.progress = None

        handle: Optional[DocumentHandle] = None
        images: Optional[ImageSequence] = None
        renderer: Optional[FlipRenderer] = None
        container = FlipContainer(self.container_id)

        try:
            handle = await self.source.open(url)
            if not is_current():
                raise RasterizationCancelled()

            images = await self.rasterizer.rasterize_all(
                handle,
                progress=partial(self._report_progress, generation),
                should_continue=is_current
            )
            if not is_current():
                raise RasterizationCancelled()

            renderer = self.renderer_factory()
            await renderer.init(container, images, self._config_for(renderer))
            if not is_current():
                raise RasterizationCancelled()
        except RasterizationCancelled:
            logger.info(f"Discarding superseded load of {url}")
            self._release(handle, renderer)
            return False
        except asyncio.CancelledError:
            self._release(handle, renderer)
            raise
        except Exception as e:
            self._release(handle, renderer)
            if not is_current():
                logger.info(f"Discarding failure of superseded load of {url}: {e}")
                return False
            self.state.last_error = self.describe_error(e)
            if isinstance(e, (FetchError, DecodeError, AuthError, RenderError, InitError)):
                logger.error(f"Error loading PDF {url}: {e.code} {e.message}")
            else:
                logger.error(f"Unexpected error loading PDF {url}: {e}", exc_info=True)
            return False
        else:
            self._handle = handle
            self._images = images
            self._renderer = renderer
            self.container = container
            self.controller.load(handle.page_count)
            self.controller.bind(renderer)
            logger.info(f"Flipbook ready with {handle.page_count} pages")
            return True
        finally:
            if is_current():
                self.state.is_loading = False
                self.state.progress = None

    @staticmethod
    def describe_error(error: Exception) -> str:
        """Translate an error into the message shown to the user."""
        if isinstance(error, AuthError):
            return "This PDF is password protected"
        if isinstance(error, DecodeError):
            return "Invalid PDF file"
        if isinstance(error, FetchError):
            if error.reason == FetchError.BLOCKED:
                return "Access denied: PDF server doesn't allow cross-origin requests"
            if error.status_code == 404:
                return "PDF file not found (404 error)"
            if error.reason == FetchError.TIMEOUT:
                return "Request timed out while fetching the PDF"
            return "Network error: Unable to fetch PDF. Check the URL and try again."
        if isinstance(error, RenderError):
            return f"Failed to render page {error.page_index}"
        if isinstance(error, InitError):
            return "Failed to initialize flipbook. Please try again."
        return f"Failed to load PDF: {error}"

    def next(self) -> bool:
        return self.controller.next()

    def previous(self) -> bool:
        return self.controller.previous()

    def flip(self, page: int) -> bool:
        """Turn the flipbook to ``page`` as a user gesture would."""
        if self._renderer is None:
            return False
        return self._renderer.turn_to(page)

    def press_key(self, key: str) -> bool:
        return handle_key(self.controller, key)

    def page_image(self, index: int) -> PageImage:
        """
        Return the rendered image of page ``index``.

        Raises:
            PageIndexError: If no document is displayed or ``index`` is out of range
        """
        if self._images is None:
            raise PageIndexError(index, 0)
        if not 1 <= index <= len(self._images):
            raise PageIndexError(index, len(self._images))
        return self._images.get(index)

    def dismiss_error(self) -> None:
        self.state.last_error = None

    def close(self) -> None:
        """End the session: abandon any load in flight and release everything."""
        self._generation += 1
        self._teardown()
        self.state.is_loading = False
        self.state.progress = None

    def describe(self) -> Dict[str, Any]:
        """State, controls and renderer view for the UI."""
        data = self.state.to_dict()
        data["controls"] = dataclasses.asdict(render_controls(self.state))
        data["renderer"] = self._renderer.describe() if self._renderer else None
        data["generation"] = self._generation
        return data

    def _config_for(self, renderer: FlipRenderer) -> FlipConfig:
        config = self.flip_config or renderer.default_config
        if FLIP_DURATION_MS is not None:
            config = dataclasses.replace(config, duration_ms=FLIP_DURATION_MS)
        return config

    def _report_progress(self, generation: int, rendered: int, total: int) -> None:
        if generation == self._generation:
            self.state.progress = LoadProgress(rendered=rendered, total=total)

    def _teardown(self) -> None:
        """Destroy the displayed flipbook and return pagination to Empty."""
        if self._renderer is not None:
            self._renderer.destroy()
        self._renderer = None
        self.controller.clear()
        if self._images is not None:
            self._images.clear()
        self._images = None
        if self._handle is not None:
            self.source.close(self._handle)
        self._handle = None
        self.container = FlipContainer(self.container_id)

    def _release(self, handle: Optional[DocumentHandle], renderer: Optional[FlipRenderer]) -> None:
        if renderer is not None:
            renderer.destroy()
        if handle is not None:
            self.source.close(handle)
