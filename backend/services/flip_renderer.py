"""Flipbook renderers: present an image sequence as turnable pages."""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from models.page_image import ImageSequence, PageImage
from services.errors import InitError

logger = logging.getLogger(__name__)

FlipListener = Callable[[int], None]

DISPLAY_SINGLE = "single"
DISPLAY_DOUBLE = "double"


@dataclass
class FlipConfig:
    """Presentation options for a flipbook."""
    display: str = DISPLAY_DOUBLE
    duration_ms: int = 600
    stretch: bool = True  # fit the container instead of fixed page dimensions
    width: Optional[int] = None
    height: Optional[int] = None

    def __post_init__(self):
        if self.display not in (DISPLAY_SINGLE, DISPLAY_DOUBLE):
            raise ValueError(f"display must be '{DISPLAY_SINGLE}' or '{DISPLAY_DOUBLE}'")
        if self.duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        if not self.stretch and not (self.width and self.height):
            raise ValueError("width and height are required when stretch is disabled")


@dataclass
class PageElement:
    """One page slot of the flipbook container."""
    index: int
    image: PageImage
    css_class: str = "page"

    @property
    def alt(self) -> str:
        return f"Page {self.index}"

    @property
    def attributes(self) -> Dict[str, Any]:
        return {"class": self.css_class, "data-page": self.index}


class FlipContainer:
    """The element a flipbook is mounted into."""

    def __init__(self, element_id: str = "flipbook"):
        self.element_id = element_id
        self.elements: List[PageElement] = []

    def clear(self) -> None:
        self.elements.clear()

    def __len__(self) -> int:
        return len(self.elements)


class FlipRenderer(ABC):
    """
    Interactive paginated view over an ImageSequence.

    Page turns, whether commanded through ``go_to_next``/``go_to_previous``
    or performed by the user through ``turn_to``, notify every listener
    registered with ``on_flip`` once the flip completes.
    """

    name = "base"
    default_config = FlipConfig()

    def __init__(self):
        self._listeners: List[FlipListener] = []
        self._container: Optional[FlipContainer] = None
        self._config: Optional[FlipConfig] = None
        self._page_count = 0
        self._current_page = 0

    async def init(
        self,
        container: FlipContainer,
        images: ImageSequence,
        config: Optional[FlipConfig] = None
    ) -> "FlipRenderer":
        """
        Mount ``images`` into ``container`` and show the first page.

        Raises:
            InitError: If the container is missing or there are no images
        """
        if container is None:
            raise InitError("No container to mount the flipbook into")
        if images is None or len(images) == 0:
            raise InitError("Cannot build a flipbook without pages")
        if self.initialized:
            raise InitError(f"{self.name} renderer is already initialized")

        config = config or self.default_config
        container.clear()
        container.elements.extend(PageElement(index=image.index, image=image) for image in images)

        # Let the container settle before the page layout is computed
        await asyncio.sleep(0)

        self._container = container
        self._config = config
        self._page_count = len(images)
        self._current_page = 1
        logger.info(
            f"Initialized {self.name} flipbook: {self._page_count} pages, "
            f"display={config.display}, duration={config.duration_ms}ms"
        )
        return self

    @property
    def initialized(self) -> bool:
        return self._container is not None

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def config(self) -> Optional[FlipConfig]:
        return self._config

    def on_flip(self, listener: FlipListener) -> None:
        self._listeners.append(listener)

    def off_flip(self, listener: FlipListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def go_to_next(self) -> bool:
        """Turn forward one page. No-op on the last page."""
        if not self.initialized or self._current_page >= self._page_count:
            return False
        self._flip(self._current_page + 1)
        return True

    def go_to_previous(self) -> bool:
        """Turn back one page. No-op on the first page."""
        if not self.initialized or self._current_page <= 1:
            return False
        self._flip(self._current_page - 1)
        return True

    def turn_to(self, page: int) -> bool:
        """Flip straight to ``page``, as when the user drags a page corner."""
        if not self.initialized or not 1 <= page <= self._page_count:
            return False
        if page == self._current_page:
            return False
        self._flip(page)
        return True

    def _flip(self, page: int) -> None:
        self._current_page = page
        logger.debug(f"{self.name} flipbook turned to page {page}")
        for listener in list(self._listeners):
            listener(page)

    def destroy(self) -> None:
        """Release the container and listeners. Safe before init or after destroy."""
        if self._container is not None:
            self._container.clear()
            logger.info(f"Destroyed {self.name} flipbook")
        self._container = None
        self._config = None
        self._listeners.clear()
        self._page_count = 0
        self._current_page = 0

    @abstractmethod
    def visible_pages(self) -> List[int]:
        """Pages currently on screen."""

    def describe(self) -> Dict[str, Any]:
        config = self._config or self.default_config
        return {
            "kind": self.name,
            "display": config.display,
            "duration_ms": config.duration_ms,
            "stretch": config.stretch,
            "width": config.width,
            "height": config.height,
            "current_page": self._current_page,
            "visible_pages": self.visible_pages(),
        }


class TurnFlipRenderer(FlipRenderer):
    """Magazine-style flipbook: cover alone, then two-page spreads."""

    name = "turn"
    default_config = FlipConfig(display=DISPLAY_DOUBLE, duration_ms=600, stretch=True)

    def visible_pages(self) -> List[int]:
        if not self.initialized:
            return []
        if self._config.display == DISPLAY_SINGLE:
            return [self._current_page]
        if self._current_page == 1:
            return [1]
        # Spreads are (2, 3), (4, 5), ...
        left = self._current_page if self._current_page % 2 == 0 else self._current_page - 1
        return [page for page in (left, left + 1) if page <= self._page_count]


class PageFlipRenderer(FlipRenderer):
    """Portrait flipbook showing one page at a time."""

    name = "page-flip"
    default_config = FlipConfig(display=DISPLAY_SINGLE, duration_ms=1000, stretch=True)

    def visible_pages(self) -> List[int]:
        if not self.initialized:
            return []
        return [self._current_page]


RENDERERS: Dict[str, Type[FlipRenderer]] = {
    TurnFlipRenderer.name: TurnFlipRenderer,
    PageFlipRenderer.name: PageFlipRenderer,
}


def create_flip_renderer(kind: str) -> FlipRenderer:
    """Build a renderer by name ("turn" or "page-flip")."""
    try:
        return RENDERERS[kind]()
    except KeyError:
        raise ValueError(f"Unknown flip renderer '{kind}'. Choose from: {', '.join(RENDERERS)}")
