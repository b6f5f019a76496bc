"""Pagination controller: the single source of truth for navigation."""
import logging
from typing import Callable, List, Optional

from models.viewer_state import PaginationPhase, ViewerState
from services.flip_renderer import FlipRenderer

logger = logging.getLogger(__name__)

StateListener = Callable[[ViewerState], None]


class PaginationController:
    """
    Tracks the current page of a ViewerState and keeps a FlipRenderer in step.

    Moves initiated here (``next``/``previous``) are forwarded to the bound
    renderer as commands. Moves initiated by the renderer (a user gesture on
    the flipbook) arrive through its flip event and only update state; the
    renderer already shows that page, so no command is sent back to it.
    """

    def __init__(self, state: Optional[ViewerState] = None):
        self.state = state or ViewerState()
        self._renderer: Optional[FlipRenderer] = None
        self._listeners: List[StateListener] = []

    @property
    def phase(self) -> PaginationPhase:
        return self.state.phase

    @property
    def current_page(self) -> int:
        return self.state.current_page

    @property
    def total_pages(self) -> int:
        return self.state.total_pages

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-changed listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self, total_pages: int) -> None:
        """Enter Ready(1, total_pages) from Empty."""
        if total_pages < 1:
            raise ValueError("total_pages must be >= 1")
        if self.phase is not PaginationPhase.EMPTY:
            raise RuntimeError("Controller must be cleared before loading a new document")

        self.state.total_pages = total_pages
        self.state.current_page = 1
        logger.info(f"Pagination ready: page 1 of {total_pages}")
        self._notify()

    def next(self) -> bool:
        """Advance one page. Returns False (no-op) on the last page or when empty."""
        if self.phase is PaginationPhase.EMPTY or self.state.current_page >= self.state.total_pages:
            return False

        self.state.current_page += 1
        if self._renderer is not None:
            self._renderer.go_to_next()
        self._notify()
        return True

    def previous(self) -> bool:
        """Go back one page. Returns False (no-op) on the first page or when empty."""
        if self.phase is PaginationPhase.EMPTY or self.state.current_page <= 1:
            return False

        self.state.current_page -= 1
        if self._renderer is not None:
            self._renderer.go_to_previous()
        self._notify()
        return True

    def external_jump(self, page: int) -> bool:
        """
        Record a page change that happened in the renderer.

        Out-of-range pages are dropped with a warning; they mean the renderer
        and the controller disagree about the document.
        """
        if self.phase is PaginationPhase.EMPTY or not 1 <= page <= self.state.total_pages:
            logger.warning(
                f"Ignoring jump to page {page}: outside [1, {self.state.total_pages}]"
            )
            return False
        if page == self.state.current_page:
            return False

        self.state.current_page = page
        self._notify()
        return True

    def clear(self) -> None:
        """Return to Empty and detach from any renderer."""
        self.unbind()
        self.state.current_page = 0
        self.state.total_pages = 0
        self._notify()

    def bind(self, renderer: FlipRenderer) -> None:
        """Exchange commands and flip events with ``renderer``."""
        self.unbind()
        self._renderer = renderer
        renderer.on_flip(self._on_renderer_flip)

    def unbind(self) -> None:
        if self._renderer is not None:
            self._renderer.off_flip(self._on_renderer_flip)
            self._renderer = None

    @property
    def renderer(self) -> Optional[FlipRenderer]:
        return self._renderer

    def _on_renderer_flip(self, page: int) -> None:
        # Echo of a command issued by next()/previous(): state already matches
        if page == self.state.current_page:
            return
        self.external_jump(page)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)
