"""Bindings between the viewer state and its user-facing controls."""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from models.viewer_state import ViewerState
from services.pagination_controller import PaginationController

logger = logging.getLogger(__name__)

ENTRY_PARAM = "pdf"

KEY_BINDINGS = {
    "ArrowLeft": "previous",
    "ArrowRight": "next",
}


@dataclass
class ControlsView:
    """What the viewer's controls should show for a given state."""
    page_info: str
    prev_enabled: bool
    next_enabled: bool
    download_enabled: bool
    load_enabled: bool
    load_label: str
    loading_visible: bool
    error_visible: bool


def render_controls(state: ViewerState) -> ControlsView:
    has_pages = state.total_pages > 0
    return ControlsView(
        page_info=f"Page {state.current_page} of {state.total_pages}",
        prev_enabled=has_pages and state.current_page > 1,
        next_enabled=has_pages and state.current_page < state.total_pages,
        download_enabled=has_pages,
        load_enabled=not state.is_loading,
        load_label="Loading..." if state.is_loading else "Load PDF",
        loading_visible=state.is_loading,
        error_visible=state.last_error is not None,
    )


def handle_key(controller: PaginationController, key: str) -> bool:
    """
    Route a key press to the controller.

    Returns:
        True if the key moved to another page
    """
    command = KEY_BINDINGS.get(key)
    if command is None:
        return False
    logger.debug(f"Key {key} -> {command}")
    return getattr(controller, command)()


def validate_pdf_url(raw: Optional[str]) -> str:
    """
    Normalize a user-entered PDF URL.

    Raises:
        ValueError: With a message suitable for showing to the user
    """
    url = (raw or "").strip()
    if not url:
        raise ValueError("Please enter a PDF URL")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Please enter a valid URL")
    return url


@dataclass
class EntryDecision:
    """How the viewer starts: auto-load a URL or ask for one."""
    pdf_url: Optional[str]
    show_url_input: bool


def resolve_entry(params: Mapping[str, str]) -> EntryDecision:
    pdf_url = (params.get(ENTRY_PARAM) or "").strip()
    if pdf_url:
        return EntryDecision(pdf_url=pdf_url, show_url_input=False)
    return EntryDecision(pdf_url=None, show_url_input=True)
