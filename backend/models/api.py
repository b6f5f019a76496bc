"""Request and response schemas for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel, Field


class LoadRequest(BaseModel):
    """Request to load a PDF into the viewer."""
    url: str = ""


class FlipRequest(BaseModel):
    """A page-turn gesture performed directly on the flipbook."""
    page: int


class KeyRequest(BaseModel):
    """A key pressed while the viewer has focus."""
    key: str


class ProgressInfo(BaseModel):
    rendered: int
    total: int


class ControlsInfo(BaseModel):
    """Derived state of the viewer's controls."""
    page_info: str
    prev_enabled: bool
    next_enabled: bool
    download_enabled: bool
    load_enabled: bool
    load_label: str
    loading_visible: bool
    error_visible: bool


class RendererInfo(BaseModel):
    """What the flipbook currently displays."""
    kind: str
    display: str
    duration_ms: int
    stretch: bool
    width: Optional[int] = None
    height: Optional[int] = None
    current_page: int
    visible_pages: List[int] = Field(default_factory=list)


class ViewerStateResponse(BaseModel):
    """Snapshot of the viewer session."""
    phase: str
    current_page: int
    total_pages: int
    is_loading: bool
    last_error: Optional[str] = None
    progress: Optional[ProgressInfo] = None
    controls: ControlsInfo
    renderer: Optional[RendererInfo] = None
    generation: int = 0


class LoadResponse(BaseModel):
    """Outcome of a load request."""
    applied: bool
    state: ViewerStateResponse


class NavigationResponse(BaseModel):
    """Outcome of a navigation command."""
    moved: bool
    state: ViewerStateResponse


class EntryResponse(BaseModel):
    """How the viewer should start for the given entry parameters."""
    pdf_url: Optional[str] = None
    show_url_input: bool
    state: ViewerStateResponse


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    port: int
    environment: str


class StatusMessageResponse(BaseModel):
    message: str
    timestamp: str
    port: int


class ProxyErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
