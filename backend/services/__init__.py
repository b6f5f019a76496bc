"""Services for the PDF Flipbook viewer."""
from .errors import ViewerError, FetchError, DecodeError, AuthError, RenderError, InitError, PageIndexError
from .pdf_source import PdfSource, PyMuPdfSource
from .page_rasterizer import PageRasterizer, RasterizationCancelled, encode_png
from .flip_renderer import FlipConfig, FlipContainer, FlipRenderer, TurnFlipRenderer, PageFlipRenderer, create_flip_renderer
from .pagination_controller import PaginationController
from .ui_bindings import ControlsView, EntryDecision, render_controls, handle_key, validate_pdf_url, resolve_entry
from .proxy_relay import ProxyRelay, ProxyRelayError
from .viewer_orchestrator import ViewerOrchestrator

__all__ = ['ViewerError', 'FetchError', 'DecodeError', 'AuthError', 'RenderError', 'InitError', 'PageIndexError', 'PdfSource', 'PyMuPdfSource', 'PageRasterizer', 'RasterizationCancelled', 'encode_png', 'FlipConfig', 'FlipContainer', 'FlipRenderer', 'TurnFlipRenderer', 'PageFlipRenderer', 'create_flip_renderer', 'PaginationController', 'ControlsView', 'EntryDecision', 'render_controls', 'handle_key', 'validate_pdf_url', 'resolve_entry', 'ProxyRelay', 'ProxyRelayError', 'ViewerOrchestrator']
