"""Data models for the PDF Flipbook viewer."""
from .document import DocumentHandle, PageDescriptor, PixelBuffer
from .page_image import PageImage, ImageSequence
from .viewer_state import ViewerState, LoadProgress, PaginationPhase

__all__ = [
    "DocumentHandle",
    "PageDescriptor",
    "PixelBuffer",
    "PageImage",
    "ImageSequence",
    "ViewerState",
    "LoadProgress",
    "PaginationPhase",
]
