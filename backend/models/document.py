"""Document data models."""
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class DocumentHandle:
    """Opaque reference to a decoded PDF owned by one viewing session."""
    page_count: int
    source_url: str
    # Backend-specific document object (e.g. a PyMuPDF ``Document``)
    native: Any = field(default=None, repr=False, compare=False)
    closed: bool = False

    def __post_init__(self):
        if self.page_count < 0:
            raise ValueError("page_count must be >= 0")


@dataclass
class PageDescriptor:
    """A single page of a DocumentHandle, ready to be rendered."""
    index: int  # 1-based
    width: float  # points
    height: float  # points
    native: Any = field(default=None, repr=False, compare=False)


@dataclass
class PixelBuffer:
    """Raw pixels produced by rendering a page at a given scale."""
    samples: bytes
    width: int
    height: int
    channels: int = 3
    page_index: Optional[int] = None

    @property
    def has_alpha(self) -> bool:
        return self.channels in (2, 4)
