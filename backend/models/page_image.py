"""Rasterized page models."""
import base64
from dataclasses import dataclass
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class PageImage:
    """One rasterized page, encoded as a displayable image."""
    index: int  # 1-based
    pixel_data: bytes
    width: int
    height: int
    mime_type: str = "image/png"

    def __post_init__(self):
        if self.index < 1:
            raise ValueError("index must be >= 1")

    @property
    def data_url(self) -> str:
        """Inline ``data:`` URL for the encoded image."""
        encoded = base64.b64encode(self.pixel_data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ImageSequence:
    """
    Ordered pages of a flipbook.

    Indices are contiguous starting at 1 and insertion order equals page
    order; ``append`` refuses anything that would break that.
    """

    def __init__(self, images: Optional[List[PageImage]] = None):
        self._images: List[PageImage] = []
        for image in images or []:
            self.append(image)

    def append(self, image: PageImage) -> None:
        expected = len(self._images) + 1
        if image.index != expected:
            raise ValueError(f"Expected page {expected}, got page {image.index}")
        self._images.append(image)

    def get(self, index: int) -> PageImage:
        """
        Return the page with 1-based ``index``.

        Raises:
            IndexError: If ``index`` is outside ``[1, len(self)]``
        """
        if not 1 <= index <= len(self._images):
            raise IndexError(f"Page {index} out of range (1-{len(self._images)})")
        return self._images[index - 1]

    @property
    def indices(self) -> List[int]:
        return [image.index for image in self._images]

    def clear(self) -> None:
        self._images.clear()

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[PageImage]:
        return iter(self._images)

    def __bool__(self) -> bool:
        return bool(self._images)
