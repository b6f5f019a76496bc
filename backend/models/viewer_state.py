"""Viewer session state models."""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class PaginationPhase(str, Enum):
    """Lifecycle of the pagination state machine."""
    EMPTY = "empty"
    READY = "ready"


@dataclass
class LoadProgress:
    """Advisory rasterization progress (page ``rendered`` of ``total``)."""
    rendered: int
    total: int


@dataclass
class ViewerState:
    """
    Navigation and loading state of the single viewer session.

    ``current_page`` is 0 exactly when ``total_pages`` is 0, otherwise it
    lies within ``[1, total_pages]``.
    """
    current_page: int = 0
    total_pages: int = 0
    is_loading: bool = False
    last_error: Optional[str] = None
    progress: Optional[LoadProgress] = None

    @property
    def phase(self) -> PaginationPhase:
        return PaginationPhase.READY if self.total_pages > 0 else PaginationPhase.EMPTY

    def is_consistent(self) -> bool:
        if self.total_pages == 0:
            return self.current_page == 0
        return 1 <= self.current_page <= self.total_pages

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["phase"] = self.phase.value
        return data
