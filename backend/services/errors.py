"""Error taxonomy for the viewer pipeline."""
from typing import Any, Dict, Optional


class ViewerError(Exception):
    """Base class for failures raised below the ViewerOrchestrator."""

    code = "VIEWER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class FetchError(ViewerError):
    """The PDF could not be retrieved (network, timeout, HTTP status, access denied)."""

    code = "FETCH_ERROR"

    NETWORK = "network"
    TIMEOUT = "timeout"
    STATUS = "status"
    BLOCKED = "blocked"

    def __init__(
        self,
        message: str,
        reason: str = NETWORK,
        status_code: Optional[int] = None,
        url: Optional[str] = None
    ):
        self.reason = reason
        self.status_code = status_code
        self.url = url
        super().__init__(message, {"reason": reason, "status_code": status_code, "url": url})


class DecodeError(ViewerError):
    """The fetched bytes are not a readable PDF."""

    code = "DECODE_ERROR"


class AuthError(ViewerError):
    """The PDF is password protected."""

    code = "AUTH_ERROR"


class RenderError(ViewerError):
    """Rasterizing a specific page failed."""

    code = "RENDER_ERROR"

    def __init__(self, page_index: int, message: Optional[str] = None):
        self.page_index = page_index
        super().__init__(message or f"Failed to render page {page_index}", {"page_index": page_index})


class InitError(ViewerError):
    """The flip renderer could not be initialized."""

    code = "INIT_ERROR"


class PageIndexError(ViewerError, IndexError):
    """A page lookup or navigation target is out of bounds."""

    code = "INDEX_ERROR"

    def __init__(self, index: int, page_count: int):
        self.index = index
        self.page_count = page_count
        super().__init__(
            f"Page {index} is outside [1, {page_count}]",
            {"index": index, "page_count": page_count}
        )
