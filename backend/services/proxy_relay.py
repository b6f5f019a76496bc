"""Proxy relay that fetches remote PDFs on behalf of the browser."""
import logging
from typing import Dict, Optional

import httpx

from config import FETCH_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class ProxyRelayError(Exception):
    """Upstream fetch failure, carrying the HTTP status to answer with."""

    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        self.status_code = status_code
        self.error = error
        self.details = details
        super().__init__(f"{error}: {details}" if details else error)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"error": self.error, "details": self.details}


class ProxyRelay:
    """Fetches a remote PDF server-side so it can be served with permissive CORS headers."""

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT,
        user_agent: str = USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    async def fetch(self, url: Optional[str]) -> bytes:
        """
        Fetch ``url`` and return the response body.

        Raises:
            ProxyRelayError: 400 without a URL, 502 when the upstream fetch
                fails, 500 for anything else
        """
        if not url:
            raise ProxyRelayError(400, "PDF URL is required")

        logger.info(f"Proxying PDF request to: {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                transport=self.transport
            ) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"PDF proxy error: {e}")
            raise ProxyRelayError(502, "Failed to proxy PDF", str(e)) from e
        except Exception as e:
            logger.error(f"PDF proxy error: {e}", exc_info=True)
            raise ProxyRelayError(500, "Failed to proxy PDF", str(e)) from e

        if not response.is_success:
            details = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.error(f"PDF proxy error: {details}")
            raise ProxyRelayError(502, "Failed to proxy PDF", details)

        return response.content

    @staticmethod
    def response_headers(body: bytes) -> Dict[str, str]:
        """Headers for relaying ``body`` back to the browser."""
        headers = {"Content-Type": "application/pdf", "Content-Length": str(len(body))}
        headers.update(CORS_HEADERS)
        return headers
