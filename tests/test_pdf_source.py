"""Unit tests for PyMuPdfSource using real PDFs and a stubbed network."""
import asyncio
import threading
import time

import httpx
import pytest

from fakes import make_pdf
from services.errors import AuthError, DecodeError, FetchError, PageIndexError, RenderError
from services.page_rasterizer import PageRasterizer
from services.pdf_source import PyMuPdfSource

PDF_URL = "https://docs.example.com/report.pdf"


def _source(handler, **kwargs) -> PyMuPdfSource:
    return PyMuPdfSource(transport=httpx.MockTransport(handler), **kwargs)


def _serving(body: bytes, status_code: int = 200):
    def handler(request):
        return httpx.Response(status_code, content=body, headers={"Content-Type": "application/pdf"})
    return handler


class TestOpen:
    """Fetching and decoding."""
    
    def test_open_valid_pdf(self):
        source = _source(_serving(make_pdf(pages=3)))
        
        handle = asyncio.run(source.open(PDF_URL))
        
        assert handle.page_count == 3
        assert handle.source_url == PDF_URL
        assert not handle.closed
        source.close(handle)
    
    def test_sends_user_agent(self):
        seen = {}
        
        def handler(request):
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200, content=make_pdf(pages=1))
        
        source = _source(handler, user_agent="Flipbook-Test/1.0")
        source.close(asyncio.run(source.open(PDF_URL)))
        
        assert seen["ua"] == "Flipbook-Test/1.0"
    
    def test_not_found(self):
        source = _source(_serving(b"missing", status_code=404))
        
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(source.open(PDF_URL))
        
        assert exc_info.value.status_code == 404
        assert exc_info.value.reason == FetchError.STATUS
    
    def test_forbidden_is_blocked(self):
        source = _source(_serving(b"", status_code=403))
        
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(source.open(PDF_URL))
        
        assert exc_info.value.reason == FetchError.BLOCKED
    
    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)
        
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_source(handler).open(PDF_URL))
        
        assert exc_info.value.reason == FetchError.TIMEOUT
    
    def test_unreachable_host(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)
        
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_source(handler).open(PDF_URL))
        
        assert exc_info.value.reason == FetchError.NETWORK
    
    def test_invalid_pdf(self):
        with pytest.raises(DecodeError):
            asyncio.run(_source(_serving(b"<html>not a pdf</html>")).open(PDF_URL))
    
    def test_empty_body(self):
        with pytest.raises(DecodeError):
            asyncio.run(_source(_serving(b"")).open(PDF_URL))
    
    def test_password_protected(self):
        source = _source(_serving(make_pdf(pages=1, password="secret")))
        
        with pytest.raises(AuthError):
            asyncio.run(source.open(PDF_URL))


class TestProxyFallback:
    """Retrying through a proxy relay when the direct fetch fails."""
    
    def test_falls_back_to_proxy(self):
        requests = []
        pdf = make_pdf(pages=2)
        
        def handler(request):
            requests.append(request.url)
            if request.url.host == "relay.example.com":
                return httpx.Response(200, content=pdf)
            return httpx.Response(403)
        
        source = _source(handler, proxy_base_url="https://relay.example.com/")
        handle = asyncio.run(source.open(PDF_URL))
        
        assert handle.page_count == 2
        assert handle.source_url == PDF_URL
        assert requests[1].path == "/proxy/pdf"
        assert requests[1].params["url"] == PDF_URL
        source.close(handle)
    
    def test_not_found_skips_proxy(self):
        requests = []
        
        def handler(request):
            requests.append(request.url)
            return httpx.Response(404)
        
        source = _source(handler, proxy_base_url="https://relay.example.com")
        
        with pytest.raises(FetchError):
            asyncio.run(source.open(PDF_URL))
        assert len(requests) == 1

    def test_timeout_skips_proxy(self):
        requests = []

        def handler(request):
            requests.append(request.url)
            raise httpx.ReadTimeout("timed out", request=request)

        source = _source(handler, proxy_base_url="https://relay.example.com")

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(source.open(PDF_URL))
        assert exc_info.value.reason == FetchError.TIMEOUT
        assert len(requests) == 1

    def test_proxy_url_encoding(self):
        source = PyMuPdfSource(proxy_base_url="https://relay.example.com")
        
        assert source.proxy_url_for("https://a.com/x.pdf?v=1") == (
            "https://relay.example.com/proxy/pdf?url=https%3A%2F%2Fa.com%2Fx.pdf%3Fv%3D1"
        )


class TestPages:
    """Page lookup and rendering."""
    
    @pytest.fixture
    def opened(self):
        source = _source(_serving(make_pdf(pages=2, width=100, height=200)))
        handle = asyncio.run(source.open(PDF_URL))
        yield source, handle
        source.close(handle)
    
    def test_get_page(self, opened):
        source, handle = opened
        
        page = source.get_page(handle, 2)
        
        assert page.index == 2
        assert (page.width, page.height) == (100, 200)
    
    @pytest.mark.parametrize("index", [0, 3, -1])
    def test_get_page_out_of_range(self, opened, index):
        source, handle = opened
        
        with pytest.raises(PageIndexError):
            source.get_page(handle, index)
    
    def test_page_index_error_is_an_index_error(self, opened):
        source, handle = opened
        with pytest.raises(IndexError):
            source.get_page(handle, 9)
    
    def test_render_page_scales_pixels(self, opened):
        source, handle = opened
        
        buffer = asyncio.run(source.render_page(source.get_page(handle, 1), 2.0))
        
        assert (buffer.width, buffer.height) == (200, 400)
        assert buffer.channels == 3
        assert len(buffer.samples) == 200 * 400 * 3
    
    def test_render_is_deterministic(self, opened):
        source, handle = opened
        page = source.get_page(handle, 1)
        
        first = asyncio.run(source.render_page(page, 1.0))
        second = asyncio.run(source.render_page(page, 1.0))
        
        assert first.samples == second.samples
    
    def test_render_requires_positive_scale(self, opened):
        source, handle = opened
        with pytest.raises(ValueError):
            asyncio.run(source.render_page(source.get_page(handle, 1), 0))
    
    def test_close_is_idempotent(self, opened):
        source, handle = opened
        source.close(handle)
        source.close(handle)
        
        assert handle.closed
        with pytest.raises(ValueError):
            source.get_page(handle, 1)


class TestRenderThreading:
    """PyMuPDF work on one document never overlaps."""
    
    def test_concurrent_rasterization_renders_one_page_at_a_time(self):
        source = _source(_serving(make_pdf(pages=6)))
        handle = asyncio.run(source.open(PDF_URL))
        original_render = source._render
        guard = threading.Lock()
        active = 0
        peak = 0
        after_close = []
        
        def tracking_render(page, scale):
            nonlocal active, peak
            with guard:
                active += 1
                peak = max(peak, active)
            try:
                time.sleep(0.01)
                if handle.closed:
                    after_close.append(page.index)
                if page.index == 2:
                    raise RuntimeError("corrupt content stream")
                return original_render(page, scale)
            finally:
                with guard:
                    active -= 1
        
        source._render = tracking_render
        rasterizer = PageRasterizer(source, max_concurrency=4)
        
        with pytest.raises(RenderError) as exc_info:
            asyncio.run(rasterizer.rasterize_all(handle))
        source.close(handle)
        time.sleep(0.05)
        
        assert exc_info.value.page_index == 2
        assert peak == 1
        assert after_close == []
    
    def test_concurrent_rasterization_of_real_document(self):
        source = _source(_serving(make_pdf(pages=5)))
        handle = asyncio.run(source.open(PDF_URL))
        
        images = asyncio.run(PageRasterizer(source, scale=0.5, max_concurrency=3).rasterize_all(handle))
        source.close(handle)
        
        assert images.indices == [1, 2, 3, 4, 5]
