"""Main entry point for the PDF Flipbook server."""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, Response

from config import CORS_ORIGINS, ENVIRONMENT, LOG_FORMAT, LOG_LEVEL, PORT, PUBLIC_URL, STATIC_DIR
from logger import setup_logging
from models.api import (
    EntryResponse,
    FlipRequest,
    HealthResponse,
    KeyRequest,
    LoadRequest,
    LoadResponse,
    NavigationResponse,
    StatusMessageResponse,
    ViewerStateResponse,
)
from services.errors import PageIndexError
from services.pdf_source import PyMuPdfSource
from services.proxy_relay import CORS_HEADERS, ProxyRelay, ProxyRelayError
from services.ui_bindings import resolve_entry, validate_pdf_url
from services.viewer_orchestrator import ViewerOrchestrator

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="PDF Flipbook",
    description="Relays remote PDFs and serves them as an interactive flipbook",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
orchestrator: ViewerOrchestrator = None
proxy_relay: ProxyRelay = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _state_response() -> ViewerStateResponse:
    return ViewerStateResponse(**orchestrator.describe())


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global orchestrator, proxy_relay
    
    orchestrator = ViewerOrchestrator(PyMuPdfSource())
    proxy_relay = ProxyRelay()
    
    logger.info(f"PDF Flipbook server running on port {PORT}")
    logger.info(f"Visit: http://localhost:{PORT}")
    logger.info(f"Environment: {ENVIRONMENT}")
    logger.info(f"Public URL: {PUBLIC_URL or 'Not set'}")


@app.on_event("shutdown")
async def shutdown_event():
    """Release the viewer session."""
    if orchestrator is not None:
        orchestrator.close()
    logger.info("Process terminated")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request."""
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Error: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="OK", timestamp=_timestamp(), port=PORT, environment=ENVIRONMENT)


@app.get("/test", response_model=StatusMessageResponse)
async def test():
    """Liveness message."""
    return StatusMessageResponse(message="PDF Flipbook server is running!", timestamp=_timestamp(), port=PORT)


@app.options("/proxy/{path:path}")
async def proxy_preflight(path: str):
    return Response(status_code=204, headers=CORS_HEADERS)


@app.get("/proxy/{path:path}")
async def proxy_pdf(path: str, url: Optional[str] = None):
    """
    Fetch a remote PDF server-side to bypass CORS.
    
    Args:
        path: Ignored path suffix (e.g. ``pdf``)
        url: Remote PDF URL
        
    Returns:
        Raw PDF bytes with permissive CORS headers, or a JSON error
    """
    try:
        body = await proxy_relay.fetch(url)
    except ProxyRelayError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_dict(), headers=CORS_HEADERS)
    
    return Response(content=body, headers=ProxyRelay.response_headers(body))


@app.get("/api/viewer/entry", response_model=EntryResponse)
async def viewer_entry(request: Request):
    """Auto-load the ``pdf`` query parameter if present, otherwise ask for a URL."""
    decision = resolve_entry(request.query_params)
    if decision.pdf_url:
        await orchestrator.load(decision.pdf_url)
    return EntryResponse(
        pdf_url=decision.pdf_url,
        show_url_input=decision.show_url_input,
        state=_state_response()
    )


@app.post("/api/viewer/load", response_model=LoadResponse)
async def viewer_load(request: LoadRequest):
    """
    Load a PDF into the flipbook.
    
    Args:
        request: LoadRequest with the PDF URL
        
    Returns:
        LoadResponse; ``applied`` is False when the load failed or a newer load superseded it
        
    Raises:
        HTTPException: 400 if the URL is missing or malformed
    """
    try:
        url = validate_pdf_url(request.url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    
    applied = await orchestrator.load(url)
    return LoadResponse(applied=applied, state=_state_response())


@app.get("/api/viewer/state", response_model=ViewerStateResponse)
async def viewer_state():
    return _state_response()


@app.post("/api/viewer/next", response_model=NavigationResponse)
async def viewer_next():
    moved = orchestrator.next()
    return NavigationResponse(moved=moved, state=_state_response())


@app.post("/api/viewer/previous", response_model=NavigationResponse)
async def viewer_previous():
    moved = orchestrator.previous()
    return NavigationResponse(moved=moved, state=_state_response())


@app.post("/api/viewer/flip", response_model=NavigationResponse)
async def viewer_flip(request: FlipRequest):
    """Page turn performed on the flipbook itself (e.g. dragging a corner)."""
    moved = orchestrator.flip(request.page)
    return NavigationResponse(moved=moved, state=_state_response())


@app.post("/api/viewer/key", response_model=NavigationResponse)
async def viewer_key(request: KeyRequest):
    moved = orchestrator.press_key(request.key)
    return NavigationResponse(moved=moved, state=_state_response())


@app.get("/api/viewer/pages/{index}")
async def viewer_page(index: int):
    """Rendered image of one page."""
    try:
        image = orchestrator.page_image(index)
    except PageIndexError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return Response(
        content=image.pixel_data,
        media_type=image.mime_type,
        headers={"Cache-Control": "no-store"}
    )


@app.get("/api/viewer/download")
async def viewer_download():
    url = orchestrator.download_url
    if not url:
        raise HTTPException(status_code=404, detail="No PDF loaded to download")
    return RedirectResponse(url)


@app.post("/api/viewer/error/dismiss", response_model=ViewerStateResponse)
async def viewer_dismiss_error():
    orchestrator.dismiss_error()
    return _state_response()


@app.get("/{full_path:path}")
async def spa(full_path: str):
    """Serve static files, falling back to index.html for SPA routing."""
    static_root = Path(STATIC_DIR).resolve()
    candidate = (static_root / full_path).resolve()
    
    if full_path and candidate.is_file() and static_root in candidate.parents:
        return FileResponse(candidate)
    
    index_file = static_root / "index.html"
    if not index_file.is_file():
        raise HTTPException(status_code=404, detail="index.html not found")
    return FileResponse(index_file)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting PDF Flipbook server on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
